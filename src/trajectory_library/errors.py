"""
Trajectory Loading Errors

Exception hierarchy raised while building a trajectory from its tabular
sources. Every error is fatal to the construction attempt: no partially
loaded trajectory is ever returned to the caller.

Hierarchy:
    TrajectoryError (ValueError)
    ├── SourceUnreadableError    - a named source cannot be opened or parsed
    ├── NonUniformTimestepError  - time column deltas are not constant
    ├── DimensionMismatchError   - a table width disagrees with n and m
    ├── RowCountMismatchError    - the core tables disagree in row count
    ├── LabelParseError          - trailing identifier suffix is not an integer
    └── RolloutUnavailableError  - rollout queried on a trajectory without one

Query-time lookups never raise for out-of-range times; those are clamped
to the boundary samples instead.
"""


class TrajectoryError(ValueError):
    """Base class for all trajectory loading and validation errors."""

    pass


class SourceUnreadableError(TrajectoryError):
    """
    Raised when a named table source cannot be opened or parsed.

    Attributes:
        source: Name of the offending source.
        reason: Human-readable description of the failure.
        row_index: Data row index where parsing failed, if applicable.
    """

    def __init__(self, source: str, reason: str, row_index: int | None = None):
        self.source = source
        self.reason = reason
        self.row_index = row_index
        location = f" (data row {row_index})" if row_index is not None else ""
        super().__init__(f"Cannot read table source '{source}'{location}: {reason}")


class NonUniformTimestepError(TrajectoryError):
    """
    Raised when consecutive time-column deltas are not constant.

    Attributes:
        source: Name of the offending source.
        row_index: Index of the row whose delta to its predecessor is wrong.
        expected_dt: Sample interval established by the first two rows.
        actual_dt: Delta observed between row_index - 1 and row_index.
        reason: Optional extra detail appended to the message.
    """

    def __init__(
        self,
        source: str,
        row_index: int,
        expected_dt: float,
        actual_dt: float,
        reason: str = "",
    ):
        self.source = source
        self.row_index = row_index
        self.expected_dt = expected_dt
        self.actual_dt = actual_dt
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Non-constant dt in '{source}': expected dt = {expected_dt!r} but "
            f"t[{row_index}] - t[{row_index - 1}] = {actual_dt!r} "
            f"(residual = {actual_dt - expected_dt!r}){detail}"
        )


class DimensionMismatchError(TrajectoryError):
    """
    Raised when a table's column count is inconsistent with n and m.

    Attributes:
        source: Name of the offending source.
        expected_columns: Column count implied by the state/input dimensions.
        actual_columns: Column count found in the source.
    """

    def __init__(self, source: str, expected_columns: int, actual_columns: int):
        self.source = source
        self.expected_columns = expected_columns
        self.actual_columns = actual_columns
        super().__init__(
            f"Expected {expected_columns} columns in '{source}' "
            f"but found {actual_columns}"
        )


class RowCountMismatchError(TrajectoryError):
    """
    Raised when the state, input, gain and affine tables differ in length.

    Attributes:
        row_counts: Mapping of source name to its data row count.
        source: First source whose row count differs from the state table.
        expected_rows: Row count of the state table.
        actual_rows: Row count of the offending source.
    """

    def __init__(self, row_counts: dict[str, int]):
        self.row_counts = dict(row_counts)
        sources = list(self.row_counts)
        self.expected_rows = self.row_counts[sources[0]]
        self.source = next(
            s for s in sources if self.row_counts[s] != self.expected_rows
        )
        self.actual_rows = self.row_counts[self.source]
        details = ", ".join(f"{s}: {n}" for s, n in self.row_counts.items())
        super().__init__(
            f"Inconsistent number of rows: expected {self.expected_rows} in "
            f"'{self.source}' but found {self.actual_rows} ({details})"
        )


class LabelParseError(TrajectoryError):
    """
    Raised when the trailing identifier suffix is not a valid integer.

    Attributes:
        identifier: The full base identifier.
        suffix: The fixed-width suffix that failed to parse.
    """

    def __init__(self, identifier: str, suffix: str):
        self.identifier = identifier
        self.suffix = suffix
        super().__init__(
            f"Cannot parse trajectory number from '{identifier}': "
            f"suffix '{suffix}' is not an integer"
        )


class RolloutUnavailableError(TrajectoryError):
    """Raised when a rollout lookup is made on a trajectory without a rollout."""

    pass
