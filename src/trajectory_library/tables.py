"""
Trajectory Table Sources

Loads rectangular numeric tables from named sources and validates the
time column shared by all trajectory tables.

Table Format:
    First row: field names (only counted, content otherwise unused)
    Data rows: comma-separated floating-point values, one row per sample
    Column 0:  elapsed time in seconds

Readers:
- CSVTableReader: comma-separated text files on disk
- MappingTableReader: in-memory arrays keyed by source name

Any object with a ``read_table(source) -> Table`` method can be passed
where a reader is expected.
"""

import csv
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

import numpy as np

from .errors import NonUniformTimestepError, SourceUnreadableError

logger = logging.getLogger(__name__)

# Timestep residual allowance, in multiples of machine epsilon per step
DEFAULT_TOLERANCE_EPS = 5.0


@dataclass
class Table:
    """
    A dense numeric table read from a named source.

    Attributes:
        source: Name the table was read from.
        data: 2-D float64 array of shape (rows, columns).
        header: Field names from the header row.
    """

    source: str
    data: np.ndarray
    header: list[str] = field(default_factory=list)

    @property
    def num_rows(self) -> int:
        return self.data.shape[0]

    @property
    def num_columns(self) -> int:
        return self.data.shape[1]


class TableReader(Protocol):
    """Capability to load a full rectangular table from a named source."""

    def read_table(self, source: str) -> Table: ...


class CSVTableReader:
    """
    Reads comma-separated tables with a single header row.

    Attributes:
        delimiter (str): Field delimiter.
    """

    def __init__(self, delimiter: str = ","):
        self.delimiter = delimiter

    def read_table(self, source: str | Path) -> Table:
        """
        Read a table from a CSV file.

        Args:
            source: Path of the CSV file.

        Returns:
            Table with one row per data line and one column per header field.

        Raises:
            SourceUnreadableError: If the file is missing, unreadable, empty,
                ragged, or contains non-numeric cells.
        """
        path = Path(source)
        name = str(source)
        logger.debug("Loading %s", name)

        try:
            with open(path, newline="") as f:
                reader = csv.reader(f, delimiter=self.delimiter)
                header = next(reader, None)
                if header is None:
                    raise SourceUnreadableError(name, "missing header row")
                rows = [row for row in reader if row]
        except FileNotFoundError as e:
            raise SourceUnreadableError(name, "file not found") from e
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            raise SourceUnreadableError(name, str(e)) from e

        num_columns = len(header)
        data = np.empty((len(rows), num_columns), dtype=np.float64)
        for row_index, row in enumerate(rows):
            if len(row) != num_columns:
                raise SourceUnreadableError(
                    name,
                    f"expected {num_columns} fields but found {len(row)}",
                    row_index=row_index,
                )
            try:
                data[row_index] = [float(value) for value in row]
            except ValueError as e:
                raise SourceUnreadableError(
                    name, f"non-numeric value: {e}", row_index=row_index
                ) from e

        return Table(source=name, data=data, header=[h.strip() for h in header])


class MappingTableReader:
    """
    Serves tables from an in-memory mapping of source name to array.

    A header of ``t, c1, c2, ...`` is synthesized for each table.
    """

    def __init__(self, tables: Mapping[str, np.ndarray]):
        self.tables = {str(k): v for k, v in tables.items()}

    def read_table(self, source: str | Path) -> Table:
        name = str(source)
        if name not in self.tables:
            raise SourceUnreadableError(name, "no such source")

        data = np.array(self.tables[name], dtype=np.float64, ndmin=2)
        if data.ndim != 2:
            raise SourceUnreadableError(
                name, f"table must be 2-D, got {data.ndim} dimensions"
            )
        header = ["t"] + [f"c{i}" for i in range(1, data.shape[1])]
        return Table(source=name, data=data, header=header)


def _timestep_tolerance(t: float, tolerance_eps: float) -> float:
    # Residuals scale with the magnitude of the time values once past 1 s
    return tolerance_eps * np.finfo(np.float64).eps * max(1.0, abs(t))


def check_uniform_timestep(
    times: np.ndarray,
    dt: float,
    source: str,
    tolerance_eps: float = DEFAULT_TOLERANCE_EPS,
    start_row: int = 1,
) -> None:
    """
    Check that every consecutive time delta matches dt.

    Args:
        times: Time column.
        dt: Expected sample interval.
        source: Source name for error reporting.
        tolerance_eps: Allowed residual in multiples of machine epsilon.
        start_row: First row whose delta to its predecessor is checked.

    Raises:
        NonUniformTimestepError: At the first row whose delta differs from dt,
            or whose time value is not finite.
    """
    times = np.asarray(times, dtype=np.float64)
    first_row = max(start_row, 1)
    _check_finite_times(times, float(dt), source, first_row - 1)

    for row_index in range(first_row, len(times)):
        delta = times[row_index] - times[row_index - 1]
        tolerance = _timestep_tolerance(times[row_index], tolerance_eps)
        if not abs(delta - dt) <= tolerance:
            raise NonUniformTimestepError(
                source, row_index, float(dt), float(delta)
            )


def _check_finite_times(
    times: np.ndarray, dt: float, source: str, first_row: int = 0
) -> None:
    non_finite = np.flatnonzero(~np.isfinite(times[first_row:]))
    if non_finite.size == 0:
        return
    row_index = first_row + int(non_finite[0])
    # Row 0 has no predecessor, so report the step into row 1
    delta_row = max(row_index, 1)
    delta = float(times[delta_row] - times[delta_row - 1])
    raise NonUniformTimestepError(
        source, delta_row, dt, delta, reason=f"t[{row_index}] is not finite"
    )


def compute_sample_interval(
    times: np.ndarray,
    source: str,
    tolerance_eps: float = DEFAULT_TOLERANCE_EPS,
) -> float:
    """
    Establish the sample interval of a time column.

    dt is taken from the first two rows; every later delta must match it.

    Args:
        times: Time column (at least two entries).
        source: Source name for error reporting.
        tolerance_eps: Allowed residual in multiples of machine epsilon.

    Returns:
        The sample interval dt.

    Raises:
        SourceUnreadableError: If fewer than two samples are present.
        NonUniformTimestepError: If a time value is not finite, time does not
            strictly increase, or a later delta differs from dt.
    """
    times = np.asarray(times, dtype=np.float64)
    if len(times) < 2:
        raise SourceUnreadableError(
            source,
            f"at least 2 samples are needed to establish dt, found {len(times)}",
        )

    dt = float(times[1] - times[0])
    _check_finite_times(times, dt, source)
    if not dt > 0.0:
        raise NonUniformTimestepError(
            source, 1, dt, dt, reason="time must be strictly increasing"
        )

    check_uniform_timestep(times, dt, source, tolerance_eps, start_row=2)
    return dt
