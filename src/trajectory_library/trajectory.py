"""
Precomputed Trajectory Store

Holds a trajectory sampled at a fixed timestep and answers time-indexed
queries for the feedback controller that tracks it.

Tables (all share the time axis in column 0):
    state:   [t, x_1 .. x_n]          reference state x(t)
    input:   [t, u_1 .. u_m]          reference control u(t)
    gain:    [t, K flattened (n*m)]   time-varying feedback gain K(t)
    affine:  [t, c_1 .. c_m]          feedforward term per input channel
    rollout: [t, x_1 .. x_n]          precomputed forward simulation
                                      (time-invariant trajectories only)

Gain Layout:
    The gain row is stored channel-major: input channel i occupies columns
    [i*n + 1, i*n + n] of the row. get_gain_matrix() unpacks it into an
    (m x n) matrix whose row i is that slice.

Lookup Policy:
    Queries use the nearest sample (no interpolation). Times before the
    first sample or after the last one are clamped to the boundary sample
    rather than reported as errors. Loading, by contrast, is strict and
    raises a TrajectoryError subclass on any malformed table.

A Trajectory is immutable after construction; its tables are flagged
read-only, so it may be shared between reader threads once built.
"""

import logging
import re
import sys
from pathlib import Path

import numpy as np

from .config import LoaderConfig
from .errors import (
    DimensionMismatchError,
    LabelParseError,
    RolloutUnavailableError,
    RowCountMismatchError,
    SourceUnreadableError,
)
from .tables import (
    DEFAULT_TOLERANCE_EPS,
    CSVTableReader,
    TableReader,
    check_uniform_timestep,
    compute_sample_interval,
)

logger = logging.getLogger(__name__)

_LABEL_PATTERN = re.compile(r"[+-]?\d+")


def parse_label(identifier: str, width: int = 5) -> int:
    """
    Parse the trajectory number from the trailing characters of an identifier.

    Args:
        identifier: Base identifier, e.g. "trajlib/traj-00042".
        width: Number of trailing characters holding the number.

    Returns:
        The parsed trajectory number.

    Raises:
        LabelParseError: If the suffix is missing or not an integer.
    """
    identifier = str(identifier)
    suffix = identifier[-width:] if len(identifier) >= width else identifier
    if len(identifier) < width or not _LABEL_PATTERN.fullmatch(suffix):
        raise LabelParseError(identifier, suffix)
    return int(suffix)


def resolve_index(t: float, dt: float, t0: float, tf: float, num_rows: int) -> int:
    """
    Map a query time to the nearest row index of a constant-step table.

    Args:
        t: Query time in seconds.
        dt: Sample interval.
        t0: Time of the first row.
        tf: Time of the last row.
        num_rows: Number of rows in the table.

    Returns:
        Row index in [0, num_rows - 1].
    """
    if t < t0:
        return 0
    if t > tf:
        return num_rows - 1

    # Quotient and remainder from one operation so they agree near ticks
    num_steps, remainder = divmod(t, dt)
    if remainder > 0.5 * dt:
        num_steps += 1

    start_offset = t0 // dt
    index = int(num_steps + start_offset)
    return min(max(index, 0), num_rows - 1)


def unpack_gain_row(
    gain_row: np.ndarray, state_dimension: int, input_dimension: int
) -> np.ndarray:
    """
    Unpack a flattened gain row (time column included) into an (m x n) matrix.

    Row i of the result is gain_row[i*n + 1 : i*n + n + 1].
    """
    n, m = state_dimension, input_dimension
    return np.array(gain_row[1 : 1 + n * m], dtype=np.float64).reshape(m, n)


def _as_table(values, source: str) -> np.ndarray:
    try:
        table = np.array(values, dtype=np.float64, ndmin=2)
    except (TypeError, ValueError) as e:
        raise SourceUnreadableError(source, f"not a numeric table: {e}") from e
    if table.ndim != 2:
        raise SourceUnreadableError(
            source, f"table must be 2-D, got {table.ndim} dimensions"
        )
    if table.shape[1] == 0:
        raise SourceUnreadableError(source, "table has no time column")
    table.setflags(write=False)
    return table


class Trajectory:
    """
    A fixed-timestep reference trajectory with time-varying feedback gains.

    Attributes:
        name (str): Base identifier the trajectory was loaded from.
        label (int): Trajectory number parsed from the identifier.
        state_dimension (int): State dimension n.
        input_dimension (int): Control input dimension m.
        sample_interval (float): Constant time step dt between rows.
    """

    def __init__(
        self,
        state_table,
        input_table,
        gain_table,
        affine_table,
        rollout_table=None,
        label: int = -1,
        name: str = "",
        sources: dict[str, str] | None = None,
        tolerance_eps: float = DEFAULT_TOLERANCE_EPS,
    ):
        """
        Validate and take ownership of the trajectory tables.

        Args:
            state_table: Rows of [t, x_1..x_n].
            input_table: Rows of [t, u_1..u_m].
            gain_table: Rows of [t, K flattened channel-major].
            affine_table: Rows of [t, c_1..c_m].
            rollout_table: Optional rows of [t, x_1..x_n] for time-invariant
                trajectories. Its row count is independent of the others.
            label: Trajectory number.
            name: Base identifier, used in diagnostics.
            sources: Source name per table role, used in error messages.
                Defaults to the role names themselves.
            tolerance_eps: Allowed time-step residual in multiples of
                machine epsilon.

        Raises:
            SourceUnreadableError: If a table is not a 2-D numeric array, or
                the state table has fewer than two rows.
            NonUniformTimestepError: If the state (or rollout) time column is
                not strictly increasing with a constant step.
            DimensionMismatchError: If the gain, affine or rollout widths are
                inconsistent with n and m.
            RowCountMismatchError: If the four core tables differ in length.
        """
        sources = {
            "state": "state",
            "input": "input",
            "gain": "gain",
            "affine": "affine",
            "rollout": "rollout",
            **(sources or {}),
        }

        self.name = str(name)
        self.label = int(label)

        self._state = _as_table(state_table, sources["state"])
        self._input = _as_table(input_table, sources["input"])
        self._gain = _as_table(gain_table, sources["gain"])
        self._affine = _as_table(affine_table, sources["affine"])

        self.sample_interval = compute_sample_interval(
            self._state[:, 0], sources["state"], tolerance_eps
        )
        self.state_dimension = self._state.shape[1] - 1
        self.input_dimension = self._input.shape[1] - 1
        n, m = self.state_dimension, self.input_dimension

        if self._gain.shape[1] - 1 != n * m:
            raise DimensionMismatchError(
                sources["gain"], n * m + 1, self._gain.shape[1]
            )
        if self._affine.shape[1] - 1 != m:
            raise DimensionMismatchError(
                sources["affine"], m + 1, self._affine.shape[1]
            )

        row_counts = {
            sources["state"]: self._state.shape[0],
            sources["input"]: self._input.shape[0],
            sources["gain"]: self._gain.shape[0],
            sources["affine"]: self._affine.shape[0],
        }
        if len(set(row_counts.values())) != 1:
            raise RowCountMismatchError(row_counts)

        self._rollout = None
        if rollout_table is not None:
            rollout = _as_table(rollout_table, sources["rollout"])
            if rollout.shape[1] != self._state.shape[1]:
                raise DimensionMismatchError(
                    sources["rollout"], self._state.shape[1], rollout.shape[1]
                )
            if rollout.shape[0] == 0:
                raise SourceUnreadableError(sources["rollout"], "no data rows")
            check_uniform_timestep(
                rollout[:, 0], self.sample_interval, sources["rollout"], tolerance_eps
            )
            self._rollout = rollout

    @classmethod
    def from_prefix(
        cls,
        prefix: str | Path,
        time_invariant: bool | None = None,
        reader: TableReader | None = None,
        config: LoaderConfig | None = None,
    ) -> "Trajectory":
        """
        Load a trajectory from the sources named by a base identifier.

        Source names are the prefix followed by a role suffix, e.g.
        "traj-00012-x.csv" for the state table.

        Args:
            prefix: Base identifier; its trailing digits give the label.
            time_invariant: Whether to also load the rollout table. Falls back
                to config.time_invariant when None.
            reader: Table reader (defaults to CSVTableReader).
            config: Loader configuration (defaults to LoaderConfig()).

        Returns:
            The validated Trajectory.

        Raises:
            LabelParseError: If the prefix does not end in a number.
            TrajectoryError: Any loading or validation failure.
        """
        config = config or LoaderConfig()
        reader = reader or CSVTableReader()
        prefix = str(prefix)
        if time_invariant is None:
            time_invariant = config.time_invariant

        label = parse_label(prefix, config.label_width)
        logger.info("Loading trajectory: %s", prefix)

        roles = ["state", "input", "gain", "affine"]
        if time_invariant:
            roles.append("rollout")

        tables = {
            role: reader.read_table(prefix + config.suffixes.for_role(role))
            for role in roles
        }
        rollout = tables.get("rollout")

        trajectory = cls(
            tables["state"].data,
            tables["input"].data,
            tables["gain"].data,
            tables["affine"].data,
            rollout_table=rollout.data if rollout is not None else None,
            label=label,
            name=prefix,
            sources={role: table.source for role, table in tables.items()},
            tolerance_eps=config.timestep_tolerance_eps,
        )
        logger.debug("Loaded %r", trajectory)
        return trajectory

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state_table(self) -> np.ndarray:
        return self._state

    @property
    def input_table(self) -> np.ndarray:
        return self._input

    @property
    def gain_table(self) -> np.ndarray:
        return self._gain

    @property
    def affine_table(self) -> np.ndarray:
        return self._affine

    @property
    def rollout_table(self) -> np.ndarray | None:
        return self._rollout

    @property
    def times(self) -> np.ndarray:
        """Time column of the state table."""
        return self._state[:, 0]

    @property
    def num_samples(self) -> int:
        return self._state.shape[0]

    @property
    def is_time_invariant(self) -> bool:
        """True when the trajectory carries a precomputed rollout."""
        return self._rollout is not None

    def __len__(self) -> int:
        return self.num_samples

    def __repr__(self) -> str:
        return (
            f"Trajectory(label={self.label}, n={self.state_dimension}, "
            f"m={self.input_dimension}, samples={self.num_samples}, "
            f"dt={self.sample_interval!r})"
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_index_from_time(self, t: float, use_rollout: bool = False) -> int:
        """
        Compute the nearest row index for a query time, assuming constant dt.

        Args:
            t: Time along the trajectory in seconds.
            use_rollout: Use the rollout table's time bounds instead of the
                state table's.

        Returns:
            Index of the nearest sample, clamped to the table.

        Raises:
            ValueError: If t is NaN. Infinite times clamp like any other
                out-of-range time.
        """
        t = float(t)
        if np.isnan(t):
            raise ValueError(f"query time must be finite, got {t}")
        table = self._rollout_or_raise() if use_rollout else self._state
        return resolve_index(
            t,
            self.sample_interval,
            float(table[0, 0]),
            float(table[-1, 0]),
            table.shape[0],
        )

    def get_state(self, t: float) -> np.ndarray:
        """Reference state x(t) of length n."""
        index = self.get_index_from_time(t)
        return self._state[index, 1:].copy()

    def get_u_command(self, t: float) -> np.ndarray:
        """Reference control input u(t) of length m."""
        # Indexed with the state table's bounds; row counts are equal
        index = self.get_index_from_time(t)
        return self._input[index, 1:].copy()

    def get_affine_term(self, t: float) -> np.ndarray:
        """Feedforward term of length m."""
        index = self.get_index_from_time(t)
        return self._affine[index, 1:].copy()

    def get_rollout_state(self, t: float) -> np.ndarray:
        """
        State of the precomputed rollout at time t.

        Raises:
            RolloutUnavailableError: If the trajectory has no rollout table.
        """
        index = self.get_index_from_time(t, use_rollout=True)
        return self._rollout[index, 1:].copy()

    def get_gain_matrix(self, t: float) -> np.ndarray:
        """
        Unpack the gain matrix for time t.

        Args:
            t: Time along the trajectory.

        Returns:
            Gain matrix of shape (input_dimension, state_dimension).
        """
        index = self.get_index_from_time(t)
        return unpack_gain_row(
            self._gain[index], self.state_dimension, self.input_dimension
        )

    def get_time_at_index(self, index: int) -> float:
        return float(self._state[index, 0])

    def get_max_time(self) -> float:
        return float(self._state[-1, 0])

    def get_transformed_point(
        self,
        t: float,
        rotation: np.ndarray,
        translation: np.ndarray,
    ) -> np.ndarray:
        """
        Apply a rigid transform to the position (first three states) at time t.

        Args:
            t: Time along the trajectory.
            rotation: 3x3 rotation matrix from the trajectory frame.
            translation: 3-vector translation.

        Returns:
            Transformed [x, y, z] point.

        Raises:
            ValueError: If the state has fewer than three components or the
                transform has the wrong shape.
        """
        if self.state_dimension < 3:
            raise ValueError(
                f"Need at least 3 state components, have {self.state_dimension}"
            )
        rotation = np.asarray(rotation, dtype=np.float64)
        translation = np.asarray(translation, dtype=np.float64)
        if rotation.shape != (3, 3):
            raise ValueError(f"Rotation must be 3x3, got shape {rotation.shape}")
        if translation.shape != (3,):
            raise ValueError(
                f"Translation must be 3D, got shape {translation.shape}"
            )

        return rotation @ self.get_state(t)[:3] + translation

    def _rollout_or_raise(self) -> np.ndarray:
        if self._rollout is None:
            raise RolloutUnavailableError(
                f"Trajectory {self.label} ('{self.name}') has no rollout table"
            )
        return self._rollout

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def to_dict(self) -> dict:
        """Convert trajectory to a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "label": self.label,
            "state_dimension": self.state_dimension,
            "input_dimension": self.input_dimension,
            "sample_interval": self.sample_interval,
            "num_samples": self.num_samples,
            "max_time": self.get_max_time(),
            "time_invariant": self.is_time_invariant,
            "state": self._state.tolist(),
            "input": self._input.tolist(),
            "gain": self._gain.tolist(),
            "affine": self._affine.tolist(),
            "rollout": self._rollout.tolist() if self._rollout is not None else None,
        }

    def format_report(self) -> str:
        """
        Format all tables as a human-readable dump.

        Returns:
            Formatted string report.
        """
        def block(title: str, table: np.ndarray) -> list[str]:
            return [
                f"------------- {title} -------------",
                np.array2string(table, max_line_width=120, threshold=sys.maxsize),
            ]

        lines = [
            "------------ Trajectory print -------------",
            f"Filename: {self.name}",
            f"Trajectory number: {self.label}",
            f"Dimension: {self.state_dimension}",
            f"u-dimension: {self.input_dimension}",
            f"dt: {self.sample_interval}",
            f"Samples: {self.num_samples} (t = {self._state[0, 0]} .. "
            f"{self.get_max_time()})",
        ]
        lines += block("x points", self._state)
        lines += block("u points", self._input)
        lines += block("k points", self._gain)
        lines += block("affine points", self._affine)
        if self._rollout is not None:
            lines += block("rollout points", self._rollout)
        return "\n".join(lines)
