"""
Trajectory Library Package

Precomputed-trajectory store for time-varying LQR tracking controllers.
Given a time along the trajectory it returns the reference state, the
reference control input and the feedback gain matrix for that instant.

Modules:
- trajectory: Trajectory container and time-indexed queries
- tables: Table sources (CSV, in-memory) and time-column validation
- library: Directory-wide collections of trajectories keyed by number
- config: Loader configuration (YAML/JSON with environment overrides)
- errors: Load-time error hierarchy
- report: Command-line diagnostic dump
"""

import importlib.metadata

try:
    __version__ = importlib.metadata.version("trajectory-library")
except importlib.metadata.PackageNotFoundError:
    # Fallback for when the package is not installed
    __version__ = "0.0.0-dev"

from trajectory_library.config import (
    LoaderConfig,
    SourceSuffixes,
    get_default_config,
    load_config,
)
from trajectory_library.errors import (
    DimensionMismatchError,
    LabelParseError,
    NonUniformTimestepError,
    RolloutUnavailableError,
    RowCountMismatchError,
    SourceUnreadableError,
    TrajectoryError,
)
from trajectory_library.library import TrajectoryLibrary
from trajectory_library.tables import (
    CSVTableReader,
    MappingTableReader,
    Table,
    TableReader,
    check_uniform_timestep,
    compute_sample_interval,
)
from trajectory_library.trajectory import (
    Trajectory,
    parse_label,
    resolve_index,
    unpack_gain_row,
)

__all__ = [
    "Trajectory",
    "TrajectoryLibrary",
    "parse_label",
    "resolve_index",
    "unpack_gain_row",
    # Tables
    "Table",
    "TableReader",
    "CSVTableReader",
    "MappingTableReader",
    "compute_sample_interval",
    "check_uniform_timestep",
    # Configuration
    "LoaderConfig",
    "SourceSuffixes",
    "load_config",
    "get_default_config",
    # Errors
    "TrajectoryError",
    "SourceUnreadableError",
    "NonUniformTimestepError",
    "DimensionMismatchError",
    "RowCountMismatchError",
    "LabelParseError",
    "RolloutUnavailableError",
]
