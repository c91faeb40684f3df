"""
Trajectory Library

Loads every trajectory stored in a directory and looks them up by number.

A directory holds one trajectory per state source (``<prefix>-x.csv`` with
the default suffixes). A trajectory is treated as time-invariant when its
rollout source exists next to the state source.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

from .config import LoaderConfig
from .tables import TableReader
from .trajectory import Trajectory

logger = logging.getLogger(__name__)


class TrajectoryLibrary:
    """
    Collection of trajectories keyed by trajectory number.

    Attributes:
        directory (Path | None): Directory the library was loaded from.
    """

    def __init__(
        self,
        trajectories: list[Trajectory] | None = None,
        directory: str | Path | None = None,
    ):
        """
        Initialize the library.

        Args:
            trajectories: Trajectories to index. On duplicate numbers the
                first one is kept.
            directory: Directory the trajectories came from, if any.
        """
        self.directory = Path(directory) if directory is not None else None
        self._trajectories: dict[int, Trajectory] = {}
        for trajectory in trajectories or []:
            self.add(trajectory)

    @classmethod
    def from_directory(
        cls,
        directory: str | Path,
        reader: TableReader | None = None,
        config: LoaderConfig | None = None,
    ) -> "TrajectoryLibrary":
        """
        Load all trajectories found in a directory.

        Args:
            directory: Directory containing the trajectory sources.
            reader: Table reader passed to each Trajectory.from_prefix call.
            config: Loader configuration.

        Returns:
            The populated library.

        Raises:
            FileNotFoundError: If the directory does not exist.
            TrajectoryError: If any trajectory fails to load.
        """
        directory = Path(directory)
        config = config or LoaderConfig()
        if not directory.is_dir():
            raise FileNotFoundError(f"Trajectory directory not found: {directory}")

        state_suffix = config.suffixes.state
        rollout_suffix = config.suffixes.rollout

        trajectories = []
        for state_path in sorted(directory.glob(f"*{state_suffix}")):
            prefix = str(state_path)[: -len(state_suffix)]
            time_invariant = Path(prefix + rollout_suffix).is_file()
            trajectories.append(
                Trajectory.from_prefix(
                    prefix,
                    time_invariant=time_invariant,
                    reader=reader,
                    config=config,
                )
            )

        library = cls(trajectories, directory=directory)
        logger.info("Loaded %d trajectories from %s", len(library), directory)
        return library

    def add(self, trajectory: Trajectory) -> None:
        """Add a trajectory, ignoring it if its number is already present."""
        if trajectory.label in self._trajectories:
            logger.warning(
                "Duplicate trajectory number %d ('%s'), keeping '%s'",
                trajectory.label,
                trajectory.name,
                self._trajectories[trajectory.label].name,
            )
            return
        self._trajectories[trajectory.label] = trajectory

    def get_trajectory_by_number(self, label: int) -> Trajectory:
        """
        Look up a trajectory by number.

        Raises:
            KeyError: If no trajectory has that number.
        """
        try:
            return self._trajectories[label]
        except KeyError:
            raise KeyError(f"No trajectory with number {label}") from None

    @property
    def labels(self) -> list[int]:
        return sorted(self._trajectories)

    def __len__(self) -> int:
        return len(self._trajectories)

    def __contains__(self, label: object) -> bool:
        return label in self._trajectories

    def __iter__(self) -> Iterator[Trajectory]:
        return (self._trajectories[label] for label in self.labels)
