#!/usr/bin/env python3
"""
Trajectory Report Script

Loads a trajectory from its table sources and prints a diagnostic dump:
- Name, number, dimensions and sample interval
- All state, input, gain, affine (and rollout) tables
- Optionally the reference state, input and gain matrix at a query time

Usage:
    python -m trajectory_library.report trajlib/traj-00012
    python -m trajectory_library.report trajlib/traj-00012 --time 1.25
    python -m trajectory_library.report trajlib/traj-00000 --time-invariant --json
"""

import argparse
import json
import logging
import sys

import numpy as np

from trajectory_library.config import LoaderConfig, load_config
from trajectory_library.errors import TrajectoryError
from trajectory_library.trajectory import Trajectory

logger = logging.getLogger(__name__)


def format_query(trajectory: Trajectory, t: float) -> str:
    """
    Format the reference values of a trajectory at time t.

    Args:
        trajectory: Loaded trajectory.
        t: Query time in seconds.

    Returns:
        Formatted string report.
    """
    index = trajectory.get_index_from_time(t)
    lines = [
        "=" * 60,
        f"QUERY t = {t} (index {index}, "
        f"sample time {trajectory.get_time_at_index(index)})",
        "=" * 60,
        f"x0: {np.array2string(trajectory.get_state(t))}",
        f"u0: {np.array2string(trajectory.get_u_command(t))}",
        f"affine: {np.array2string(trajectory.get_affine_term(t))}",
        "K:",
        np.array2string(trajectory.get_gain_matrix(t)),
    ]
    if trajectory.is_time_invariant:
        lines.append(
            f"rollout x: {np.array2string(trajectory.get_rollout_state(t))}"
        )
    return "\n".join(lines)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Load a precomputed trajectory and print its tables"
    )
    parser.add_argument(
        "prefix",
        type=str,
        help="Trajectory base identifier, e.g. trajlib/traj-00012",
    )
    parser.add_argument(
        "--time-invariant",
        action="store_true",
        default=None,
        help="Also load the precomputed rollout table",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML or JSON loader configuration",
    )
    parser.add_argument(
        "--time",
        type=float,
        help="Print reference state, input and gain at this time",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the trajectory as JSON instead of a text dump",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)

    try:
        config_dict = load_config(args.config)
        loader_config = LoaderConfig.from_dict(config_dict)
        logging.basicConfig(
            level=config_dict["logging"]["level"],
            format=config_dict["logging"]["format"],
        )
    except (OSError, TypeError, ValueError) as e:
        print(f"Failed to load configuration: {e}", file=sys.stderr)
        return 1

    try:
        trajectory = Trajectory.from_prefix(
            args.prefix,
            time_invariant=args.time_invariant,
            config=loader_config,
        )
    except TrajectoryError as e:
        logger.error("Failed to load trajectory: %s", e)
        return 1

    if args.json:
        print(json.dumps(trajectory.to_dict(), indent=2))
    else:
        print(trajectory.format_report())

    if args.time is not None:
        print(format_query(trajectory, args.time))

    return 0


if __name__ == "__main__":
    sys.exit(main())
