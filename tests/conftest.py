"""
Pytest configuration and shared fixtures for trajectory_library tests.
"""

import csv

import numpy as np
import pytest


def make_tables(
    num_samples: int = 5,
    state_dimension: int = 2,
    input_dimension: int = 3,
    dt: float = 0.1,
    t0: float = 0.0,
) -> dict[str, np.ndarray]:
    """Build a consistent set of trajectory tables with distinguishable values."""
    n, m = state_dimension, input_dimension
    times = t0 + np.arange(num_samples) * dt
    k = np.arange(num_samples)[:, None]

    state = np.hstack([times[:, None], 1.0 + k + 0.1 * np.arange(1, n + 1)])
    inputs = np.hstack([times[:, None], 10.0 + k + 0.1 * np.arange(1, m + 1)])
    gain = np.hstack([times[:, None], 100.0 * (k + 1) + np.arange(n * m)])
    affine = np.hstack([times[:, None], -1.0 - k - 0.1 * np.arange(1, m + 1)])
    return {"state": state, "input": inputs, "gain": gain, "affine": affine}


def write_csv(path, table: np.ndarray, header: list[str] | None = None) -> None:
    """Write a table as CSV with a header row."""
    table = np.asarray(table)
    if header is None:
        header = ["t"] + [f"c{i}" for i in range(1, table.shape[1])]
    with open(path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for row in table:
            writer.writerow([repr(float(v)) for v in row])


def write_trajectory(
    directory,
    name: str,
    tables: dict[str, np.ndarray],
    rollout: np.ndarray | None = None,
) -> str:
    """Write trajectory tables using the default source suffixes."""
    prefix = str(directory / name)
    write_csv(prefix + "-x.csv", tables["state"])
    write_csv(prefix + "-u.csv", tables["input"])
    write_csv(prefix + "-controller.csv", tables["gain"])
    write_csv(prefix + "-affine.csv", tables["affine"])
    if rollout is not None:
        write_csv(prefix + "-rollout.csv", rollout)
    return prefix


@pytest.fixture
def tables():
    """Five samples, n=2, m=3, dt=0.1 starting at t=0."""
    return make_tables()


@pytest.fixture
def small_tables():
    """Three-sample trajectory with n=2 and m=1."""
    state = np.array([[0.0, 1.0, 2.0], [0.1, 1.1, 2.1], [0.2, 1.2, 2.2]])
    inputs = np.array([[0.0, 5.0], [0.1, 6.0], [0.2, 7.0]])
    gain = np.array([[0.0, 0.5, 0.6], [0.1, 0.7, 0.8], [0.2, 0.9, 1.0]])
    affine = np.array([[0.0, -1.0], [0.1, -2.0], [0.2, -3.0]])
    return {"state": state, "input": inputs, "gain": gain, "affine": affine}


@pytest.fixture
def trajectory_prefix(tmp_path, small_tables):
    """CSV sources for the small trajectory, numbered 12."""
    return write_trajectory(tmp_path, "traj-00012", small_tables)


@pytest.fixture
def table_factory():
    """Factory building trajectory tables, see make_tables()."""
    return make_tables


@pytest.fixture
def trajectory_writer():
    """Factory writing trajectory CSV sources, see write_trajectory()."""
    return write_trajectory


@pytest.fixture
def csv_writer():
    """Factory writing a single CSV table, see write_csv()."""
    return write_csv
