"""Tests for table sources and time-column validation."""

import numpy as np
import pytest

from trajectory_library.errors import NonUniformTimestepError, SourceUnreadableError
from trajectory_library.tables import (
    CSVTableReader,
    MappingTableReader,
    Table,
    check_uniform_timestep,
    compute_sample_interval,
)


class TestCSVTableReader:
    """Tests for reading CSV table sources."""

    def test_reads_header_and_rows(self, tmp_path, csv_writer):
        """Test that the header is consumed and data rows become the table."""
        path = tmp_path / "table.csv"
        data = np.array([[0.0, 1.5, -2.0], [0.1, 2.5, -3.0]])
        csv_writer(path, data, header=["t", "x", "y"])

        table = CSVTableReader().read_table(path)

        assert isinstance(table, Table)
        assert table.source == str(path)
        assert table.header == ["t", "x", "y"]
        assert table.num_rows == 2
        assert table.num_columns == 3
        np.testing.assert_array_equal(table.data, data)

    def test_header_only_gives_empty_table(self, tmp_path):
        """Test that a source with no data rows yields zero rows."""
        path = tmp_path / "empty.csv"
        path.write_text("t,x,y\n")

        table = CSVTableReader().read_table(path)

        assert table.data.shape == (0, 3)

    def test_skips_blank_lines(self, tmp_path):
        """Test that blank lines between rows are ignored."""
        path = tmp_path / "blank.csv"
        path.write_text("t,x\n0.0,1.0\n\n0.1,2.0\n")

        table = CSVTableReader().read_table(path)

        np.testing.assert_array_equal(table.data, [[0.0, 1.0], [0.1, 2.0]])

    def test_missing_file_raises(self, tmp_path):
        """Test that a missing source is reported by name."""
        path = tmp_path / "missing.csv"
        with pytest.raises(SourceUnreadableError, match="missing.csv") as exc_info:
            CSVTableReader().read_table(path)
        assert exc_info.value.source == str(path)

    def test_empty_file_raises(self, tmp_path):
        """Test that a file without a header row is unreadable."""
        path = tmp_path / "nothing.csv"
        path.write_text("")
        with pytest.raises(SourceUnreadableError, match="missing header"):
            CSVTableReader().read_table(path)

    def test_ragged_row_raises_with_row_index(self, tmp_path):
        """Test that a row with the wrong field count is rejected."""
        path = tmp_path / "ragged.csv"
        path.write_text("t,x,y\n0.0,1.0,2.0\n0.1,1.1\n")
        with pytest.raises(SourceUnreadableError, match="expected 3 fields") as exc_info:
            CSVTableReader().read_table(path)
        assert exc_info.value.row_index == 1

    def test_non_numeric_value_raises(self, tmp_path):
        """Test that non-numeric cells are rejected rather than read as zero."""
        path = tmp_path / "text.csv"
        path.write_text("t,x\n0.0,1.0\n0.1,abc\n")
        with pytest.raises(SourceUnreadableError, match="non-numeric") as exc_info:
            CSVTableReader().read_table(path)
        assert exc_info.value.row_index == 1

    def test_custom_delimiter(self, tmp_path):
        """Test reading a semicolon-delimited table."""
        path = tmp_path / "semi.csv"
        path.write_text("t;x\n0.0;1.0\n0.5;2.0\n")

        table = CSVTableReader(delimiter=";").read_table(path)

        np.testing.assert_array_equal(table.data, [[0.0, 1.0], [0.5, 2.0]])


class TestMappingTableReader:
    """Tests for the in-memory table reader."""

    def test_reads_array(self):
        """Test that arrays are served with a synthesized header."""
        reader = MappingTableReader({"a-x.csv": [[0.0, 1.0, 2.0], [1.0, 3.0, 4.0]]})

        table = reader.read_table("a-x.csv")

        assert table.header == ["t", "c1", "c2"]
        assert table.data.dtype == np.float64
        assert table.data.shape == (2, 3)

    def test_unknown_source_raises(self):
        """Test that unknown sources are unreadable."""
        reader = MappingTableReader({})
        with pytest.raises(SourceUnreadableError, match="no such source"):
            reader.read_table("missing-x.csv")

    def test_three_dimensional_array_raises(self):
        """Test that non-tabular arrays are rejected."""
        reader = MappingTableReader({"cube": np.zeros((2, 2, 2))})
        with pytest.raises(SourceUnreadableError, match="2-D"):
            reader.read_table("cube")


class TestSampleInterval:
    """Tests for establishing and checking the sample interval."""

    def test_uniform_times(self):
        """Test dt is taken from the first two rows."""
        times = np.arange(10) * 0.1
        assert compute_sample_interval(times, "state") == pytest.approx(0.1)

    def test_non_uniform_reports_row(self):
        """Test that rows at t=0, 0.1, 0.25 fail at row index 2."""
        with pytest.raises(NonUniformTimestepError) as exc_info:
            compute_sample_interval(np.array([0.0, 0.1, 0.25]), "traj-x.csv")

        error = exc_info.value
        assert error.row_index == 2
        assert error.source == "traj-x.csv"
        assert error.expected_dt == pytest.approx(0.1)
        assert error.actual_dt == pytest.approx(0.15)
        assert "traj-x.csv" in str(error)

    def test_shorter_step_is_rejected(self):
        """Test that deltas smaller than dt are also rejected."""
        with pytest.raises(NonUniformTimestepError) as exc_info:
            compute_sample_interval(np.array([0.0, 0.1, 0.2, 0.25]), "state")
        assert exc_info.value.row_index == 3

    def test_decreasing_time_rejected(self):
        """Test that time must strictly increase."""
        with pytest.raises(NonUniformTimestepError, match="strictly increasing"):
            compute_sample_interval(np.array([0.2, 0.1, 0.0]), "state")

    def test_repeated_time_rejected(self):
        """Test that a zero step is rejected."""
        with pytest.raises(NonUniformTimestepError):
            compute_sample_interval(np.array([0.0, 0.0, 0.0]), "state")

    def test_too_few_samples(self):
        """Test that dt cannot be established from a single row."""
        with pytest.raises(SourceUnreadableError, match="at least 2 samples"):
            compute_sample_interval(np.array([0.0]), "state")

    def test_accumulated_rounding_is_tolerated(self):
        """Test that float rounding in generated time columns is accepted."""
        times = np.arange(1000) * 0.01
        assert compute_sample_interval(times, "state") == pytest.approx(0.01)

    def test_large_time_offsets_are_tolerated(self):
        """Test that the tolerance scales with the time magnitude."""
        times = 100.0 + np.arange(500) * 0.02
        assert compute_sample_interval(times, "state") == pytest.approx(0.02)

    def test_zero_tolerance_rejects_rounding(self):
        """Test that tolerance_eps=0 requires bit-exact deltas."""
        times = np.array([0.0, 0.1, 0.2, 0.30000000000000004])
        with pytest.raises(NonUniformTimestepError):
            compute_sample_interval(times, "state", tolerance_eps=0.0)

    def test_check_against_known_dt(self):
        """Test checking a time column against an externally known dt."""
        check_uniform_timestep(np.arange(4) * 0.1, 0.1, "rollout")
        with pytest.raises(NonUniformTimestepError) as exc_info:
            check_uniform_timestep(np.arange(4) * 0.2, 0.1, "rollout")
        assert exc_info.value.row_index == 1

    def test_nan_time_reports_row(self):
        """Test that a NaN in the time column is rejected at its row."""
        times = np.arange(5) * 0.1
        times[2] = np.nan
        with pytest.raises(NonUniformTimestepError, match="not finite") as exc_info:
            compute_sample_interval(times, "state")
        assert exc_info.value.row_index == 2

    def test_nan_in_last_row_rejected(self):
        """Test that a trailing NaN cannot slip through as the final time."""
        times = np.arange(5) * 0.1
        times[4] = np.nan
        with pytest.raises(NonUniformTimestepError) as exc_info:
            compute_sample_interval(times, "state")
        assert exc_info.value.row_index == 4

    def test_infinite_last_row_rejected(self):
        """Test that an infinite final time does not widen the tolerance."""
        times = np.arange(5) * 0.1
        times[4] = np.inf
        with pytest.raises(NonUniformTimestepError, match="not finite") as exc_info:
            compute_sample_interval(times, "state")
        assert exc_info.value.row_index == 4

    def test_non_finite_first_row_rejected(self):
        """Test that a non-finite first time is reported against row 1."""
        times = np.array([np.nan, 0.1, 0.2])
        with pytest.raises(
            NonUniformTimestepError, match=r"t\[0\] is not finite"
        ) as exc_info:
            compute_sample_interval(times, "state")
        assert exc_info.value.row_index == 1

    def test_check_against_known_dt_rejects_nan(self):
        """Test that checking against a known dt also rejects NaN times."""
        times = np.arange(4) * 0.1
        times[0] = np.nan
        with pytest.raises(NonUniformTimestepError, match="not finite"):
            check_uniform_timestep(times, 0.1, "rollout")
