"""
Tests for quality-flag filtering.
"""

import numpy as np
import pandas as pd
import pytest

from swmpy.models import SWMPTable
from swmpy.qaqc import flag_code, qaqc, qaqc_summary

from helpers import make_frame


@pytest.fixture
def flagged(wq_station):
    df = make_frame(
        "2012-01-01",
        5,
        temp=[1.0, 2.0, 3.0, 4.0, 5.0],
        f_temp=["<0>", "<-3> [GSM]", "<1> (CSM)", 0, None],
        do_mgl=[7.0, 7.1, np.nan, 7.3, 7.4],
        f_do_mgl=["<0>", "<0>", "<-2> [GIM]", "<-4> [SOC]", "<0>"],
    )
    return SWMPTable(df, wq_station)


class TestFlagCode:
    """Test parsing of provider flag values."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("<0>", 0),
            ("<-3> [GSM] [CSM]", -3),
            ("<1> (CRE)", 1),
            (" <4> ", 4),
            ("0", 0),
            (-2, -2),
            (1.0, 1),
            (np.int64(5), 5),
            (None, None),
            (np.nan, None),
            ("", None),
            ("[GSM]", None),
        ],
    )
    def test_flag_code(self, value, expected):
        assert flag_code(value) == expected


class TestQAQC:
    """Test the quality filter."""

    def test_default_keeps_zero(self, flagged):
        out = qaqc(flagged)
        df = out.to_pandas()
        assert not out.qaqc_cols
        assert list(df.columns) == ["datetimestamp", "temp", "do_mgl"]
        np.testing.assert_array_equal(
            df["temp"].to_numpy(), [1.0, np.nan, np.nan, 4.0, np.nan]
        )
        np.testing.assert_array_equal(
            df["do_mgl"].to_numpy(), [7.0, 7.1, np.nan, np.nan, 7.4]
        )

    def test_custom_acceptance_set(self, flagged):
        df = qaqc(flagged, qaqc_keep=[0, 1, -3]).to_pandas()
        np.testing.assert_array_equal(
            df["temp"].to_numpy(), [1.0, 2.0, 3.0, 4.0, np.nan]
        )

    @pytest.mark.parametrize("keep", [None, [], set()])
    def test_empty_acceptance_strips_flags_only(self, flagged, keep):
        df = qaqc(flagged, qaqc_keep=keep).to_pandas()
        original = flagged.to_pandas()
        assert list(df.columns) == ["datetimestamp", "temp", "do_mgl"]
        pd.testing.assert_series_equal(df["temp"], original["temp"])
        pd.testing.assert_series_equal(df["do_mgl"], original["do_mgl"])

    def test_idempotent(self, flagged):
        once = qaqc(flagged)
        twice = qaqc(once)
        assert twice is once
        pd.testing.assert_frame_equal(twice.to_pandas(), once.to_pandas())

    def test_accepting_every_code_matches_stripping(self, wq_table):
        every = qaqc(wq_table, qaqc_keep=range(-5, 6)).to_pandas()
        stripped = qaqc(wq_table, qaqc_keep=None).to_pandas()
        pd.testing.assert_frame_equal(every, stripped)

    def test_input_not_modified(self, flagged):
        qaqc(flagged)
        assert flagged.qaqc_cols
        assert flagged.to_pandas()["temp"].notna().all()

    def test_descriptors_carried(self, flagged):
        out = qaqc(flagged)
        assert out.stations == flagged.stations
        assert out.date_range == flagged.date_range


class TestQAQCSummary:
    """Test flag tabulation."""

    def test_counts(self, flagged):
        summary = qaqc_summary(flagged)
        assert list(summary.index) == ["temp", "do_mgl"]
        assert summary.loc["temp", 0] == 2
        assert summary.loc["temp", -3] == 1
        assert summary.loc["temp", 1] == 1
        assert summary.loc["temp", "missing"] == 1
        assert summary.loc["do_mgl", 0] == 3
        assert summary.loc["do_mgl", -3] == 0

    def test_proportions(self, flagged):
        summary = qaqc_summary(flagged, proportions=True)
        np.testing.assert_allclose(summary.sum(axis=1).to_numpy(), [1.0, 1.0])

    def test_no_flags(self, flagged):
        assert qaqc_summary(qaqc(flagged)).empty
