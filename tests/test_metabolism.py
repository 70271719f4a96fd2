"""
Tests for ecosystem metabolism.
"""

from datetime import date
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from swmpy import solar
from swmpy.combine import comb
from swmpy.config import ProcessingConfig
from swmpy.exceptions import ConfigurationError, DataQualityWarning, ValidationError
from swmpy.metabolism import (
    MetabFlag,
    _report_quality,
    ecometab,
    flag_names,
    oxygen_fluxes,
)
from swmpy.models import SWMPTable
from swmpy.qaqc import qaqc

from helpers import fake_sun_time, make_frame

DAY_RISE = 0.08  # mg/L per 15 minutes
NIGHT_DROP = -0.04


@pytest.fixture(autouse=True)
def fixed_sun():
    with patch.object(solar, "sun_time", side_effect=fake_sun_time):
        yield


def diel_frame(periods=193):
    """Two metabolic days of still, well mixed water with a diel oxygen cycle."""
    df = make_frame(
        "2012-01-01 18:00",
        periods,
        temp=25.0,
        sal=30.0,
        atemp=25.0,
        wspd=0.0,
        bp=1013.0,
    )
    hours = df["datetimestamp"].dt.hour
    steps = np.where((hours >= 6) & (hours < 18), DAY_RISE, NIGHT_DROP)
    do = 8.0 + np.concatenate([[0.0], np.cumsum(steps[:-1])])
    df["do_mgl"] = do
    return df


@pytest.fixture
def diel_table(wq_station):
    return SWMPTable(diel_frame(), wq_station, timestep=15)


class TestOxygenFluxes:
    """Test per-interval fluxes."""

    def test_midpoints_and_rates(self, diel_table):
        data = diel_table.to_pandas()
        data["depth"] = 2.0
        fluxes = oxygen_fluxes(data)

        assert len(fluxes) == len(data) - 1
        assert fluxes["datetimestamp"].iloc[0] == data["datetimestamp"].iloc[0] + pd.Timedelta(
            minutes=7.5
        )
        # 0.04 mg/L per 15 minutes is 5 mmol m-3 hr-1
        assert fluxes["dDO"].iloc[0] == pytest.approx(-5.0)
        assert fluxes["DOF"].iloc[0] == pytest.approx(-10.0)
        assert (fluxes["KL"] == 0).all()
        assert (fluxes["D"] == 0).all()

    def test_supersaturated_water_loses_oxygen(self, wq_station):
        df = make_frame(
            "2012-01-01", 4, temp=25.0, sal=30.0, do_mgl=12.0, atemp=25.0, wspd=5.0,
            bp=1013.0, depth=1.5,
        )
        fluxes = oxygen_fluxes(df)
        assert (fluxes["KL"] > 0).all()
        assert (fluxes["do"] > fluxes["dosat"]).all()
        assert (fluxes["D"] > 0).all()


class TestEcometab:
    """Test daily metabolism estimates."""

    def test_diel_cycle(self, diel_table):
        out = ecometab(diel_table, depth_val=2.0)

        assert list(out["metab_date"]) == [date(2012, 1, 1), date(2012, 1, 2)]
        assert out.attrs["metab_units"] == "mmol O2 m-2 d-1"
        for _, row in out.iterrows():
            assert row["flags"] == int(MetabFlag.OK)
            assert row["completeness"] == pytest.approx(1.0)
            assert row["n_obs"] == 96
            assert row["day_hrs"] == pytest.approx(12.0)
            assert row["DOF_d"] == pytest.approx(20.0)
            assert row["DOF_n"] == pytest.approx(-10.0)
            assert row["Pg"] == pytest.approx(360.0)
            assert row["Rt"] == pytest.approx(-240.0)
            assert row["NEM"] == pytest.approx(120.0)
            assert row["Pg_vol"] == pytest.approx(180.0)
            assert row["Rt_vol"] == pytest.approx(-120.0)

    def test_nem_is_sum(self, diel_table):
        out = ecometab(diel_table, depth_val=2.0)
        np.testing.assert_allclose(out["NEM"], out["Pg"] + out["Rt"])

    def test_grams(self, diel_table):
        out = ecometab(diel_table, depth_val=2.0, metab_units="grams")
        assert out["Pg"].iloc[0] == pytest.approx(11.52)
        assert out["Rt"].iloc[0] == pytest.approx(-7.68)
        assert out.attrs["metab_units"] == "g O2 m-2 d-1"

    def test_depth_column(self, wq_station):
        df = diel_frame()
        df["depth"] = 4.0
        out = ecometab(SWMPTable(df, wq_station, timestep=15))
        assert out["Pg"].iloc[0] == pytest.approx(720.0)
        assert out["Pg_vol"].iloc[0] == pytest.approx(180.0)

    def test_incomplete_day_is_flagged(self, wq_station):
        df = diel_frame()
        stamps = df["datetimestamp"]
        gap = (stamps >= "2012-01-02 20:00") & (stamps <= "2012-01-03 02:00")
        df.loc[gap, "do_mgl"] = np.nan
        table = SWMPTable(df, wq_station, timestep=15)

        with pytest.warns(DataQualityWarning, match="insufficient"):
            out = ecometab(table, depth_val=2.0, completeness_threshold=0.9)

        assert len(out) == 2
        first, second = out.iloc[0], out.iloc[1]
        assert first["flags"] == int(MetabFlag.OK)
        assert first["Pg"] == pytest.approx(360.0)
        assert second["flags"] == int(MetabFlag.INCOMPLETE)
        assert second["completeness"] == pytest.approx(70 / 96)
        assert np.isnan(second["Pg"])
        assert np.isnan(second["NEM_vol"])

    def test_insufficient_period(self, diel_table):
        with pytest.warns(DataQualityWarning):
            out = ecometab(diel_table, depth_val=2.0, min_period_obs=49)
        assert (out["flags"] == int(MetabFlag.INSUFFICIENT_PERIOD)).all()
        assert out["Pg"].isna().all()

    def test_implausible_values_are_kept(self, diel_table):
        with pytest.warns(DataQualityWarning, match="implausible"):
            out = ecometab(diel_table, depth_val=2.0, production_range=(0, 100))
        assert (out["flags"] == int(MetabFlag.IMPLAUSIBLE_PRODUCTION)).all()
        assert out["Pg"].iloc[0] == pytest.approx(360.0)
        assert flag_names(out["flags"].iloc[0]) == "IMPLAUSIBLE_PRODUCTION"

    def test_missing_columns(self, wq_station):
        df = diel_frame().drop(columns=["bp"])
        with pytest.raises(ValidationError, match="required columns"):
            ecometab(SWMPTable(df, wq_station, timestep=15), depth_val=2.0)

    def test_depth_required(self, diel_table):
        with pytest.raises(ValidationError) as excinfo:
            ecometab(diel_table)
        assert "depth" in str(excinfo.value)

    def test_regular_grid_required(self, wq_station):
        with pytest.raises(ValidationError, match="regular time grid"):
            ecometab(SWMPTable(diel_frame(), wq_station), depth_val=2.0)

    @pytest.mark.parametrize(
        "options",
        [
            {"metab_units": "moles"},
            {"completeness_threshold": 1.5},
            {"min_period_obs": 0},
            {"production_range": (10, 0)},
            {"depth_val": -1.0},
        ],
    )
    def test_invalid_options(self, diel_table, options):
        kwargs = {"depth_val": 2.0}
        kwargs.update(options)
        with pytest.raises(ConfigurationError):
            ecometab(diel_table, **kwargs)


class TestPipeline:
    """Test the filter, combine and estimate chain."""

    def test_separate_stations(self, wq_station, met_station):
        df = diel_frame()
        wq = df[["datetimestamp", "temp", "sal", "do_mgl"]].copy()
        for col in ("temp", "sal", "do_mgl"):
            wq[f"f_{col}"] = "<0>"
        wq.loc[10, "f_do_mgl"] = "<-3> [GSM]"
        met = df[["datetimestamp", "atemp", "wspd", "bp"]]

        cfg = ProcessingConfig(combine_mode="intersect", depth_val=2.0)
        combined = comb(
            qaqc(SWMPTable(wq, wq_station), **cfg.as_kwargs("qaqc_keep")),
            SWMPTable(met, met_station),
            **cfg.as_kwargs("timestep", "differ", "method"),
        )
        assert len(combined) == 193

        options = cfg.as_kwargs(
            "depth_val",
            "metab_units",
            "height",
            "completeness_threshold",
            "min_period_obs",
            "production_range",
            "respiration_range",
        )
        out = ecometab(combined, **options)
        assert out.attrs["stations"] == ["apacpwq", "apaebmet"]
        # one rejected reading removes two flux records
        assert out["n_obs"].iloc[0] == 94
        assert out["Pg"].iloc[0] == pytest.approx(360.0)
        assert out["Pg"].iloc[1] == pytest.approx(360.0)


class TestFlagNames:
    """Test flag rendering."""

    def test_names(self):
        assert flag_names(0) == "OK"
        value = MetabFlag.INCOMPLETE | MetabFlag.IMPLAUSIBLE_RESPIRATION
        assert flag_names(value) == "INCOMPLETE|IMPLAUSIBLE_RESPIRATION"


class TestReportQuality:
    """Test the summary warnings raised for flagged days."""

    def test_counts_combined_flags(self):
        out = pd.DataFrame({"flags": [0, 1, 4, 6]})
        with pytest.warns(DataQualityWarning) as record:
            _report_quality(out)
        messages = [str(w.message) for w in record]
        assert "2 of 4 metabolic days have insufficient data" in messages
        assert "2 of 4 metabolic days have implausible estimates" in messages

    def test_clean_days_are_silent(self, recwarn):
        _report_quality(pd.DataFrame({"flags": [0, 0, 0]}))
        assert not [w for w in recwarn if issubclass(w.category, DataQualityWarning)]
