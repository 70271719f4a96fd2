"""
Tests for gas exchange and oxygen saturation.
"""

import numpy as np
import pandas as pd
import pytest

from swmpy.gas_exchange import calckl, oxysol, seawater_density, wind_at_reference


class TestCalckl:
    """Test the mass transfer coefficient."""

    def test_no_wind_no_exchange(self):
        assert calckl(25, 30, 25, 0, 1013) == 0.0

    def test_typical_value(self):
        kl = calckl(25, 30, 25, 5, 1013)
        assert isinstance(kl, float)
        assert 0.5 < kl < 3.0

    def test_increases_with_wind(self):
        wspd = np.array([0.5, 1.0, 2.0, 4.0, 8.0])
        kl = calckl(20, 25, 20, wspd, 1010)
        assert kl.shape == wspd.shape
        assert (np.diff(kl) > 0).all()

    def test_series_input(self):
        temp = pd.Series([15.0, 20.0, 25.0])
        kl = calckl(temp, 30, 20, 3, 1013)
        assert len(kl) == 3
        assert np.isfinite(kl).all()

    def test_lower_anemometer_scales_up(self):
        assert calckl(25, 30, 25, 5, 1013, height=2) > calckl(25, 30, 25, 5, 1013)

    def test_invalid_temperature_is_not_finite(self):
        assert not np.isfinite(calckl(-300, 30, 25, 5, 1013))

    def test_missing_input_propagates(self):
        kl = calckl(np.array([25.0, np.nan]), 30, 25, 5, 1013)
        assert np.isfinite(kl[0])
        assert np.isnan(kl[1])


class TestWindAndDensity:
    """Test helper conversions."""

    def test_reference_height(self):
        assert wind_at_reference(5, 10) == pytest.approx(5.0)
        assert wind_at_reference(5, 2) > 5.0

    def test_seawater_density(self):
        assert 1020 < seawater_density(35, 10) < 1035
        assert seawater_density(0, 4) < seawater_density(35, 4)


class TestOxysol:
    """Test saturation concentration."""

    def test_fresh_water_at_20c(self):
        assert oxysol(20, 0) == pytest.approx(9.09, abs=0.02)

    def test_one_atmosphere_matches_default(self):
        assert oxysol(20, 30, 1.0) == pytest.approx(oxysol(20, 30))

    def test_lower_pressure(self):
        assert oxysol(20, 30, 0.5) < 0.5 * oxysol(20, 30)

    def test_salinity_lowers_saturation(self):
        assert oxysol(25, 35) < oxysol(25, 0)

    def test_temperature_lowers_saturation(self):
        sat = oxysol(np.array([5.0, 15.0, 25.0]), 30)
        assert (np.diff(sat) < 0).all()
