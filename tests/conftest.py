"""
Shared fixtures for swmpy tests.
"""

import numpy as np
import pytest

from swmpy.models import StationInfo, SWMPTable

from helpers import APA_LAT, APA_LON, make_frame


@pytest.fixture
def wq_station():
    return StationInfo.from_code("apacpwq", latitude=APA_LAT, longitude=APA_LON)


@pytest.fixture
def met_station():
    return StationInfo.from_code("apaebmet", latitude=29.7894, longitude=-84.8875)


@pytest.fixture
def wq_table(wq_station):
    """One day of 15 minute water quality data with accepted flags."""
    df = make_frame(
        "2012-01-01 00:00",
        96,
        temp=np.linspace(10, 12, 96),
        f_temp="<0>",
        sal=np.linspace(20, 22, 96),
        f_sal="<0>",
        do_mgl=np.linspace(7, 9, 96),
        f_do_mgl="<0>",
    )
    return SWMPTable(df, wq_station)


@pytest.fixture
def met_table(met_station):
    """Two days of 15 minute weather data without flags."""
    df = make_frame(
        "2012-01-01 00:00",
        192,
        atemp=15.0,
        wspd=np.linspace(0, 5, 192),
        bp=1013.0,
    )
    return SWMPTable(df, met_station)
