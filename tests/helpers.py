"""
Shared test data builders for swmpy tests.
"""

from datetime import datetime

import numpy as np
import pandas as pd

# Apalachicola Bay, Cat Point
APA_LAT = 29.7021
APA_LON = -84.8802


def fake_sun_time(latitude, longitude, day, direction, tz):
    """Sunrise at 06:00 and sunset at 18:00 local time, every day."""
    hour = 6 if direction == "sunrise" else 18
    return pd.Timestamp(datetime(day.year, day.month, day.day, hour), tz=tz)


def make_frame(start, periods, freq="15min", **columns):
    """Frame with a naive datetimestamp column and the given value columns."""
    stamps = pd.date_range(start, periods=periods, freq=freq)
    data = {"datetimestamp": stamps}
    for name, values in columns.items():
        if np.isscalar(values):
            values = np.full(periods, values)
        data[name] = values
    return pd.DataFrame(data)
