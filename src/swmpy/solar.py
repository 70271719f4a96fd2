"""
Solar geometry and metabolic days.

A metabolic day runs from one sunset to the next and is identified by the
local calendar date of the sunset that starts it. It holds a night period
(sunset to sunrise) followed by a day period (sunrise to the closing sunset).
Sunrise and sunset instants come from the ``astral`` package, which
implements the NOAA solar calculator.
"""

import logging
from datetime import date, timedelta, tzinfo
from typing import Optional

import numpy as np
import pandas as pd
from astral import Observer
from astral.sun import sunrise, sunset

from .exceptions import ValidationError
from .models import TIME_COLUMN, Category, SWMPTable

logger = logging.getLogger(__name__)

SOLAR_EVENTS = ("sunrise", "sunset")

# boundary event that opens each solar period
PERIOD_OF_EVENT = {"sunrise": "day", "sunset": "night"}

BOUNDARY_COLUMNS = ["solar_time", "solar_event", "metab_date", "day_hrs", "sunrise", "sunset"]


def sun_time(
    latitude: float, longitude: float, day: date, direction: str, tz: tzinfo
) -> pd.Timestamp:
    """
    Sunrise or sunset for a location and local calendar day.

    Raises:
        ValidationError: if the sun does not rise or set on that day.
    """
    observer = Observer(latitude=latitude, longitude=longitude)
    event = {"sunrise": sunrise, "sunset": sunset}[direction]
    try:
        when = event(observer, date=day, tzinfo=tz)
    except ValueError as e:
        raise ValidationError(
            f"No {direction} on {day} at ({latitude}, {longitude})"
        ) from e
    return pd.Timestamp(when).tz_convert(tz)


def _epoch_ns(values) -> np.ndarray:
    return pd.DatetimeIndex(values).as_unit("ns").asi8


def solar_boundaries(
    start: date,
    end: date,
    tz: tzinfo,
    latitude: float,
    longitude: float,
) -> pd.DataFrame:
    """
    Build the sorted table of sunrise and sunset boundaries for a date range.

    Sun times are computed for every local day in ``[start - 1, end + 1]``.
    Each event is reduced to one instant per local calendar day, the
    earliest computed instant winning, and only days with both a sunrise
    and a sunset are kept.

    Returns:
        DataFrame with columns:
            solar_time: boundary instant
            solar_event: 'sunrise' or 'sunset'
            metab_date: metabolic day the boundary belongs to
            day_hrs: daylight hours of that metabolic day
            sunrise, sunset: the daylight period of that metabolic day
    """
    if end < start:
        raise ValidationError(
            "Date range end precedes start",
            {"start": str(start), "end": str(end)},
        )
    days = pd.date_range(start - timedelta(days=1), end + timedelta(days=1), freq="D")

    events = []
    for day in days.date:
        for direction in SOLAR_EVENTS:
            when = sun_time(latitude, longitude, day, direction, tz)
            events.append({"solar_event": direction, "solar_time": when})
    events = pd.DataFrame(events)
    events["local_date"] = events["solar_time"].map(lambda t: t.tz_convert(tz).date())

    per_day = (
        events.groupby(["local_date", "solar_event"])["solar_time"]
        .min()
        .unstack("solar_event")
        .dropna()
        .sort_index()
    )
    per_day["day_hrs"] = (
        per_day["sunset"] - per_day["sunrise"]
    ).dt.total_seconds() / 3600.0
    if (per_day["day_hrs"] <= 0).any():
        raise ValidationError(
            "Sunset precedes sunrise within a day",
            {"dates": [str(d) for d in per_day.index[per_day["day_hrs"] <= 0]]},
        )

    # daylight of calendar day D belongs to the metabolic day that began at
    # sunset on D - 1
    daylight = per_day[["sunrise", "sunset", "day_hrs"]].copy()
    daylight.index = [d - timedelta(days=1) for d in daylight.index]

    rows = []
    for local_day, row in per_day.iterrows():
        rows.append(
            {"solar_time": row["sunrise"], "solar_event": "sunrise",
             "metab_date": local_day - timedelta(days=1)}
        )
        rows.append(
            {"solar_time": row["sunset"], "solar_event": "sunset",
             "metab_date": local_day}
        )
    out = pd.DataFrame(rows).sort_values("solar_time", kind="mergesort")
    out = out.join(daylight, on="metab_date").reset_index(drop=True)

    alternating = (out["solar_event"] != out["solar_event"].shift()).iloc[1:].all()
    if not alternating:
        raise ValidationError("Solar boundaries do not alternate between sunrise and sunset")

    logger.debug(
        f"Built {len(out)} solar boundaries for {start} to {end} "
        f"at ({latitude}, {longitude})"
    )
    return out[BOUNDARY_COLUMNS]


def assign_metab_days(frame: pd.DataFrame, boundaries: pd.DataFrame) -> pd.DataFrame:
    """
    Attach metabolic day and solar period to each row of a frame.

    Each timestamp belongs to ``[boundary[i], boundary[i + 1])`` for the largest
    ``i`` with ``boundary[i] <= timestamp``; the last boundary only closes the
    final interval.

    Raises:
        ValidationError: if any timestamp falls outside the boundary range.
    """
    if len(boundaries) < 2:
        raise ValidationError("At least two solar boundaries are required")

    edges = _epoch_ns(boundaries["solar_time"])
    stamps = _epoch_ns(frame[TIME_COLUMN])
    idx = np.searchsorted(edges, stamps, side="right") - 1

    outside = (idx < 0) | (idx >= len(edges) - 1)
    if outside.any():
        first_bad = frame[TIME_COLUMN].iloc[int(np.flatnonzero(outside)[0])]
        raise ValidationError(
            "Timestamps fall outside the solar boundary range",
            {
                "count": int(outside.sum()),
                "first": first_bad.isoformat(),
                "range": (
                    boundaries["solar_time"].iloc[0].isoformat(),
                    boundaries["solar_time"].iloc[-1].isoformat(),
                ),
            },
        )

    matched = boundaries.iloc[idx].reset_index(drop=True)
    out = frame.reset_index(drop=True).copy()
    out["metab_date"] = matched["metab_date"]
    out["solar_period"] = matched["solar_event"].map(PERIOD_OF_EVENT)
    out["sunrise"] = matched["sunrise"]
    out["sunset"] = matched["sunset"]
    out["day_hrs"] = matched["day_hrs"]
    return out


def station_coordinates(table: SWMPTable) -> tuple:
    """Latitude and longitude of the table's station, preferring water quality."""
    preferred = table.station_for(Category.WQ)
    candidates = ([preferred] if preferred else []) + list(table.stations)
    for station in candidates:
        if station.latitude is not None and station.longitude is not None:
            return station.latitude, station.longitude
    raise ValidationError(
        "Station coordinates are required for solar geometry",
        {"stations": table.station_codes},
    )


def metab_day(
    table: SWMPTable,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> pd.DataFrame:
    """
    Identify metabolic days and solar periods for every row of a table.

    Args:
        table: Input table, usually on a regular grid.
        latitude: Overrides the station latitude.
        longitude: Overrides the station longitude.

    Returns:
        The table's rows with ``metab_date``, ``solar_period`` ('day' or
        'night'), ``sunrise``, ``sunset`` and ``day_hrs`` columns added.
    """
    if latitude is None or longitude is None:
        latitude, longitude = station_coordinates(table)
    if len(table) == 0:
        raise ValidationError("Cannot assign metabolic days to an empty table")

    tz = table.timezone
    start, end = table.date_range
    boundaries = solar_boundaries(
        start.tz_convert(tz).date(), end.tz_convert(tz).date(), tz, latitude, longitude
    )
    return assign_metab_days(table.to_pandas(), boundaries)
