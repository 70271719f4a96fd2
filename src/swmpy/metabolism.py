"""
Ecosystem metabolism from continuous dissolved oxygen.

Gross production, total respiration and net ecosystem metabolism are
estimated per metabolic day with the open-water method of Odum (1956):
dissolved oxygen changes over the night and day periods are corrected for
air-sea exchange and scaled to the period lengths.

Respiration is reported as a signed flux (negative values are oxygen
consumption), so net ecosystem metabolism is ``Pg + Rt``.

Days are never dropped. Days that fail the completeness threshold or have
too few observations in a solar period are kept with missing estimates,
and implausible estimates are kept as computed; both are marked in the
``flags`` column and reported with ``DataQualityWarning``.
"""

import logging
import math
import warnings
from enum import IntFlag
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .exceptions import ConfigurationError, DataQualityWarning, ValidationError
from .gas_exchange import calckl, oxysol
from .models import TIME_COLUMN, SWMPTable
from .solar import assign_metab_days, solar_boundaries, station_coordinates

logger = logging.getLogger(__name__)

O2_MG_PER_MMOL = 32.0
MB_PER_ATM = 1013.25

REQUIRED_COLUMNS = ["temp", "sal", "do_mgl", "atemp", "wspd", "bp"]

UNIT_LABELS = {
    "mmol": "mmol O2 m-2 d-1",
    "grams": "g O2 m-2 d-1",
}
FLUX_COLUMNS = ["DOF_d", "D_d", "DOF_n", "D_n", "Pg", "Rt", "NEM", "Pg_vol", "Rt_vol", "NEM_vol"]


class MetabFlag(IntFlag):
    """Quality flags for a metabolic day."""

    OK = 0
    INCOMPLETE = 1  # completeness below threshold
    INSUFFICIENT_PERIOD = 2  # too few observations in the day or night period
    IMPLAUSIBLE_PRODUCTION = 4  # Pg outside production_range
    IMPLAUSIBLE_RESPIRATION = 8  # Rt outside respiration_range


def _check_options(
    metab_units: str,
    completeness_threshold: float,
    min_period_obs: int,
    production_range: Tuple[float, float],
    respiration_range: Tuple[float, float],
    depth_val: Optional[float],
) -> None:
    if metab_units not in UNIT_LABELS:
        raise ConfigurationError(
            "metab_units must be 'mmol' or 'grams'", {"metab_units": metab_units}
        )
    if not 0.0 <= completeness_threshold <= 1.0:
        raise ConfigurationError(
            "completeness_threshold must be in [0, 1]",
            {"completeness_threshold": completeness_threshold},
        )
    if min_period_obs < 1:
        raise ConfigurationError(
            "min_period_obs must be at least 1", {"min_period_obs": min_period_obs}
        )
    for name, (lo, hi) in (
        ("production_range", production_range),
        ("respiration_range", respiration_range),
    ):
        if lo > hi:
            raise ConfigurationError(
                f"{name} lower bound exceeds upper bound", {name: (lo, hi)}
            )
    if depth_val is not None and depth_val <= 0:
        raise ConfigurationError("depth_val must be positive", {"depth_val": depth_val})


def oxygen_fluxes(
    data: pd.DataFrame, height: float = 10
) -> pd.DataFrame:
    """
    Hourly oxygen fluxes between consecutive rows.

    Rates of change are attributed to the midpoint of each pair of rows and
    every other variable is averaged over the pair.

    Args:
        data: Frame with ``datetimestamp``, the ``REQUIRED_COLUMNS`` and ``depth``.
        height: Anemometer height (m).

    Returns:
        Frame of midpoints with ``do`` (mmol m-3), ``dDO`` (mmol m-3 hr-1),
        ``DOF`` areal change (mmol m-2 hr-1), ``KL`` (m/d), ``dosat``
        (mmol m-3) and ``D`` air-sea flux (mmol m-2 hr-1, positive out of
        the water).
    """
    stamps = data[TIME_COLUMN]
    variables = data[REQUIRED_COLUMNS + ["depth"]].astype(float).copy()
    variables["do"] = variables["do_mgl"] / O2_MG_PER_MMOL * 1000

    hours = stamps.diff().dt.total_seconds() / 3600.0
    d_do = variables["do"].diff() / hours

    mids = ((variables + variables.shift(-1)) / 2).iloc[:-1].reset_index(drop=True)
    midpoints = stamps + stamps.diff().shift(-1) / 2
    mids.insert(0, TIME_COLUMN, midpoints.iloc[:-1].reset_index(drop=True))
    mids["dDO"] = d_do.iloc[1:].to_numpy()

    mids["DOF"] = mids["dDO"] * mids["depth"]
    mids["KL"] = calckl(
        mids["temp"], mids["sal"], mids["atemp"], mids["wspd"], mids["bp"], height
    )
    mids["dosat"] = (
        oxysol(mids["temp"], mids["sal"], mids["bp"] / MB_PER_ATM) / O2_MG_PER_MMOL * 1000
    )
    mids["D"] = mids["KL"] / 24 * (mids["do"] - mids["dosat"])
    return mids


def _metabolic_day_starts(boundaries: pd.DataFrame) -> pd.Series:
    sunsets = boundaries[boundaries["solar_event"] == "sunset"]
    return sunsets.set_index("metab_date")["solar_time"]


def ecometab(
    table: SWMPTable,
    depth_val: Optional[float] = None,
    metab_units: str = "mmol",
    height: float = 10,
    completeness_threshold: float = 0.0,
    min_period_obs: int = 3,
    production_range: Tuple[float, float] = (0.0, math.inf),
    respiration_range: Tuple[float, float] = (-math.inf, 0.0),
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
) -> pd.DataFrame:
    """
    Estimate daily ecosystem metabolism.

    Args:
        table: Regular-grid table holding water quality and weather
            parameters, usually the output of ``comb``.
        depth_val: Constant water column depth (m). When None the table's
            ``depth`` column is used.
        metab_units: 'mmol' for mmol O2 or 'grams' for g O2.
        height: Anemometer height (m).
        completeness_threshold: Minimum fraction of valid flux records in a
            metabolic day for estimates to be reported.
        min_period_obs: Minimum valid flux records in each of the day and
            night periods.
        production_range: Plausible (min, max) gross production.
        respiration_range: Plausible (min, max) respiration.
        latitude: Overrides the station latitude.
        longitude: Overrides the station longitude.

    Returns:
        One row per metabolic day with ``metab_date``, ``completeness``,
        ``n_obs``, ``day_hrs``, ``depth``, the period means ``DOF_d``,
        ``D_d``, ``DOF_n``, ``D_n``, the areal estimates ``Pg``, ``Rt``,
        ``NEM``, the volumetric estimates ``Pg_vol``, ``Rt_vol``,
        ``NEM_vol`` and ``flags`` (``MetabFlag`` values). Units are stored
        in ``attrs['metab_units']``.

    Raises:
        ConfigurationError: for invalid options.
        ValidationError: if the table is not on a regular grid, lacks
            required columns or has no station coordinates.
    """
    _check_options(
        metab_units,
        completeness_threshold,
        min_period_obs,
        production_range,
        respiration_range,
        depth_val,
    )
    if table.timestep is None:
        raise ValidationError(
            "Metabolism requires a regular time grid, apply setstep() or comb() first"
        )
    required = REQUIRED_COLUMNS + ([] if depth_val is not None else ["depth"])
    missing = [c for c in required if c not in table.parameters]
    if missing:
        raise ValidationError(
            "Input table is missing required columns for metabolism",
            {"missing": missing},
        )
    if len(table) < 2:
        raise ValidationError("At least two observations are required for metabolism")
    if latitude is None or longitude is None:
        latitude, longitude = station_coordinates(table)

    data = table.to_pandas()
    if depth_val is not None:
        data["depth"] = float(depth_val)

    fluxes = oxygen_fluxes(data, height=height)

    tz = table.timezone
    start, end = table.date_range
    boundaries = solar_boundaries(
        start.tz_convert(tz).date(), end.tz_convert(tz).date(), tz, latitude, longitude
    )
    fluxes = assign_metab_days(fluxes, boundaries)
    day_starts = _metabolic_day_starts(boundaries)
    step_hours = table.timestep / 60.0

    rows = []
    for metab_date, day in fluxes.groupby("metab_date", sort=True):
        flags = MetabFlag.OK
        net = day["DOF"] - day["D"]
        valid = net.notna()
        day_hrs = float(day["day_hrs"].iloc[0])

        closing = day["sunset"].iloc[0]
        opening = day_starts.get(metab_date)
        if opening is not None and pd.notna(closing):
            span_hours = (closing - opening).total_seconds() / 3600.0
        else:
            span_hours = 24.0
        expected = max(1, int(round(span_hours / step_hours)))
        completeness = min(1.0, valid.sum() / expected)

        is_day = day["solar_period"] == "day"
        n_day = int((valid & is_day).sum())
        n_night = int((valid & ~is_day).sum())

        dof_d = day.loc[valid & is_day, "DOF"].mean()
        d_d = day.loc[valid & is_day, "D"].mean()
        dof_n = day.loc[valid & ~is_day, "DOF"].mean()
        d_n = day.loc[valid & ~is_day, "D"].mean()
        depth = day["depth"].mean()

        pg = ((dof_d - d_d) - (dof_n - d_n)) * day_hrs
        rt = (dof_n - d_n) * 24
        nem = pg + rt

        if n_day < min_period_obs or n_night < min_period_obs:
            flags |= MetabFlag.INSUFFICIENT_PERIOD
        if completeness < completeness_threshold:
            flags |= MetabFlag.INCOMPLETE
        if flags:
            dof_d = d_d = dof_n = d_n = pg = rt = nem = np.nan
        else:
            if not production_range[0] <= pg <= production_range[1]:
                flags |= MetabFlag.IMPLAUSIBLE_PRODUCTION
            if not respiration_range[0] <= rt <= respiration_range[1]:
                flags |= MetabFlag.IMPLAUSIBLE_RESPIRATION

        rows.append(
            {
                "metab_date": metab_date,
                "completeness": float(completeness),
                "n_obs": int(valid.sum()),
                "day_hrs": day_hrs,
                "depth": depth,
                "DOF_d": dof_d,
                "D_d": d_d,
                "DOF_n": dof_n,
                "D_n": d_n,
                "Pg": pg,
                "Rt": rt,
                "NEM": nem,
                "Pg_vol": pg / depth,
                "Rt_vol": rt / depth,
                "NEM_vol": nem / depth,
                "flags": int(flags),
            }
        )

    out = pd.DataFrame(rows)
    if metab_units == "grams":
        out[FLUX_COLUMNS] = out[FLUX_COLUMNS] * O2_MG_PER_MMOL / 1000
    out.attrs["metab_units"] = UNIT_LABELS[metab_units]
    out.attrs["stations"] = table.station_codes

    _report_quality(out)
    logger.debug(f"Estimated metabolism for {len(out)} metabolic days")
    return out


UNREPORTED_MASK = int(MetabFlag.INCOMPLETE | MetabFlag.INSUFFICIENT_PERIOD)
IMPLAUSIBLE_MASK = int(MetabFlag.IMPLAUSIBLE_PRODUCTION | MetabFlag.IMPLAUSIBLE_RESPIRATION)


def _report_quality(out: pd.DataFrame) -> None:
    # IntFlag members are iterable, so pandas needs plain int masks
    flags = out["flags"].astype("int64")
    unreported = int(((flags & UNREPORTED_MASK) != 0).sum())
    implausible = int(((flags & IMPLAUSIBLE_MASK) != 0).sum())
    if unreported:
        msg = f"{unreported} of {len(out)} metabolic days have insufficient data"
        logger.warning(msg)
        warnings.warn(msg, DataQualityWarning, stacklevel=3)
    if implausible:
        msg = f"{implausible} of {len(out)} metabolic days have implausible estimates"
        logger.warning(msg)
        warnings.warn(msg, DataQualityWarning, stacklevel=3)


def flag_names(value: int) -> str:
    """Readable names for a ``flags`` value, e.g. 'INCOMPLETE|IMPLAUSIBLE_PRODUCTION'."""
    flag = MetabFlag(value)
    if not flag:
        return MetabFlag.OK.name
    return "|".join(m.name for m in MetabFlag if m and m in flag)
