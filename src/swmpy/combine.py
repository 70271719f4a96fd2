"""
Combine tables from several stations onto one shared regular time grid.
"""

import logging
from collections import Counter
from typing import List, Optional

import pandas as pd

from .config import COMBINE_MODES, check_tolerance
from .exceptions import ConfigurationError, ValidationError
from .models import TIME_COLUMN, SWMPTable
from .timegrid import match_to_grid, regular_grid, setstep

logger = logging.getLogger(__name__)


def _shared_grid(
    tables: List[SWMPTable], method: str, timestep: float, differ: float
) -> pd.DatetimeIndex:
    firsts = [t.date_range[0] for t in tables]
    lasts = [t.date_range[1] for t in tables]

    if method == "union":
        return regular_grid(min(firsts), max(lasts), timestep)

    if method == "intersect":
        lo, hi = max(firsts), min(lasts)
        if lo > hi:
            raise ValidationError(
                "Tables do not overlap, intersect would be empty",
                {"latest_start": lo.isoformat(), "earliest_end": hi.isoformat()},
            )
        # aligned to the hour like every other grid, trimmed to the overlap
        grid = regular_grid(lo, hi, timestep)
        grid = grid[(grid >= lo) & (grid <= hi)]
        if len(grid) == 0:
            raise ValidationError(
                "Overlap is shorter than one time step",
                {"latest_start": lo.isoformat(), "earliest_end": hi.isoformat()},
            )
        return grid

    anchor = next(t for t in tables if method in t.station_codes)
    return pd.DatetimeIndex(setstep(anchor, timestep, differ).timestamps)


def comb(
    *tables: SWMPTable,
    timestep: float = 15,
    differ: Optional[float] = None,
    method: str = "union",
) -> SWMPTable:
    """
    Combine quality-filtered tables onto a single regular time grid.

    Args:
        *tables: Two or more tables, each of a single station with flag
            columns already removed (see ``qaqc``).
        timestep: Step of the shared grid in minutes.
        differ: Matching tolerance in minutes, at most half the step.
        method: 'union' spans the earliest to the latest observation across
            inputs, 'intersect' spans only the overlapping range, and a
            station code uses that station's own regular grid.

    Returns:
        A table holding the union of all parameter columns.

    Raises:
        ConfigurationError: for an invalid tolerance or method.
        ValidationError: for fewer than two tables, repeated categories
            outside anchor mode, an anchor station missing from the inputs,
            unfiltered inputs, mixed time offsets or an empty
            intersection.

    In anchor mode several tables may share a category; parameters of the
    non-anchor tables in a repeated category are suffixed with their
    station code.
    """
    differ = check_tolerance(timestep, differ)
    if len(tables) < 2:
        raise ValidationError("At least two tables are required to combine")
    if not isinstance(method, str) or not method:
        raise ConfigurationError(
            "method must be 'union', 'intersect' or a station code",
            {"method": method},
        )

    codes = [code for t in tables for code in t.station_codes]
    method = method.lower()
    anchored = method not in COMBINE_MODES
    if anchored and method not in codes:
        raise ValidationError(
            f"Anchor station '{method}' is not among the tables to combine",
            {"stations": codes},
        )

    for t in tables:
        if len(t.stations) != 1:
            raise ValidationError(
                "Only single-station tables can be combined",
                {"stations": t.station_codes},
            )
        if t.qaqc_cols:
            raise ValidationError(
                "Flag columns present, apply qaqc() before combining",
                {"station": t.station_codes[0]},
            )
        if len(t) == 0:
            raise ValidationError(
                "Cannot combine an empty table", {"station": t.station_codes[0]}
            )

    offsets = {t.stations[0].gmt_offset for t in tables}
    if len(offsets) > 1:
        raise ValidationError(
            "Tables from reserves with different time offsets cannot be combined",
            {"offsets": sorted(offsets), "stations": codes},
        )

    category_counts = Counter(t.stations[0].category for t in tables)
    repeated = {c for c, n in category_counts.items() if n > 1}
    if repeated and not anchored:
        raise ValidationError(
            "Unable to combine tables of the same category in "
            f"'{method}' mode",
            {"categories": sorted(c.value for c in repeated)},
        )

    grid = _shared_grid(list(tables), method, timestep, differ)

    combined = pd.DataFrame({TIME_COLUMN: grid})
    for t in tables:
        station = t.stations[0]
        matched = match_to_grid(t.to_pandas(), grid, differ).drop(columns=TIME_COLUMN)
        if station.category in repeated and station.station_code != method:
            matched = matched.add_suffix(f"_{station.station_code}")
        clash = set(matched.columns) & set(combined.columns)
        if clash:
            raise ValidationError(
                "Parameter columns collide between tables",
                {"columns": sorted(clash)},
            )
        combined = pd.concat([combined, matched.reset_index(drop=True)], axis=1)

    logger.debug(
        f"Combined {', '.join(codes)} by '{method}' into {len(combined)} rows "
        f"and {combined.shape[1] - 1} parameters"
    )
    return SWMPTable(
        combined, [t.stations[0] for t in tables], timestep=timestep
    )
