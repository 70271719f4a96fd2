"""
Regular time grids for SWMP tables.

Observations are matched to the nearest grid instant within a tolerance;
grid instants without a match are kept as rows with every parameter missing.
Values are never interpolated.
"""

import logging
import math
from typing import Optional

import pandas as pd

from .config import check_tolerance
from .exceptions import ValidationError
from .models import TIME_COLUMN, SWMPTable

logger = logging.getLogger(__name__)


def regular_grid(
    start: pd.Timestamp,
    end: pd.Timestamp,
    timestep: float,
    floor_hour: bool = True,
) -> pd.DatetimeIndex:
    """
    Build a fixed-step sequence of instants covering ``[start, end]``.

    Args:
        start: First instant; floored to the hour when ``floor_hour`` is set.
        end: Last instant to cover. The final grid instant is the first one
            at or after ``end``.
        timestep: Step in minutes.
        floor_hour: Align the grid to the start of the hour.

    Returns:
        DatetimeIndex of ``ceil((end - first) / step) + 1`` instants.
    """
    step = pd.Timedelta(minutes=timestep)
    first = start.floor("h") if floor_hour else start
    if end < first:
        raise ValidationError(
            "Grid end precedes grid start",
            {"start": first.isoformat(), "end": end.isoformat()},
        )
    periods = int(math.ceil((end - first) / step)) + 1
    return pd.date_range(first, periods=periods, freq=step).as_unit("ns")


def match_to_grid(
    data: pd.DataFrame, grid: pd.DatetimeIndex, differ: float
) -> pd.DataFrame:
    """
    Copy each grid instant's nearest observation within ``differ`` minutes.

    Returns one row per grid instant with the columns of ``data``.
    """
    left = pd.DataFrame({TIME_COLUMN: grid.as_unit("ns")})
    right = data.copy()
    right[TIME_COLUMN] = right[TIME_COLUMN].dt.as_unit("ns")

    matched = pd.merge_asof(
        left,
        right,
        on=TIME_COLUMN,
        direction="nearest",
        tolerance=pd.Timedelta(minutes=differ),
    )
    return matched[list(data.columns)]


def setstep(
    table: SWMPTable, timestep: float = 15, differ: Optional[float] = None
) -> SWMPTable:
    """
    Resample a table onto a regular time step.

    Args:
        table: Input table.
        timestep: Step in minutes.
        differ: Matching tolerance in minutes, at most half the step.
            Defaults to half the step.

    Returns:
        A new table whose rows are the regular grid starting at the first
        observation floored to the hour. Grid instants with no observation
        within the tolerance have all values missing.

    Raises:
        ConfigurationError: if the tolerance exceeds half the step.
        ValidationError: if the table is empty.
    """
    differ = check_tolerance(timestep, differ)
    if len(table) == 0:
        raise ValidationError("Cannot set the time step of an empty table")

    start, end = table.date_range
    grid = regular_grid(start, end, timestep)
    out = match_to_grid(table.to_pandas(), grid, differ)

    values = [c for c in out.columns if c != TIME_COLUMN]
    gaps = int(out[values].isna().all(axis=1).sum()) if values else 0
    logger.debug(
        f"Regularized {len(table)} rows to {len(out)} rows at {timestep} min "
        f"(tolerance {differ} min), {gaps} gap rows"
    )
    return table.replace(out, timestep=timestep)
