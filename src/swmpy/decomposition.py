"""
Aggregation and simple decomposition of monthly series.

``decomp`` splits a monthly series into a long-term center, an annual
component, a repeating seasonal component and an optional residual
"events" component (Cloern and Jassby 2010). No smoothing is applied, so
events that start or stop suddenly keep their timing.

References:
    Cloern JE, Jassby AD. 2010. Patterns and scales of phytoplankton
    variability in estuarine-coastal ecosystems. Estuaries and Coasts
    33:230-241.
"""

import logging
import operator
from typing import Callable, Iterable, Optional, Union

import pandas as pd

from .exceptions import ConfigurationError, ValidationError
from .models import TIME_COLUMN, SWMPTable

logger = logging.getLogger(__name__)

DECOMP_TYPES = {
    "additive": (operator.sub, operator.add),
    "add": (operator.sub, operator.add),
    "multiplicative": (operator.truediv, operator.mul),
    "mult": (operator.truediv, operator.mul),
}

CENTERS = ("mean", "median")

AGGREGATION_FREQS = {
    "days": "D",
    "weeks": "W",
    "months": "MS",
    "quarters": "QS",
    "years": "YS",
}


def _as_monthly(x: pd.Series) -> pd.Series:
    if not isinstance(x, pd.Series):
        raise ValidationError("x must be a pandas Series indexed by month")
    if x.empty:
        raise ValidationError("x must not be empty")

    index = x.index
    if isinstance(index, pd.DatetimeIndex):
        if index.tz is not None:
            index = index.tz_localize(None)
        index = index.to_period("M")
    elif not isinstance(index, pd.PeriodIndex):
        raise ValidationError(
            "x must have a DatetimeIndex or PeriodIndex",
            {"index_type": type(index).__name__},
        )
    elif index.freqstr not in ("M", "ME"):
        raise ValidationError(
            "x must be a monthly series", {"frequency": index.freqstr}
        )
    index = index.asfreq("M")

    expected = pd.period_range(index[0], index[-1], freq="M")
    if len(index) != len(expected) or not (index == expected).all():
        raise ValidationError(
            "x must be an unbroken, ordered monthly series",
            {"first": str(index[0]), "last": str(index[-1]), "length": len(index)},
        )
    return pd.Series(x.to_numpy(dtype=float), index=index, name=x.name)


def decomp(
    x: pd.Series,
    event: bool = True,
    type: str = "additive",
    center: str = "mean",
) -> pd.DataFrame:
    """
    Decompose a monthly series into grand, annual, seasonal and events components.

    Args:
        x: Monthly series with a DatetimeIndex or PeriodIndex and no missing
            months (values may be NaN).
        event: Compute an events component. When False the seasonal
            component is the residual after removing the annual component.
        type: 'additive' or 'multiplicative' ('add' and 'mult' also accepted).
        center: 'mean' or 'median'.

    Returns:
        DataFrame indexed by month, extended to whole calendar years, with
        columns ``original``, ``grand``, ``annual``, ``seasonal`` and
        (if ``event``) ``events``. For additive decompositions
        ``original == grand + annual + seasonal + events``; multiplicative
        decompositions use products.

    Raises:
        ConfigurationError: for an unknown type or center.
        ValidationError: if ``x`` is not a well-formed monthly series.
    """
    if type not in DECOMP_TYPES:
        raise ConfigurationError(
            "type must be 'additive' or 'multiplicative'", {"type": type}
        )
    if center not in CENTERS:
        raise ConfigurationError("center must be 'mean' or 'median'", {"center": center})
    remove, _ = DECOMP_TYPES[type]

    x = _as_monthly(x)
    full = pd.period_range(
        pd.Period(year=x.index[0].year, month=1, freq="M"),
        pd.Period(year=x.index[-1].year, month=12, freq="M"),
        freq="M",
    )
    x = x.reindex(full)
    years = x.index.year
    months = x.index.month

    grand = getattr(x, center)(skipna=True)

    x1 = remove(x, grand)
    annual = x1.groupby(years).agg(center)
    annual = pd.Series(annual.reindex(years).to_numpy(), index=x.index)

    x2 = remove(x1, annual)
    out = pd.DataFrame(
        {
            "original": x,
            "grand": grand,
            "annual": annual,
        }
    )
    if event:
        seasonal = x2.groupby(months).agg(center)
        out["seasonal"] = seasonal.reindex(months).to_numpy()
        out["events"] = remove(x2, out["seasonal"])
    else:
        out["seasonal"] = x2

    logger.debug(
        f"Decomposed {len(x)} months ({type}, {center}) from {full[0]} to {full[-1]}"
    )
    return out


def aggregate(
    table: SWMPTable,
    by: str = "months",
    func: Union[str, Callable] = "mean",
    parameters: Optional[Iterable[str]] = None,
) -> SWMPTable:
    """
    Aggregate parameters to a coarser period, ignoring missing values.

    Args:
        table: Input table. Flag columns are not aggregated.
        by: 'days', 'weeks', 'months', 'quarters' or 'years'.
        func: Reducer name understood by pandas (e.g. 'mean', 'median', 'sum')
            or a callable.
        parameters: Parameters to aggregate; all by default.

    Returns:
        A table with one row per period, stamped at the period start.
    """
    if by not in AGGREGATION_FREQS:
        raise ConfigurationError(
            f"by must be one of {list(AGGREGATION_FREQS)}", {"by": by}
        )
    params = list(parameters) if parameters is not None else table.parameters
    missing = [p for p in params if p not in table.parameters]
    if missing:
        raise ValidationError(
            "Requested parameters are not in the table", {"missing": missing}
        )

    df = table.to_pandas()[[TIME_COLUMN] + params]
    grouped = df.groupby(pd.Grouper(key=TIME_COLUMN, freq=AGGREGATION_FREQS[by]))
    out = grouped[params].agg(func).reset_index()
    logger.debug(f"Aggregated {len(df)} rows to {len(out)} {by}")
    return SWMPTable(out, table.stations)


def decomp_cj(
    table: SWMPTable,
    param: str,
    event: bool = True,
    type: str = "additive",
    center: str = "mean",
) -> pd.DataFrame:
    """
    Decompose one parameter of a table after aggregating it to monthly means.

    See ``decomp`` for the components returned.
    """
    monthly = aggregate(table, by="months", func="mean", parameters=[param]).to_pandas()
    months = pd.DatetimeIndex(monthly[TIME_COLUMN].dt.tz_localize(None)).to_period("M")
    series = pd.Series(monthly[param].to_numpy(), index=months, name=param)
    return decomp(series, event=event, type=type, center=center)
