"""
Quality-flag filtering for SWMP tables.

Each parameter column may be paired with an ``f_`` flag column holding the
provider's QAQC code, either as an integer or as a string such as
``"<0>"`` or ``"<-3> [GSM] [CSM]"``. Code 0 denotes accepted data.
"""

import logging
import math
import re
from typing import Any, Iterable, Optional

import numpy as np
import pandas as pd

from .models import SWMPTable
from .stations import parameter_of

logger = logging.getLogger(__name__)

FLAG_CODE_PATTERN = re.compile(r"<\s*(-?\d+)\s*>")

DEFAULT_QAQC_KEEP = frozenset({0})


def flag_code(value: Any) -> Optional[int]:
    """
    Extract the integer QAQC code from a flag value.

    Returns None for missing or unparseable flags.
    """
    if value is None:
        return None
    if isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        if math.isnan(value) or not float(value).is_integer():
            return None
        return int(value)

    text = str(value).strip()
    match = FLAG_CODE_PATTERN.search(text)
    if match:
        return int(match.group(1))
    try:
        return int(text)
    except ValueError:
        return None


def _flag_codes(flags: pd.Series) -> pd.Series:
    return flags.map(flag_code).astype("Int64")


def qaqc(
    table: SWMPTable, qaqc_keep: Optional[Iterable[int]] = DEFAULT_QAQC_KEEP
) -> SWMPTable:
    """
    Mask parameter values whose flag code is not accepted, then drop flag columns.

    Args:
        table: Input table.
        qaqc_keep: Accepted flag codes. None or an empty collection accepts
            every flag and only strips the flag columns.

    Returns:
        A new table without flag columns. If the input has no flag columns
        it is returned unchanged.
    """
    if not table.qaqc_cols:
        logger.debug("No flag columns present, nothing to filter")
        return table

    df = table.to_pandas()
    flag_cols = table.flag_columns
    keep = {int(c) for c in qaqc_keep} if qaqc_keep else set()

    if keep:
        masked_total = 0
        for fcol in flag_cols:
            param = parameter_of(fcol)
            if param not in df.columns:
                continue
            codes = _flag_codes(df[fcol])
            rejected = ~codes.isin(keep).fillna(False).astype(bool)
            rejected &= df[param].notna()
            n_rejected = int(rejected.sum())
            if n_rejected:
                df.loc[rejected, param] = np.nan
                masked_total += n_rejected
        logger.info(
            f"Masked {masked_total} values with flags outside {sorted(keep)} "
            f"for {', '.join(table.station_codes)}"
        )

    df = df.drop(columns=flag_cols)
    return table.replace(df)


def qaqc_summary(table: SWMPTable, proportions: bool = False) -> pd.DataFrame:
    """
    Tabulate flag codes for each parameter.

    Args:
        table: Table with flag columns.
        proportions: Return row-wise proportions instead of counts.

    Returns:
        DataFrame indexed by parameter with one column per flag code
        (``"missing"`` for absent or unparseable flags).
    """
    df = table.to_pandas()
    rows = {}
    for fcol in table.flag_columns:
        codes = _flag_codes(df[fcol])
        counts = codes.astype(object).where(codes.notna(), "missing").value_counts()
        rows[parameter_of(fcol)] = counts

    if not rows:
        return pd.DataFrame()

    out = pd.DataFrame.from_dict(rows, orient="index").fillna(0).astype(int)
    numeric = sorted(c for c in out.columns if c != "missing")
    out = out[numeric + (["missing"] if "missing" in out.columns else [])]
    if proportions:
        out = out.div(out.sum(axis=1), axis=0)
    return out
