"""
Static station metadata: reserve time offsets and parameter names by data category.

SWMP timestamps are recorded in local standard time with no daylight savings
adjustment, so each reserve maps to one fixed offset from UTC.
"""

from datetime import timedelta, timezone
from typing import Dict, List, Optional

from .exceptions import ValidationError

# Hours offset from UTC for each reserve, keyed by the first three
# characters of a station code (reserve identifier)
RESERVE_GMT_OFFSETS = {
    "ace": -5,  # ACE Basin, SC
    "apa": -5,  # Apalachicola Bay, FL
    "cbm": -5,  # Chesapeake Bay, MD
    "cbv": -5,  # Chesapeake Bay, VA
    "del": -5,  # Delaware
    "elk": -8,  # Elkhorn Slough, CA
    "gnd": -6,  # Grand Bay, MS
    "grb": -5,  # Great Bay, NH
    "gtm": -5,  # Guana Tolomato Matanzas, FL
    "hud": -5,  # Hudson River, NY
    "jac": -5,  # Jacques Cousteau, NJ
    "job": -4,  # Jobos Bay, PR
    "kac": -9,  # Kachemak Bay, AK
    "lks": -6,  # Lake Superior, WI
    "mar": -6,  # Mission-Aransas, TX
    "nar": -5,  # Narragansett Bay, RI
    "niw": -5,  # North Inlet-Winyah Bay, SC
    "noc": -5,  # North Carolina
    "owc": -5,  # Old Woman Creek, OH
    "pdb": -8,  # Padilla Bay, WA
    "rkb": -5,  # Rookery Bay, FL
    "sap": -5,  # Sapelo Island, GA
    "sfb": -8,  # San Francisco Bay, CA
    "sos": -8,  # South Slough, OR
    "tjr": -8,  # Tijuana River, CA
    "wel": -5,  # Wells, ME
    "wkb": -6,  # Weeks Bay, AL
    "wqb": -5,  # Waquoit Bay, MA
}

# Parameter columns reported for each data category
PARAMETER_NAMES = {
    "nut": ["po4f", "chla_n", "no3f", "no2f", "nh4f", "no23f", "ke_n", "urea"],
    "wq": [
        "temp",
        "spcond",
        "sal",
        "do_pct",
        "do_mgl",
        "depth",
        "cdepth",
        "level",
        "clevel",
        "ph",
        "turb",
        "chlfluor",
    ],
    "met": [
        "atemp",
        "rh",
        "bp",
        "wspd",
        "maxwspd",
        "wdir",
        "sdwdir",
        "totpar",
        "totprcp",
        "cumprcp",
        "totsorad",
    ],
}

FLAG_PREFIX = "f_"


def gmt_offset(station_code: str) -> int:
    """
    Look up the fixed UTC offset (hours) for a station.

    Args:
        station_code: Station code, at least the three-character reserve prefix
            (e.g. 'apa', 'apacpwq').

    Returns:
        Offset from UTC in whole hours, no daylight savings.

    Raises:
        ValidationError: if the reserve is not in the lookup table.
    """
    reserve = str(station_code)[:3].lower()
    try:
        return RESERVE_GMT_OFFSETS[reserve]
    except KeyError:
        raise ValidationError(
            f"No time offset known for reserve '{reserve}'",
            {"station_code": station_code},
        ) from None


def time_zone(station_code: str) -> timezone:
    """Return a fixed-offset ``tzinfo`` for a station's local standard time."""
    offset = gmt_offset(station_code)
    return timezone(timedelta(hours=offset), name=f"UTC{offset:+03d}:00")


def infer_category(station_code: str) -> str:
    """
    Infer the data category from the station code suffix.

    Station codes are reserve (3) + site (2) + category ('wq', 'nut', 'met').
    """
    code = str(station_code).strip().lower()
    for category in ("nut", "met", "wq"):
        if len(code) > 5 and code.endswith(category):
            return category
    raise ValidationError(
        f"Cannot infer data category from station code '{station_code}'",
        {"expected_suffix": list(PARAMETER_NAMES)},
    )


def param_names(*categories: str, with_flags: bool = False) -> Dict[str, List[str]]:
    """
    Get parameter column names for one or more data categories.

    Args:
        *categories: Any of 'nut', 'wq', 'met'. Defaults to all three.
        with_flags: Interleave the matching 'f_' flag column after each parameter.

    Returns:
        Mapping of category to its column names.
    """
    if not categories:
        categories = tuple(PARAMETER_NAMES)
    bad = [c for c in categories if c not in PARAMETER_NAMES]
    if bad:
        raise ValidationError(
            "param_type must be one or more of 'nut', 'wq', 'met'",
            {"invalid": bad},
        )

    out = {}
    for category in categories:
        names = PARAMETER_NAMES[category]
        if with_flags:
            out[category] = [n for p in names for n in (p, flag_name(p))]
        else:
            out[category] = list(names)
    return out


def flag_name(parameter: str) -> str:
    return f"{FLAG_PREFIX}{parameter}"


def is_flag_column(column: str) -> bool:
    return column.startswith(FLAG_PREFIX)


def parameter_of(flag_column: str) -> Optional[str]:
    if not is_flag_column(flag_column):
        return None
    return flag_column[len(FLAG_PREFIX) :]
