"""
Organize and analyze continuous SWMP monitoring data.

Quality-filter, regularize and combine station tables, then estimate
ecosystem metabolism from dissolved oxygen.
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .combine import comb
from .config import ProcessingConfig
from .decomposition import aggregate, decomp, decomp_cj
from .exceptions import (
    ConfigurationError,
    DataQualityWarning,
    SWMPError,
    ValidationError,
)
from .gas_exchange import calckl, oxysol
from .metabolism import MetabFlag, ecometab, flag_names
from .models import Category, StationInfo, SWMPTable
from .qaqc import qaqc, qaqc_summary
from .solar import metab_day, solar_boundaries
from .stations import gmt_offset, param_names, time_zone
from .timegrid import setstep

__all__ = [
    # tables
    "Category",
    "StationInfo",
    "SWMPTable",
    "ProcessingConfig",
    # organize
    "qaqc",
    "qaqc_summary",
    "setstep",
    "comb",
    "aggregate",
    # analyze
    "metab_day",
    "solar_boundaries",
    "calckl",
    "oxysol",
    "ecometab",
    "MetabFlag",
    "flag_names",
    "decomp",
    "decomp_cj",
    # stations
    "gmt_offset",
    "time_zone",
    "param_names",
    # exceptions
    "SWMPError",
    "ConfigurationError",
    "ValidationError",
    "DataQualityWarning",
]
