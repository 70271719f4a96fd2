"""
Data models for SWMP station observations.
"""

import logging
from dataclasses import dataclass, field
from datetime import tzinfo
from enum import Enum
from typing import Any, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd

from .exceptions import ValidationError
from .stations import gmt_offset, infer_category, is_flag_column, flag_name, time_zone

logger = logging.getLogger(__name__)

TIME_COLUMN = "datetimestamp"


class Category(str, Enum):
    """Data category of a station table."""

    WQ = "wq"  # water quality
    NUT = "nut"  # nutrients
    MET = "met"  # weather


@dataclass(frozen=True)
class StationInfo:
    """Descriptor for a SWMP station."""

    station_code: str
    category: Category
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    gmt_offset: Optional[int] = field(default=None)

    def __post_init__(self) -> None:
        object.__setattr__(self, "station_code", self.station_code.strip().lower())
        object.__setattr__(self, "category", Category(self.category))
        if self.gmt_offset is None:
            object.__setattr__(self, "gmt_offset", gmt_offset(self.station_code))

    @classmethod
    def from_code(
        cls,
        station_code: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> "StationInfo":
        """Build a descriptor, inferring the category from the code suffix."""
        return cls(
            station_code=station_code,
            category=Category(infer_category(station_code)),
            latitude=latitude,
            longitude=longitude,
        )

    @property
    def timezone(self) -> tzinfo:
        return time_zone(self.station_code)


class SWMPTable:
    """
    Timestamped parameter readings for one or more stations.

    Wraps a DataFrame with a tz-aware ``datetimestamp`` column, one column
    per parameter and optionally one ``f_`` flag column per parameter.
    Instances are not modified by any operation; every transformation
    returns a new table carrying the station descriptors forward.
    """

    def __init__(
        self,
        data: pd.DataFrame,
        stations: Union[StationInfo, Sequence[StationInfo]],
        timestep: Optional[float] = None,
    ):
        if isinstance(stations, StationInfo):
            stations = (stations,)
        stations = tuple(stations)
        if not stations:
            raise ValidationError("At least one station descriptor is required")

        offsets = {s.gmt_offset for s in stations}
        if len(offsets) > 1:
            raise ValidationError(
                "Stations in one table must share a time offset",
                {"offsets": sorted(offsets)},
            )

        if not isinstance(data, pd.DataFrame):
            raise ValidationError("data must be a pandas DataFrame")
        if TIME_COLUMN not in data.columns:
            raise ValidationError(
                f"Input table is missing the '{TIME_COLUMN}' column",
                {"columns": list(data.columns)},
            )

        self._stations = stations
        self._timestep = timestep
        self._data = self._normalize(data)

    def _normalize(self, data: pd.DataFrame) -> pd.DataFrame:
        df = data.copy()
        stamps = pd.to_datetime(df[TIME_COLUMN])
        tz = self.timezone
        if stamps.dt.tz is None:
            stamps = stamps.dt.tz_localize(tz)
        else:
            stamps = stamps.dt.tz_convert(tz)
        # one resolution for every table so grids and merges agree
        df[TIME_COLUMN] = stamps.dt.as_unit("ns")

        if df[TIME_COLUMN].isna().any():
            raise ValidationError(
                "Timestamps cannot be missing",
                {"missing": int(df[TIME_COLUMN].isna().sum())},
            )

        df = df.sort_values(TIME_COLUMN, kind="mergesort").reset_index(drop=True)
        dups = df[TIME_COLUMN].duplicated()
        if dups.any():
            raise ValidationError(
                "Timestamps must be unique",
                {"first_duplicate": df.loc[dups, TIME_COLUMN].iloc[0].isoformat()},
            )

        # provider flags arrive with trailing blanks
        for col in self.flag_columns_of(df):
            if pd.api.types.is_object_dtype(df[col]) or pd.api.types.is_string_dtype(
                df[col]
            ):
                df[col] = df[col].map(lambda v: v.rstrip() if isinstance(v, str) else v)

        cols = [TIME_COLUMN] + [c for c in df.columns if c != TIME_COLUMN]
        return df[cols]

    @staticmethod
    def flag_columns_of(df: pd.DataFrame) -> List[str]:
        return [c for c in df.columns if is_flag_column(c)]

    @classmethod
    def from_frame(
        cls,
        data: pd.DataFrame,
        station_code: str,
        category: Optional[Union[str, Category]] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> "SWMPTable":
        """
        Build a table for a single station.

        Args:
            data: Frame with a ``datetimestamp`` column plus parameter/flag columns.
                Naive timestamps are read as the station's local standard time.
            station_code: Station code, e.g. 'apacpwq'.
            category: Data category; inferred from the code suffix when omitted.
            latitude: Station latitude, needed for solar geometry.
            longitude: Station longitude (negative west of the prime meridian).
        """
        if category is None:
            station = StationInfo.from_code(station_code, latitude, longitude)
        else:
            station = StationInfo(station_code, Category(category), latitude, longitude)
        return cls(data, station)

    def replace(self, data: pd.DataFrame, **overrides: Any) -> "SWMPTable":
        """Return a new table with the same descriptors and different data."""
        return SWMPTable(
            data,
            overrides.get("stations", self._stations),
            timestep=overrides.get("timestep", self._timestep),
        )

    def to_pandas(self) -> pd.DataFrame:
        """Return a copy of the underlying data."""
        return self._data.copy()

    @property
    def stations(self) -> Tuple[StationInfo, ...]:
        return self._stations

    @property
    def station_codes(self) -> List[str]:
        return [s.station_code for s in self._stations]

    @property
    def categories(self) -> List[Category]:
        return [s.category for s in self._stations]

    @property
    def timezone(self) -> tzinfo:
        return self._stations[0].timezone

    @property
    def timestep(self) -> Optional[float]:
        """Grid step in minutes, or None if the table has not been regularized."""
        return self._timestep

    @property
    def timestamps(self) -> pd.Series:
        return self._data[TIME_COLUMN].copy()

    @property
    def flag_columns(self) -> List[str]:
        return self.flag_columns_of(self._data)

    @property
    def qaqc_cols(self) -> bool:
        return bool(self.flag_columns)

    @property
    def parameters(self) -> List[str]:
        return [
            c for c in self._data.columns if c != TIME_COLUMN and not is_flag_column(c)
        ]

    @property
    def date_range(self) -> Tuple[Optional[pd.Timestamp], Optional[pd.Timestamp]]:
        if self._data.empty:
            return (None, None)
        stamps = self._data[TIME_COLUMN]
        return (stamps.iloc[0], stamps.iloc[-1])

    def station_for(self, category: Union[str, Category]) -> Optional[StationInfo]:
        """First station of the given category, if any."""
        category = Category(category)
        for station in self._stations:
            if station.category == category:
                return station
        return None

    def subset(
        self,
        start: Optional[Any] = None,
        end: Optional[Any] = None,
        parameters: Optional[Iterable[str]] = None,
    ) -> "SWMPTable":
        """
        Select a date range and/or parameter columns.

        Args:
            start: Inclusive start; naive values are read in the table's time zone.
            end: Inclusive end.
            parameters: Parameters to keep. Their flag columns are kept too.
        """
        df = self._data
        mask = pd.Series(True, index=df.index)
        if start is not None:
            mask &= df[TIME_COLUMN] >= self._as_stamp(start)
        if end is not None:
            mask &= df[TIME_COLUMN] <= self._as_stamp(end)

        cols = list(df.columns)
        if parameters is not None:
            parameters = list(parameters)
            missing = [p for p in parameters if p not in self.parameters]
            if missing:
                raise ValidationError(
                    "Requested parameters are not in the table",
                    {"missing": missing},
                )
            keep = set(parameters) | {flag_name(p) for p in parameters}
            cols = [TIME_COLUMN] + [c for c in df.columns if c in keep]

        out = df.loc[mask, cols]
        logger.debug(f"Subset {len(df)} rows to {len(out)} rows, {len(cols) - 1} columns")
        return self.replace(out)

    def _as_stamp(self, value: Any) -> pd.Timestamp:
        stamp = pd.Timestamp(value)
        if stamp.tzinfo is None:
            return stamp.tz_localize(self.timezone)
        return stamp.tz_convert(self.timezone)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        start, end = self.date_range
        span = f"{start} to {end}" if start is not None else "empty"
        return (
            f"SWMPTable(stations={self.station_codes}, rows={len(self)}, "
            f"parameters={len(self.parameters)}, {span})"
        )
