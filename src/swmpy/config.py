"""
Processing options shared by the organize and metabolism stages.
"""

import math
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, FrozenSet, Optional, Tuple

from .exceptions import ConfigurationError

COMBINE_MODES = ("union", "intersect")
DECOMPOSITION_TYPES = ("additive", "multiplicative")
CENTERINGS = ("mean", "median")
METAB_UNITS = ("mmol", "grams")


def check_tolerance(timestep: float, differ: Optional[float]) -> float:
    """Return the matching tolerance for a time step, defaulting to half the step.

    Raises:
        ConfigurationError: if the step is not positive or the tolerance
            is negative or exceeds half the step.
    """
    if timestep is None or timestep <= 0:
        raise ConfigurationError(
            "timestep must be a positive number of minutes",
            {"timestep_minutes": timestep},
        )
    if differ is None:
        return timestep / 2
    if differ < 0:
        raise ConfigurationError(
            "tolerance cannot be negative", {"tolerance_minutes": differ}
        )
    if differ > timestep / 2:
        raise ConfigurationError(
            "tolerance must be less than or equal to one half the timestep",
            {"timestep_minutes": timestep, "tolerance_minutes": differ},
        )
    return differ


@dataclass
class ProcessingConfig:
    """
    Bundled configuration for the swmpy processing chain.

    Every public operation also accepts these options as keyword arguments;
    use ``as_kwargs()`` to pass a subset along.

    Example:
        >>> cfg = ProcessingConfig(timestep_minutes=30, tolerance_minutes=10)
        >>> cfg.validate()
        >>> grid = setstep(table, **cfg.as_kwargs("timestep", "differ"))
    """

    quality_codes_accepted: Optional[FrozenSet[int]] = frozenset({0})
    timestep_minutes: int = 15
    tolerance_minutes: Optional[float] = None
    combine_mode: str = "union"
    completeness_threshold: float = 0.0
    decomposition_type: str = "additive"
    centering: str = "mean"
    anemometer_height_m: float = 10.0
    min_period_obs: int = 3
    production_range: Tuple[float, float] = (0.0, math.inf)
    respiration_range: Tuple[float, float] = (-math.inf, 0.0)
    metab_units: str = "mmol"
    depth_val: Optional[float] = None
    _validated: bool = field(default=False, repr=False, compare=False)

    @classmethod
    def from_dict(cls, options: Dict[str, Any]) -> "ProcessingConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls) if not f.name.startswith("_")}
        unknown = set(options) - known
        if unknown:
            raise ConfigurationError(
                f"Unknown configuration options: {', '.join(sorted(unknown))}"
            )
        opts = dict(options)
        codes = opts.get("quality_codes_accepted")
        if codes is not None:
            opts["quality_codes_accepted"] = frozenset(int(c) for c in codes)
        for key in ("production_range", "respiration_range"):
            if key in opts:
                opts[key] = tuple(opts[key])
        cfg = cls(**opts)
        cfg.validate()
        return cfg

    def validate(self) -> None:
        """Check option values and combinations, raising ConfigurationError."""
        self.tolerance_minutes = check_tolerance(
            self.timestep_minutes, self.tolerance_minutes
        )

        # station codes are accepted as anchor modes
        if not isinstance(self.combine_mode, str) or not self.combine_mode:
            raise ConfigurationError(
                "combine_mode must be 'union', 'intersect' or a station code",
                {"combine_mode": self.combine_mode},
            )
        if not 0.0 <= self.completeness_threshold <= 1.0:
            raise ConfigurationError(
                "completeness_threshold must be in [0, 1]",
                {"completeness_threshold": self.completeness_threshold},
            )
        if self.decomposition_type not in DECOMPOSITION_TYPES:
            raise ConfigurationError(
                f"decomposition_type must be one of {DECOMPOSITION_TYPES}",
                {"decomposition_type": self.decomposition_type},
            )
        if self.centering not in CENTERINGS:
            raise ConfigurationError(
                f"centering must be one of {CENTERINGS}",
                {"centering": self.centering},
            )
        if self.anemometer_height_m <= 0:
            raise ConfigurationError(
                "anemometer_height_m must be positive",
                {"anemometer_height_m": self.anemometer_height_m},
            )
        if self.min_period_obs < 1:
            raise ConfigurationError(
                "min_period_obs must be at least 1",
                {"min_period_obs": self.min_period_obs},
            )
        for name in ("production_range", "respiration_range"):
            lo, hi = getattr(self, name)
            if lo > hi:
                raise ConfigurationError(
                    f"{name} lower bound exceeds upper bound", {name: (lo, hi)}
                )
        if self.metab_units not in METAB_UNITS:
            raise ConfigurationError(
                f"metab_units must be one of {METAB_UNITS}",
                {"metab_units": self.metab_units},
            )
        if self.depth_val is not None and self.depth_val <= 0:
            raise ConfigurationError(
                "depth_val must be positive", {"depth_val": self.depth_val}
            )
        self._validated = True

    def as_kwargs(self, *names: str) -> Dict[str, Any]:
        """Return options under the keyword names used by the operations.

        With no arguments every translated option is returned.
        """
        if not self._validated:
            self.validate()
        opts = {k: v for k, v in asdict(self).items() if not k.startswith("_")}
        translated = {
            "qaqc_keep": opts["quality_codes_accepted"],
            "timestep": opts["timestep_minutes"],
            "differ": opts["tolerance_minutes"],
            "method": opts["combine_mode"],
            "completeness_threshold": opts["completeness_threshold"],
            "type": opts["decomposition_type"],
            "center": opts["centering"],
            "height": opts["anemometer_height_m"],
            "min_period_obs": opts["min_period_obs"],
            "production_range": opts["production_range"],
            "respiration_range": opts["respiration_range"],
            "metab_units": opts["metab_units"],
            "depth_val": opts["depth_val"],
        }
        if not names:
            return translated
        missing = [n for n in names if n not in translated]
        if missing:
            raise ConfigurationError(f"Unknown option names: {', '.join(missing)}")
        return {n: translated[n] for n in names}
