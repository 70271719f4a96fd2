"""
Air-water oxygen exchange.

``calckl`` estimates the oxygen mass transfer coefficient following
Thebault et al. (2008) and Ro and Hunt (2006). ``oxysol`` gives dissolved
oxygen at saturation following Benson and Krause (1984) with the water
vapor correction of Green and Carritt (1967).

Both functions are vectorized over scalars, arrays and Series. Physically
invalid inputs produce non-finite results rather than errors.

References:
    Benson BB, Krause D. 1984. The concentration and isotopic fractionation
    of oxygen dissolved in fresh-water and seawater in equilibrium with the
    atmosphere. Limnology and Oceanography 29:620-632.

    Green EJ, Carritt DE. 1967. New tables for oxygen saturation of seawater.
    Journal of Marine Research 25:140-147.

    Ro KS, Hunt PG. 2006. A new unified equation for wind-driven surficial
    oxygen transfer into stationary water bodies. Transactions of the ASABE
    49(5):1615-1622.

    Thebault J, Schraga TS, Cloern JE, Dunlavey EG. 2008. Primary production
    and carrying capacity of former salt ponds after reconnection to San
    Francisco Bay. Wetlands 28(3):841-851.
"""

from typing import Any, Optional, Union

import gsw
import numpy as np

ArrayLike = Union[float, np.ndarray, Any]

SURFACE_ROUGHNESS_M = 1e-5  # smooth water surface
REFERENCE_HEIGHT_M = 10.0
DENSITY_PRESSURE_DBAR = 10.0  # about 1 atm
R_DRY_AIR = 287.05  # J kg-1 K-1
R_WATER_VAPOR = 461.495  # J kg-1 K-1
BOLTZMANN = 1.3806503e-23  # m2 kg s-2 K-1
O2_RADIUS_M = 1.72e-10


def _celsius_to_kelvin(value: np.ndarray) -> np.ndarray:
    return value + 273.15


def _result(value: np.ndarray) -> ArrayLike:
    return float(value) if np.ndim(value) == 0 else value


def wind_at_reference(wspd: ArrayLike, height: float = 10) -> ArrayLike:
    """Scale wind speed measured at ``height`` m to 10 m with a log profile."""
    wspd = np.asarray(wspd, dtype=float)
    with np.errstate(invalid="ignore", divide="ignore"):
        u10 = wspd * np.log(REFERENCE_HEIGHT_M / SURFACE_ROUGHNESS_M) / np.log(
            height / SURFACE_ROUGHNESS_M
        )
    return _result(u10)


def seawater_density(sal: ArrayLike, temp: ArrayLike) -> ArrayLike:
    """In situ seawater density (kg m-3) at about one atmosphere, TEOS-10."""
    sal = np.asarray(sal, dtype=float)
    temp = np.asarray(temp, dtype=float)
    reference_sal = gsw.SR_from_SP(sal)
    return _result(np.asarray(gsw.rho_t_exact(reference_sal, temp, DENSITY_PRESSURE_DBAR)))


def calckl(
    temp: ArrayLike,
    sal: ArrayLike,
    atemp: ArrayLike,
    wspd: ArrayLike,
    bp: ArrayLike,
    height: float = 10,
) -> ArrayLike:
    """
    Oxygen mass transfer coefficient.

    Args:
        temp: Water temperature (C).
        sal: Salinity (ppt).
        atemp: Air temperature (C).
        wspd: Wind speed (m/s) at the anemometer height.
        bp: Barometric pressure (mb).
        height: Anemometer height (m).

    Returns:
        Mass transfer coefficient KL (m/d).
    """
    temp = np.asarray(temp, dtype=float)
    sal = np.asarray(sal, dtype=float)
    atemp = np.asarray(atemp, dtype=float)
    bp = np.asarray(bp, dtype=float)

    with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
        patm = bp * 100  # Pa
        u10 = np.asarray(wind_at_reference(wspd, height))
        temp_k = _celsius_to_kelvin(temp)
        atemp_k = _celsius_to_kelvin(atemp)
        rho_w = np.asarray(seawater_density(sal, temp))

        # dynamic viscosity of pure water, then seawater
        visc_pure = 1.002e-3 * 10 ** (
            (1.1709 * (20 - temp) - (1.827e-3 * (temp - 20) ** 2)) / (temp + 89.93)
        )
        chlorinity = rho_w * sal / 1806.55
        visc_sw = visc_pure * (
            1
            + (5.185e-5 * temp + 1.0675e-4) * chlorinity ** 0.5
            + (3.3e-5 * temp + 2.591e-3) * chlorinity
        )
        kin_visc = visc_sw / rho_w

        # moist air density from water vapor pressure
        vapor_hpa = 6.112 * np.exp(17.65 * atemp / (243.12 + atemp))
        vapor_pa = vapor_hpa * 100
        rho_a = (patm - vapor_pa) / (R_DRY_AIR * atemp_k) + vapor_pa / (
            R_WATER_VAPOR * temp_k
        )

        # Stokes-Einstein diffusivity of oxygen in water
        diffusivity = BOLTZMANN * temp_k / (4 * np.pi * visc_sw * O2_RADIUS_M)

        kl = (
            0.24
            * 170.6
            * (diffusivity / kin_visc) ** 0.5
            * (rho_a / rho_w) ** 0.5
            * u10 ** 1.81
        )
    return _result(kl)


def oxysol(t: ArrayLike, S: ArrayLike, P: Optional[ArrayLike] = None) -> ArrayLike:
    """
    Dissolved oxygen concentration in equilibrium with water-saturated air.

    Valid for 0-40 C and salinity 0-40.

    Args:
        t: Temperature (C).
        S: Salinity, practical salinity scale.
        P: Pressure (atm). None gives the value at 1 atm.

    Returns:
        Saturation concentration (mg/L).
    """
    t = np.asarray(t, dtype=float)
    S = np.asarray(S, dtype=float)
    with np.errstate(invalid="ignore", divide="ignore", over="ignore"):
        T = _celsius_to_kelvin(t)
        ln_cstar = (
            -139.34411
            + 157570.1 / T
            - 66423080 / T ** 2
            + 1.2438e10 / T ** 3
            - 862194900000 / T ** 4
            - S * (0.017674 - 10.754 / T + 2140.7 / T ** 2)
        )
        cstar = np.exp(ln_cstar)
        if P is None:
            return _result(cstar)

        P = np.asarray(P, dtype=float)
        pwv = (1 - 0.000537 * S) * np.exp(
            18.1973 * (1 - 373.16 / T)
            + 3.1813e-07 * (1 - np.exp(26.1205 * (1 - T / 373.16)))
            - 0.018726 * (1 - np.exp(8.03945 * (1 - 373.16 / T)))
            + 5.02802 * np.log(373.16 / T)
        )
        theta = 0.000975 - 1.426e-05 * t + 6.436e-08 * t ** 2
        out = cstar * P * (1 - pwv / P) * (1 - theta * P) / ((1 - pwv) * (1 - theta))
    return _result(out)
