# natal_engine/core/astronomy.py
# -*- coding: utf-8 -*-
"""
Sidereal time, obliquity and the chart angles (Ascendant / Midheaven).

All inputs are UT Julian Days and geographic degrees (east longitude
positive); all outputs are degrees, wrapped into [0, 360) where they are
longitudes.

Public API:
    gmst_deg(jd) -> float
    local_sidereal_time_deg(jd, longitude) -> float
    mean_obliquity_deg(jd) -> float
    ascendant_deg(lst, latitude, obliquity) -> float
    midheaven_deg(lst, obliquity) -> float
    compute_angles(jd, latitude, longitude) -> ChartAngles
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from natal_engine.core.constants import DAYS_PER_CENTURY, J2000_JD, wrap_deg
from natal_engine.core.errors import HouseSystemDegenerateError

__all__ = [
    "ChartAngles",
    "gmst_deg",
    "local_sidereal_time_deg",
    "mean_obliquity_deg",
    "ascendant_deg",
    "midheaven_deg",
    "compute_angles",
]

DEG_R = math.pi / 180.0

# Below this distance from a pole the horizon no longer defines a rising point.
_POLE_GUARD_DEG = 1e-9
# East component of the crossing below which the ecliptic touches the meridian.
_HORIZON_EPS = 1e-12


def _sind(a: float) -> float: return math.sin(a * DEG_R)
def _cosd(a: float) -> float: return math.cos(a * DEG_R)
def _tand(a: float) -> float: return math.tan(a * DEG_R)


# ───────────────────────────── Sidereal time ─────────────────────────────

def gmst_deg(jd: float) -> float:
    """Greenwich mean sidereal time (Meeus eq. 12.4), degrees in [0, 360)."""
    d = jd - J2000_JD
    t = d / DAYS_PER_CENTURY
    theta = wrap_deg(280.46061837 + 360.98564736629 * d)
    theta = wrap_deg(theta + 0.000387933 * t * t - t * t * t / 38710000.0)
    return theta


def local_sidereal_time_deg(jd: float, longitude: float) -> float:
    return wrap_deg(gmst_deg(jd) + longitude)


def mean_obliquity_deg(jd: float) -> float:
    """Mean obliquity of the ecliptic (IAU 1980 / Meeus eq. 22.2)."""
    t = (jd - J2000_JD) / DAYS_PER_CENTURY
    arcsec = 84381.448 - 46.8150 * t - 0.00059 * t * t + 0.001813 * t * t * t
    return arcsec / 3600.0


# ───────────────────────────── Angles ─────────────────────────────

def ascendant_deg(lst: float, latitude: float, obliquity: float) -> float:
    """
    Ecliptic longitude rising on the eastern horizon.

    atan2 gives one of the two horizon crossings. The sign of its east
    component (cos ε + tan φ sin LST sin ε) picks the rising one; below the
    polar circle that component is always positive. The rising point must
    then lie less than 180° ahead of the sidereal time. Inside the polar
    circle it can trail the meridian instead, and no Ascendant is returned.
    """
    if 90.0 - abs(latitude) < _POLE_GUARD_DEG:
        raise HouseSystemDegenerateError("ascendant", "horizon has no rising point at a geographic pole")
    y = _cosd(lst)
    x = -(_sind(lst) * _cosd(obliquity) + _tand(latitude) * _sind(obliquity))
    east = _cosd(obliquity) + _tand(latitude) * _sind(lst) * _sind(obliquity)
    if abs(east) < _HORIZON_EPS:
        raise HouseSystemDegenerateError("ascendant", "ecliptic meets the horizon on the meridian")
    asc = wrap_deg(math.degrees(math.atan2(y, x)))
    if east < 0.0:
        asc = wrap_deg(asc + 180.0)
    if wrap_deg(asc - lst) >= 180.0:
        raise HouseSystemDegenerateError("ascendant", "rising point trails the meridian inside the polar circle")
    return asc


def midheaven_deg(lst: float, obliquity: float) -> float:
    """
    Ecliptic longitude on the upper meridian: tan λ = tan LST / cos ε,
    placed in the same quadrant as LST.
    """
    c = _cosd(lst)
    if abs(c) < 1e-12:
        return wrap_deg(lst)  # 90° and 270° map onto themselves
    mc = math.degrees(math.atan(_tand(lst) / _cosd(obliquity)))
    if c < 0.0:
        mc += 180.0
    return wrap_deg(mc)


@dataclass(frozen=True)
class ChartAngles:
    gmst: float
    lst: float
    obliquity: float
    ascendant: float
    midheaven: float

    def to_dict(self) -> dict:
        return {
            "gmst_deg": self.gmst,
            "lst_deg": self.lst,
            "obliquity_deg": self.obliquity,
            "asc_deg": self.ascendant,
            "mc_deg": self.midheaven,
        }


def compute_angles(jd: float, latitude: float, longitude: float) -> ChartAngles:
    gmst = gmst_deg(jd)
    lst = wrap_deg(gmst + longitude)
    eps = mean_obliquity_deg(jd)
    return ChartAngles(
        gmst=gmst,
        lst=lst,
        obliquity=eps,
        ascendant=ascendant_deg(lst, latitude, eps),
        midheaven=midheaven_deg(lst, eps),
    )
