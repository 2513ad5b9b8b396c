# natal_engine/core/houses.py
"""
House cusps: five implemented systems, two declared.

Implemented
- equal       Ascendant + 30°·k (no latitude dependency)
- whole_sign  cusp k = start of the Ascendant's sign + 30°·(k−1)
- placidus    semi-arc time division, solved per cusp with a bracketed
              Illinois (regula-falsi) iteration
- koch        MC semi-arc trisection: cusps are the Ascendants of shifted RAMCs
- campanus    prime vertical in 30° steps; house circles pass through the
              horizon's north and south points (vector form, quadrant-free)

Declared but not implemented: regiomontanus, porphyry. Requesting them, or
any unknown name, raises UnsupportedHouseSystemError; nothing ever falls back
silently to another system.

Polar policy
- placidus/koch/campanus are undefined once part of the ecliptic becomes
  circumpolar, i.e. from |φ| ≥ 90° − ε (≈ 66.56°). The limit can be tightened
  or relaxed through EngineConfig.polar_latitude_limit_deg.
- equal/whole_sign are accepted at any latitude short of the poles, but
  inside the polar circle they fail whenever the Ascendant itself is
  undefined (the rising point trails the meridian).
- Any domain error, non-convergence, non-finite cusp, or a cusp ring that is
  not strictly increasing raises HouseSystemDegenerateError.

Invariants of every result: 12 finite cusps in [0, 360), strictly increasing
around the circle from house 1; cusp 1 == Ascendant (whole_sign: cusp 1 is
the first degree of the Ascendant's sign).
"""

from __future__ import annotations

import difflib
import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from natal_engine.core.astronomy import ascendant_deg, midheaven_deg
from natal_engine.core.constants import (
    HOUSE_SYSTEM_ALIASES,
    IMPLEMENTED_HOUSE_SYSTEMS,
    HouseSystem,
    delta_deg,
    wrap_deg,
)
from natal_engine.core.errors import HouseSystemDegenerateError, UnsupportedHouseSystemError

logger = logging.getLogger(__name__)

__all__ = [
    "HouseData",
    "normalize_house_system",
    "resolve_house_system",
    "polar_limit_deg",
    "compute_houses",
    "house_of_longitude",
    "assign_houses",
]

DEG_R = math.pi / 180.0

# Numeric knobs (overridable per call from EngineConfig)
DEFAULT_MAX_ITERATIONS = 100
DEFAULT_TOLERANCE_DEG = 1e-9

_LATITUDE_SENSITIVE = frozenset({HouseSystem.PLACIDUS, HouseSystem.KOCH, HouseSystem.CAMPANUS})


# --------------------------- angle helpers ---------------------------

def _sind(a: float) -> float: return math.sin(a * DEG_R)
def _cosd(a: float) -> float: return math.cos(a * DEG_R)
def _tand(a: float) -> float: return math.tan(a * DEG_R)


def _atan2d(y: float, x: float) -> float:
    return wrap_deg(math.degrees(math.atan2(y, x)))


def _asin_strict_deg(x: float, system: str, ctx: str) -> float:
    if not -1.0 <= x <= 1.0:
        raise HouseSystemDegenerateError(system, f"{ctx} outside [-1, 1]")
    return math.degrees(math.asin(x))


def _acos_strict_deg(x: float, system: str, ctx: str) -> float:
    if not -1.0 <= x <= 1.0:
        raise HouseSystemDegenerateError(system, f"{ctx} outside [-1, 1]")
    return math.degrees(math.acos(x))


def _lambda_from_ra(ra: float, eps: float) -> float:
    """Ecliptic longitude of the ecliptic point with right ascension `ra`."""
    return _atan2d(_sind(ra), _cosd(ra) * _cosd(eps))


def _ra_of_lambda(lam: float, eps: float) -> float:
    return _atan2d(_sind(lam) * _cosd(eps), _cosd(lam))


def _decl_of_lambda(lam: float, eps: float) -> float:
    return math.degrees(math.asin(_sind(eps) * _sind(lam)))


# --------------------------- data model ---------------------------

@dataclass(frozen=True)
class HouseData:
    system: HouseSystem
    cusps: Tuple[float, ...]
    ascendant: float
    midheaven: float

    def cusp(self, house: int) -> float:
        return self.cusps[house - 1]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "house_system": self.system.key,
            "cusps": list(self.cusps),
            "asc_deg": self.ascendant,
            "mc_deg": self.midheaven,
        }


# --------------------------- name normalization ---------------------------

def _slug(s: str) -> str:
    return "_".join(str(s).strip().lower().replace("-", " ").split())


def normalize_house_system(value: Any) -> HouseSystem:
    """
    Map a user-facing name ("Whole Sign", "whole-sign", "WS", HouseSystem.X)
    to a declared HouseSystem. Unknown names raise with close-match hints.
    """
    if isinstance(value, HouseSystem):
        return value
    slug = _slug(value or "")
    key = HOUSE_SYSTEM_ALIASES.get(slug)
    if key is None:
        for hs in HouseSystem:
            if _slug(hs.display) == slug:
                key = hs.key
                break
    if key is None:
        hints = difflib.get_close_matches(slug, [hs.key for hs in HouseSystem], n=3, cutoff=0.6)
        raise UnsupportedHouseSystemError(value, hints)
    return next(hs for hs in HouseSystem if hs.key == key)


def resolve_house_system(value: Any, enabled: Iterable[HouseSystem] = IMPLEMENTED_HOUSE_SYSTEMS) -> HouseSystem:
    """Normalize and require an implemented system that is enabled in config."""
    hs = normalize_house_system(value)
    enabled = tuple(enabled)
    if not hs.implemented or hs not in enabled:
        raise UnsupportedHouseSystemError(value, [e.key for e in enabled])
    return hs


def polar_limit_deg(obliquity: float, override: Optional[float] = None) -> float:
    return float(override) if override is not None else 90.0 - obliquity


# --------------------------- ring helpers ---------------------------

def _fill_opposites(cusps: List[Optional[float]]) -> List[float]:
    """Houses 4..9 sit opposite 10..3."""
    for i in range(3, 9):
        src = cusps[(i + 6) % 12]
        if cusps[i] is None and src is not None:
            cusps[i] = wrap_deg(src + 180.0)
    if any(c is None for c in cusps):
        raise RuntimeError("incomplete cusp ring")
    return [float(c) for c in cusps]  # type: ignore[arg-type]


def _check_ring(system: HouseSystem, cusps: Sequence[float]) -> None:
    if len(cusps) != 12 or not all(math.isfinite(c) for c in cusps):
        raise HouseSystemDegenerateError(system.key, "non-finite cusp")
    spans = [wrap_deg(cusps[(i + 1) % 12] - cusps[i]) for i in range(12)]
    if min(spans) <= 0.0 or abs(sum(spans) - 360.0) > 1e-6:
        raise HouseSystemDegenerateError(system.key, "cusps are not increasing around the circle")


# --------------------------- house engines ---------------------------

def _equal(asc: float) -> List[float]:
    return [wrap_deg(asc + 30.0 * i) for i in range(12)]


def _whole_sign(asc: float) -> List[float]:
    start = math.floor(wrap_deg(asc) / 30.0) * 30.0
    return [wrap_deg(start + 30.0 * i) for i in range(12)]


def _illinois(
    f: Callable[[float], float], lo: float, hi: float, *,
    system: str, max_iter: int, tol: float,
) -> float:
    """Root of f on [lo, hi] (degrees) given a sign change; regula falsi, Illinois variant."""
    f_lo, f_hi = f(lo), f(hi)
    if f_lo == 0.0:
        return lo
    if f_hi == 0.0:
        return hi
    if f_lo * f_hi > 0.0:
        raise HouseSystemDegenerateError(system, "cusp not bracketed")
    side = 0
    for _ in range(max_iter):
        x = (lo * f_hi - hi * f_lo) / (f_hi - f_lo)
        fx = f(x)
        if abs(fx) < tol or (hi - lo) < tol:
            return x
        if fx * f_hi > 0.0:
            hi, f_hi = x, fx
            if side == -1:
                f_lo *= 0.5
            side = -1
        else:
            lo, f_lo = x, fx
            if side == 1:
                f_hi *= 0.5
            side = 1
    raise HouseSystemDegenerateError(system, f"no convergence after {max_iter} iterations")


# house → (RA offset from RAMC, fraction of the diurnal semi-arc)
#   11, 12: RAMC + ⅓·DSA, RAMC + ⅔·DSA
#   2, 3:   RAMC + 180 − ⅔·NSA, RAMC + 180 − ⅓·NSA   with NSA = 180 − DSA
_PLACIDUS_DIVISIONS: Dict[int, Tuple[float, float]] = {
    11: (0.0, 1.0 / 3.0),
    12: (0.0, 2.0 / 3.0),
    2: (60.0, 2.0 / 3.0),
    3: (120.0, 1.0 / 3.0),
}


def _placidus(phi: float, eps: float, ramc: float, asc: float, mc: float, *,
              max_iter: int, tol: float) -> List[float]:
    name = HouseSystem.PLACIDUS.key

    def residual(house: int) -> Callable[[float], float]:
        base, frac = _PLACIDUS_DIVISIONS[house]

        def f(lam: float) -> float:
            dec = _decl_of_lambda(lam, eps)
            dsa = _acos_strict_deg(-_tand(phi) * _tand(dec), name, "semi-arc argument")
            return delta_deg(ramc + base + frac * dsa, _ra_of_lambda(lam, eps))
        return f

    cusps: List[Optional[float]] = [None] * 12
    cusps[0], cusps[9] = asc, mc
    ic = wrap_deg(mc + 180.0)
    # cusps 11/12 lie between MC and Asc, cusps 2/3 between Asc and IC
    for house, (start, end) in ((11, (mc, asc)), (12, (mc, asc)), (2, (asc, ic)), (3, (asc, ic))):
        f = residual(house)
        offset = _illinois(
            lambda x: f(start + x), 0.0, wrap_deg(end - start),
            system=name, max_iter=max_iter, tol=tol,
        )
        cusps[house - 1] = wrap_deg(start + offset)
    return _fill_opposites(cusps)


def _koch(phi: float, eps: float, ramc: float, asc: float, mc: float) -> List[float]:
    name = HouseSystem.KOCH.key
    dec_mc = _asin_strict_deg(_sind(mc) * _sind(eps), name, "MC declination")
    ad = _asin_strict_deg(_tand(dec_mc) * _tand(phi), name, "ascensional difference")
    step = (90.0 + ad) / 3.0  # a third of the MC's diurnal semi-arc
    cusps: List[Optional[float]] = [None] * 12
    cusps[0], cusps[9] = asc, mc
    cusps[10] = ascendant_deg(ramc - 2.0 * step, phi, eps)
    cusps[11] = ascendant_deg(ramc - step, phi, eps)
    cusps[1] = ascendant_deg(ramc + step, phi, eps)
    cusps[2] = ascendant_deg(ramc + 2.0 * step, phi, eps)
    return _fill_opposites(cusps)


def _cross(a: Tuple[float, float, float], b: Tuple[float, float, float]) -> Tuple[float, float, float]:
    return (a[1] * b[2] - a[2] * b[1], a[2] * b[0] - a[0] * b[2], a[0] * b[1] - a[1] * b[0])


def _dot(a: Tuple[float, float, float], b: Tuple[float, float, float]) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


# house → altitude of its prime-vertical point above the east point
_CAMPANUS_ELEVATIONS: Dict[int, float] = {11: 60.0, 12: 30.0, 2: -30.0, 3: -60.0}


def _campanus(phi: float, eps: float, ramc: float, asc: float, mc: float) -> List[float]:
    name = HouseSystem.CAMPANUS.key
    # equatorial unit vectors: zenith, east point, north point of the horizon
    zen = (_cosd(phi) * _cosd(ramc), _cosd(phi) * _sind(ramc), _sind(phi))
    east = (-_sind(ramc), _cosd(ramc), 0.0)
    north = _cross(zen, east)
    ecl_pole = (0.0, -_sind(eps), _cosd(eps))

    cusps: List[Optional[float]] = [None] * 12
    cusps[0], cusps[9] = asc, mc
    for house, alt in _CAMPANUS_ELEVATIONS.items():
        ca, sa = _cosd(alt), _sind(alt)
        p = tuple(ca * e + sa * z for e, z in zip(east, zen))
        d = _cross(_cross(north, p), ecl_pole)  # type: ignore[arg-type]
        if math.sqrt(_dot(d, d)) < 1e-12:
            raise HouseSystemDegenerateError(name, f"house {house} circle coincides with the ecliptic")
        if _dot(d, p) < 0.0:  # type: ignore[arg-type]
            d = (-d[0], -d[1], -d[2])
        lam = _atan2d(d[1] * _cosd(eps) + d[2] * _sind(eps), d[0])
        cusps[house - 1] = lam
    return _fill_opposites(cusps)


# --------------------------- public API ---------------------------

def compute_houses(
    system: Any,
    *,
    lst: float,
    latitude: float,
    obliquity: float,
    polar_limit: Optional[float] = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE_DEG,
) -> HouseData:
    """
    Twelve cusps for `system` from local sidereal time (= RAMC), geographic
    latitude and obliquity, all in degrees.
    """
    hs = normalize_house_system(system)
    if not hs.implemented:
        raise UnsupportedHouseSystemError(system, [s.key for s in IMPLEMENTED_HOUSE_SYSTEMS])

    limit = polar_limit_deg(obliquity, polar_limit)
    if hs in _LATITUDE_SENSITIVE and abs(latitude) >= limit:
        logger.debug("house system %s rejected above the polar limit", hs.key)
        raise HouseSystemDegenerateError(hs.key, f"undefined at |latitude| >= {limit:.2f}°")

    asc = ascendant_deg(lst, latitude, obliquity)
    mc = midheaven_deg(lst, obliquity)

    if hs is HouseSystem.EQUAL:
        cusps = _equal(asc)
    elif hs is HouseSystem.WHOLE_SIGN:
        cusps = _whole_sign(asc)
    elif hs is HouseSystem.PLACIDUS:
        cusps = _placidus(latitude, obliquity, lst, asc, mc, max_iter=max_iterations, tol=tolerance)
    elif hs is HouseSystem.KOCH:
        cusps = _koch(latitude, obliquity, lst, asc, mc)
    elif hs is HouseSystem.CAMPANUS:
        cusps = _campanus(latitude, obliquity, lst, asc, mc)
    else:  # pragma: no cover - guarded by `implemented`
        raise UnsupportedHouseSystemError(system)

    _check_ring(hs, cusps)
    logger.debug("house system %s computed", hs.key)
    return HouseData(system=hs, cusps=tuple(cusps), ascendant=asc, midheaven=mc)


# --------------------------- planet → house assignment ---------------------------

def house_of_longitude(cusps_deg: Sequence[float], lon_deg: float) -> int:
    """Return 1..12 for a longitude using forward-wrapping intervals [cusp[i], cusp[i+1])."""
    if len(cusps_deg) != 12:
        raise ValueError("cusps_deg must have length 12")
    lam = wrap_deg(lon_deg)
    for i in range(12):
        start = wrap_deg(cusps_deg[i])
        span = wrap_deg(cusps_deg[(i + 1) % 12] - start)
        if wrap_deg(lam - start) < span:
            return i + 1
    return 12


def assign_houses(longitudes_deg: Iterable[float], cusps_deg: Sequence[float]) -> List[int]:
    return [house_of_longitude(cusps_deg, lam) for lam in longitudes_deg]
