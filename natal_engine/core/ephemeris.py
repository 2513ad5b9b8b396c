# natal_engine/core/ephemeris.py
# -*- coding: utf-8 -*-
"""
Low-precision geocentric ephemeris (tropical, ecliptic & equinox of date).

Model
-----
Sun     Meeus ch. 25: mean longitude, mean anomaly, 3-term equation of center,
        radius vector from the eccentricity of date.
Moon    Meeus ch. 47 leading terms in (D, M, M', F) plus the A1/A2/A3
        additive terms; ecliptic latitude from the matching table.
Planets Mean orbital elements of date (Meeus table 31.A). Mean anomaly
        M = L − ϖ drives a harmonic equation of center (6 terms for
        Mercury down to 2 for Venus); neighbour perturbations are added to
        the orbital longitude, which is then rotated into ecliptic
        coordinates and shifted to the geocentre with the Sun's vector.

Every intermediate angle is wrapped into [0, 360) after each additive step,
so century-scale polynomials never grow unbounded.

Retrograde motion and daily speed come from a backward finite difference
over `step_days` (default one day). This is sampling, not a velocity
formula; the interval is a tunable knob in EngineConfig.

Expected accuracy over 1800–2100: a few arc-minutes for the Sun and Moon,
better than ~0.5° for Mercury..Saturn.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from natal_engine.core.constants import (
    DAYS_PER_CENTURY,
    J2000_JD,
    PLANETS,
    Body,
    delta_deg,
    wrap_deg,
)
from natal_engine.core.errors import BodyComputationError
from natal_engine.core.models import CelestialLongitude

__all__ = [
    "OrbitalElements",
    "PerturbationTerm",
    "ELEMENTS",
    "PERTURBATIONS",
    "sun_position",
    "moon_position",
    "planet_position",
    "ecliptic_position",
    "body_motion",
    "compute_positions",
]

DEG_R = math.pi / 180.0


def _sind(a: float) -> float: return math.sin(a * DEG_R)
def _cosd(a: float) -> float: return math.cos(a * DEG_R)


def _centuries(jd: float) -> float:
    return (jd - J2000_JD) / DAYS_PER_CENTURY


def _poly(coeffs: Sequence[float], t: float) -> float:
    """Horner evaluation, lowest order first."""
    acc = 0.0
    for c in reversed(coeffs):
        acc = acc * t + c
    return acc


def _angle(coeffs: Sequence[float], t: float) -> float:
    return wrap_deg(_poly(coeffs, t))


# ───────────────────────────── Planet tables ─────────────────────────────

@dataclass(frozen=True)
class OrbitalElements:
    mean_longitude: Tuple[float, ...]     # L (deg), polynomial in T
    semi_major_axis: float                # a (AU)
    eccentricity: Tuple[float, ...]       # e
    inclination: Tuple[float, ...]        # i (deg)
    ascending_node: Tuple[float, ...]     # Ω (deg)
    perihelion: Tuple[float, ...]         # ϖ (deg)
    center: Tuple[float, ...]             # equation of center: amplitude of sin(kM), k = 1..n


ELEMENTS: Dict[Body, OrbitalElements] = {
    Body.MERCURY: OrbitalElements(
        mean_longitude=(252.250906, 149474.0722491, 0.00030350, 0.000000018),
        semi_major_axis=0.387098310,
        eccentricity=(0.20563175, 0.000020407, -0.0000000283),
        inclination=(7.004986, 0.0018215, -0.00001810),
        ascending_node=(48.330893, 1.1861883, 0.00017542),
        perihelion=(77.456119, 1.5564776, 0.00029544),
        center=(23.4400, 2.9818, 0.5255, 0.1058, 0.0241, 0.0055),
    ),
    Body.VENUS: OrbitalElements(
        mean_longitude=(181.979801, 58519.2130302, 0.00031014, 0.000000015),
        semi_major_axis=0.723329820,
        eccentricity=(0.00677192, -0.000047765, 0.0000000981),
        inclination=(3.394662, 0.0010037, -0.00000088),
        ascending_node=(76.679920, 0.9011206, 0.00040618),
        perihelion=(131.563703, 1.4022288, -0.00107618),
        center=(0.7758, 0.0033),
    ),
    Body.MARS: OrbitalElements(
        mean_longitude=(355.433000, 19141.6964471, 0.00031052, 0.000000016),
        semi_major_axis=1.523679342,
        eccentricity=(0.09340065, 0.000090484, -0.0000000806),
        inclination=(1.849726, -0.0006011, 0.00001276),
        ascending_node=(49.558093, 0.7720959, 0.00001557),
        perihelion=(336.060234, 1.8410449, 0.00013477),
        center=(10.6912, 0.6228, 0.0503, 0.0046, 0.0005),
    ),
    Body.JUPITER: OrbitalElements(
        mean_longitude=(34.351519, 3036.3027748, 0.00022330, 0.000000037),
        semi_major_axis=5.202603209,
        eccentricity=(0.04849793, 0.000163225, -0.0000004714),
        inclination=(1.303267, -0.0019877, 0.00003320),
        ascending_node=(100.464407, 1.0209774, 0.00040315),
        perihelion=(14.331207, 1.6126352, 0.00103042),
        center=(5.5549, 0.1683, 0.0071),
    ),
    Body.SATURN: OrbitalElements(
        mean_longitude=(50.077444, 1223.5110686, 0.00051908, -0.000000030),
        semi_major_axis=9.554909192,
        eccentricity=(0.05554814, -0.000346641, -0.0000006436),
        inclination=(2.488879, -0.0037362, -0.00001519),
        ascending_node=(113.665503, 0.8770880, -0.00012176),
        perihelion=(93.057237, 1.9637613, 0.00083753),
        center=(6.3585, 0.2204, 0.0106),
    ),
}

# Earth's mean longitude only feeds the inner-planet perturbation arguments.
_EARTH_MEAN_LONGITUDE: Tuple[float, ...] = (100.466457, 36000.7698278, 0.00030322, 0.000000020)


@dataclass(frozen=True)
class PerturbationTerm:
    """
    amplitude · sin(Σ kᵢ·angleᵢ + phase)   (cos when `cosine`)

    Angle keys: "M" is the perturbed body's own mean anomaly; "L_<body>" and
    "M_<body>" are a neighbour's mean longitude / mean anomaly.
    """

    amplitude: float
    arguments: Tuple[Tuple[int, str], ...]
    phase: float = 0.0
    cosine: bool = False

    def evaluate(self, angles: Dict[str, float]) -> float:
        arg = self.phase
        for k, key in self.arguments:
            arg = wrap_deg(arg + k * angles[key])
        return self.amplitude * (_cosd(arg) if self.cosine else _sind(arg))


_T = PerturbationTerm

PERTURBATIONS: Dict[Body, Tuple[PerturbationTerm, ...]] = {
    Body.MERCURY: (
        _T(0.0289, ((5, "L_venus"), (-2, "M")), -31.203),
        _T(0.0278, ((3, "L_venus"), (-1, "M")), 19.177),
        _T(0.0275, ((2, "L_jupiter"), (-1, "M")), -144.884),
        _T(0.0021, ((5, "L_venus"), (-4, "M")), -132.067),
    ),
    Body.VENUS: (
        _T(0.0059, ((3, "L_earth"), (-2, "M")), 41.889),
        _T(0.0048, ((1, "L_jupiter"), (-1, "M")), -123.845),
        _T(0.0024, ((2, "L_earth"), (-1, "M")), 29.983),
    ),
    Body.MARS: (
        _T(0.1302, ((1, "L_earth"), (-2, "M")), 143.721),
        _T(0.0343, ((2, "L_earth"), (-3, "M")), 150.270),
        _T(0.0117, ((2, "L_earth"), (-1, "M")), 169.189),
        _T(0.0094, ((1, "L_jupiter"), (-1, "M")), -54.385),
        _T(0.0062, ((3, "L_earth"), (-4, "M")), 169.945),
        _T(0.0046, ((1, "L_venus"), (-1, "M")), 43.889),
    ),
    # great inequality and its companions (Jupiter ↔ Saturn)
    Body.JUPITER: (
        _T(-0.332, ((2, "M_jupiter"), (-5, "M_saturn")), -67.6),
        _T(-0.056, ((2, "M_jupiter"), (-2, "M_saturn")), 21.0),
        _T(0.042, ((3, "M_jupiter"), (-5, "M_saturn")), 21.0),
        _T(-0.036, ((1, "M_jupiter"), (-2, "M_saturn"))),
        _T(0.022, ((1, "M_jupiter"), (-1, "M_saturn")), cosine=True),
        _T(0.023, ((2, "M_jupiter"), (-3, "M_saturn")), 52.0),
        _T(-0.016, ((1, "M_jupiter"), (-5, "M_saturn")), -69.0),
    ),
    Body.SATURN: (
        _T(0.812, ((2, "M_jupiter"), (-5, "M_saturn")), -67.6),
        _T(-0.229, ((2, "M_jupiter"), (-4, "M_saturn")), -2.0, cosine=True),
        _T(0.119, ((1, "M_jupiter"), (-2, "M_saturn")), -3.0),
        _T(0.046, ((2, "M_jupiter"), (-6, "M_saturn")), -69.0),
        _T(0.014, ((1, "M_jupiter"), (-3, "M_saturn")), 32.0),
    ),
}

del _T


def _mean_anomaly(el: OrbitalElements, t: float) -> float:
    return wrap_deg(_angle(el.mean_longitude, t) - _angle(el.perihelion, t))


def _perturbing_angles(body: Body, t: float) -> Dict[str, float]:
    return {
        "M": _mean_anomaly(ELEMENTS[body], t),
        "L_earth": _angle(_EARTH_MEAN_LONGITUDE, t),
        "L_venus": _angle(ELEMENTS[Body.VENUS].mean_longitude, t),
        "L_jupiter": _angle(ELEMENTS[Body.JUPITER].mean_longitude, t),
        "M_jupiter": _mean_anomaly(ELEMENTS[Body.JUPITER], t),
        "M_saturn": _mean_anomaly(ELEMENTS[Body.SATURN], t),
    }


# ───────────────────────────── Sun ─────────────────────────────

def _sun_geometric(t: float) -> Tuple[float, float]:
    """(true geometric longitude deg, radius vector AU)."""
    l0 = _angle((280.46646, 36000.76983, 0.0003032), t)
    m = _angle((357.52911, 35999.05029, -0.0001537), t)
    e = _poly((0.016708634, -0.000042037, -0.0000001267), t)
    c = (
        (1.914602 - 0.004817 * t - 0.000014 * t * t) * _sind(m)
        + (0.019993 - 0.000101 * t) * _sind(2.0 * m)
        + 0.000289 * _sind(3.0 * m)
    )
    lam = wrap_deg(l0 + c)
    nu = wrap_deg(m + c)
    r = 1.000001018 * (1.0 - e * e) / (1.0 + e * _cosd(nu))
    return lam, r


def sun_position(jd: float) -> Tuple[float, float]:
    """Geocentric (longitude, latitude) of the Sun; latitude is taken as 0."""
    lam, _ = _sun_geometric(_centuries(jd))
    return lam, 0.0


# ───────────────────────────── Moon ─────────────────────────────

# (D, M, M', F, Σl coefficient in 1e-6 deg)
_MOON_LONGITUDE_TERMS: Tuple[Tuple[int, int, int, int, int], ...] = (
    (0, 0, 1, 0, 6288774),
    (2, 0, -1, 0, 1274027),
    (2, 0, 0, 0, 658314),
    (0, 0, 2, 0, 213618),
    (0, 1, 0, 0, -185116),
    (0, 0, 0, 2, -114332),
    (2, 0, -2, 0, 58793),
    (2, -1, -1, 0, 57066),
    (2, 0, 1, 0, 53322),
    (2, -1, 0, 0, 45758),
    (0, 1, -1, 0, -40923),
    (1, 0, 0, 0, -34720),
    (0, 1, 1, 0, -30383),
    (2, 0, 0, -2, 15327),
    (0, 0, 1, 2, -12528),
    (0, 0, 1, -2, 10980),
    (4, 0, -1, 0, 10675),
    (0, 0, 3, 0, 10034),
    (4, 0, -2, 0, 8548),
    (2, 1, -1, 0, -7888),
    (2, 1, 0, 0, -6766),
    (1, 0, -1, 0, -5163),
    (1, 1, 0, 0, 4987),
    (2, -1, 1, 0, 4036),
)

# (D, M, M', F, Σb coefficient in 1e-6 deg)
_MOON_LATITUDE_TERMS: Tuple[Tuple[int, int, int, int, int], ...] = (
    (0, 0, 0, 1, 5128122),
    (0, 0, 1, 1, 280602),
    (0, 0, 1, -1, 277693),
    (2, 0, 0, -1, 173237),
    (2, 0, -1, 1, 55413),
    (2, 0, -1, -1, 46271),
    (2, 0, 0, 1, 32573),
    (0, 0, 2, 1, 17198),
    (2, 0, 1, -1, 9266),
    (0, 0, 2, -1, 8822),
    (2, -1, 0, -1, 8216),
    (2, 0, -2, -1, 4324),
)


def _moon_series(
    terms: Iterable[Tuple[int, int, int, int, int]],
    d: float, m: float, mp: float, f: float, ecc: float,
) -> float:
    total = 0.0
    for kd, km, kmp, kf, coeff in terms:
        arg = wrap_deg(kd * d + km * m + kmp * mp + kf * f)
        # terms in the Sun's anomaly shrink with Earth's decreasing eccentricity
        total += coeff * (ecc ** abs(km)) * _sind(arg)
    return total


def moon_position(jd: float) -> Tuple[float, float]:
    """Geocentric (longitude, latitude) of the Moon, degrees."""
    t = _centuries(jd)
    lp = _angle((218.3164477, 481267.88123421, -0.0015786, 1.0 / 538841.0, -1.0 / 65194000.0), t)
    d = _angle((297.8501921, 445267.1114034, -0.0018819, 1.0 / 545868.0, -1.0 / 113065000.0), t)
    m = _angle((357.5291092, 35999.0502909, -0.0001536, 1.0 / 24490000.0), t)
    mp = _angle((134.9633964, 477198.8675055, 0.0087414, 1.0 / 69699.0, -1.0 / 14712000.0), t)
    f = _angle((93.2720950, 483202.0175233, -0.0036539, -1.0 / 3526000.0, 1.0 / 863310000.0), t)
    a1 = _angle((119.75, 131.849), t)
    a2 = _angle((53.09, 479264.290), t)
    a3 = _angle((313.45, 481266.484), t)
    ecc = 1.0 - 0.002516 * t - 0.0000074 * t * t

    sl = _moon_series(_MOON_LONGITUDE_TERMS, d, m, mp, f, ecc)
    sl += 3958.0 * _sind(a1) + 1962.0 * _sind(wrap_deg(lp - f)) + 318.0 * _sind(a2)

    sb = _moon_series(_MOON_LATITUDE_TERMS, d, m, mp, f, ecc)
    sb += (
        -2235.0 * _sind(lp)
        + 382.0 * _sind(a3)
        + 175.0 * _sind(wrap_deg(a1 - f))
        + 175.0 * _sind(wrap_deg(a1 + f))
        + 127.0 * _sind(wrap_deg(lp - mp))
        - 115.0 * _sind(wrap_deg(lp + mp))
    )
    return wrap_deg(lp + sl / 1e6), sb / 1e6


# ───────────────────────────── Planets ─────────────────────────────

def _heliocentric_xyz(body: Body, t: float) -> Tuple[float, float, float]:
    el = ELEMENTS[body]
    angles = _perturbing_angles(body, t)
    m = angles["M"]

    c = 0.0
    for k, amp in enumerate(el.center, start=1):
        c += amp * _sind(k * m)

    lam = wrap_deg(_angle(el.mean_longitude, t) + c)
    for term in PERTURBATIONS.get(body, ()):
        lam = wrap_deg(lam + term.evaluate(angles))

    e = _poly(el.eccentricity, t)
    nu = wrap_deg(m + c)
    r = el.semi_major_axis * (1.0 - e * e) / (1.0 + e * _cosd(nu))

    node = _angle(el.ascending_node, t)
    inc = _poly(el.inclination, t)
    u = wrap_deg(lam - node)  # argument of latitude
    cos_u, sin_u = _cosd(u), _sind(u)
    cos_n, sin_n = _cosd(node), _sind(node)
    cos_i, sin_i = _cosd(inc), _sind(inc)
    x = r * (cos_n * cos_u - sin_n * sin_u * cos_i)
    y = r * (sin_n * cos_u + cos_n * sin_u * cos_i)
    z = r * sin_u * sin_i
    return x, y, z


def planet_position(body: Body, jd: float) -> Tuple[float, float]:
    """Geocentric (longitude, latitude) for Mercury..Saturn."""
    t = _centuries(jd)
    x, y, z = _heliocentric_xyz(body, t)
    sun_lam, sun_r = _sun_geometric(t)
    # Earth sits opposite the Sun, so geocentric = heliocentric + Sun vector
    gx = x + sun_r * _cosd(sun_lam)
    gy = y + sun_r * _sind(sun_lam)
    lon = wrap_deg(math.degrees(math.atan2(gy, gx)))
    lat = math.degrees(math.atan2(z, math.hypot(gx, gy)))
    return lon, lat


# ───────────────────────────── Dispatch ─────────────────────────────

def _planet(body: Body) -> Callable[[float], Tuple[float, float]]:
    return lambda jd: planet_position(body, jd)


_SERIES: Dict[Body, Callable[[float], Tuple[float, float]]] = {
    Body.SUN: sun_position,
    Body.MOON: moon_position,
    Body.MERCURY: _planet(Body.MERCURY),
    Body.VENUS: _planet(Body.VENUS),
    Body.MARS: _planet(Body.MARS),
    Body.JUPITER: _planet(Body.JUPITER),
    Body.SATURN: _planet(Body.SATURN),
}


def ecliptic_position(body: Body, jd: float) -> Tuple[float, float]:
    """(longitude in [0, 360), latitude) for a computed body at a UT Julian Day."""
    series = _SERIES.get(body)
    if series is None:
        raise BodyComputationError(body.value, "not covered by the planetary series")
    try:
        lon, lat = series(jd)
    except (ValueError, OverflowError) as e:
        raise BodyComputationError(body.value, str(e)) from e
    if not (math.isfinite(lon) and math.isfinite(lat)):
        raise BodyComputationError(body.value)
    return lon, lat


def body_motion(body: Body, jd: float, step_days: float = 1.0) -> Tuple[float, float, float]:
    """
    (longitude, latitude, speed deg/day). Speed is the shortest signed arc
    from jd − step to jd, divided by the step.
    """
    if not step_days > 0.0:
        raise ValueError("step_days must be positive")
    lon, lat = ecliptic_position(body, jd)
    prev, _ = ecliptic_position(body, jd - step_days)
    return lon, lat, delta_deg(prev, lon) / step_days


def compute_positions(
    jd: float,
    bodies: Iterable[Body] = PLANETS,
    *,
    step_days: float = 1.0,
) -> List[CelestialLongitude]:
    """CelestialLongitude for each requested planet (angles/reserved bodies are skipped)."""
    out: List[CelestialLongitude] = []
    for body in bodies:
        if body not in _SERIES:
            continue
        lon, lat, speed = body_motion(body, jd, step_days)
        out.append(CelestialLongitude(
            body=body,
            longitude=lon,
            latitude=lat,
            speed=speed,
            retrograde=speed < 0.0,
        ))
    return out
