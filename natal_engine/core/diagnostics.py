# natal_engine/core/diagnostics.py
# -*- coding: utf-8 -*-
"""
Accuracy diagnostics (never on the chart path)

Two independent checks:

1) Reference vectors: published positions for known birth moments. A vector
   is pushed through the full engine and each body is compared by shortest
   arc. Reference data only ever *measures* the engine; it is not used to
   compute anything.

2) Sidereal cross-check against PyERFA (IAU SOFA):
     GMST      our Meeus 12.4          vs  erfa.gmst82
     obliquity our IAU 1980 polynomial vs  erfa.obl80
     JD at 0h  our Meeus calendar      vs  erfa.cal2jd   (Gregorian dates only)
   Deviations are folded into an ErrorBudget (all terms in degrees of arc;
   a Julian Day error is converted through Earth's sidereal rotation rate).
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, NamedTuple, Optional, Tuple

import erfa  # PyERFA: SOFA reference routines

from natal_engine.core.astronomy import gmst_deg, mean_obliquity_deg
from natal_engine.core.chart import compute_natal_chart
from natal_engine.core.constants import Body, abs_sep_deg
from natal_engine.core.models import BirthInput
from natal_engine.core.timescales import CivilDate, CivilTime, julian_day
from natal_engine.utils.config import EngineConfig

__all__ = [
    "ReferenceVector",
    "REFERENCE_VECTORS",
    "ReferenceReport",
    "ErrorBudget",
    "SiderealCheck",
    "compare_with_reference",
    "erfa_julian_day",
    "cross_check_sidereal",
]

# degrees of Earth rotation per day of UT
_SIDEREAL_RATE_DEG = 360.98564736629
_DEFAULT_TARGET_ARCSEC = 1.0


# ─────────────────────────── reference vectors ───────────────────────────

class ReferenceVector(NamedTuple):
    name: str
    birth: BirthInput
    julian_day: float
    positions: Dict[Body, float]
    tolerance_deg: float = 1.0


REFERENCE_VECTORS: Tuple[ReferenceVector, ...] = (
    ReferenceVector(
        name="vancouver_1977",
        birth=BirthInput(
            date=CivilDate(1977, 5, 17),
            time=CivilTime(11, 29),
            latitude=49.2827,
            longitude=-123.1207,
            location="Vancouver, BC",
            timezone="America/Vancouver",
        ),
        julian_day=2443281.270139,
        positions={
            Body.SUN: 56.717,        # Taurus 26°43'
            Body.MOON: 52.917,       # Taurus 22°55'
            Body.MERCURY: 35.3,      # Taurus 5°18'
            Body.VENUS: 15.133,      # Aries 15°08'
            Body.MARS: 15.433,       # Aries 15°26'
            Body.JUPITER: 69.567,    # Gemini 9°34'
            Body.SATURN: 131.117,    # Leo 11°07'
            Body.ASCENDANT: 136.383, # Leo 16°23'
            Body.MIDHEAVEN: 31.633,  # Taurus 1°38'
        },
    ),
)


@dataclass(frozen=True)
class ReferenceReport:
    name: str
    julian_day_error_days: float
    deviations_deg: Dict[Body, float]
    tolerance_deg: float

    @property
    def max_error_deg(self) -> float:
        return max(self.deviations_deg.values(), default=0.0)

    @property
    def worst_body(self) -> Optional[Body]:
        if not self.deviations_deg:
            return None
        return max(self.deviations_deg, key=lambda b: self.deviations_deg[b])

    @property
    def passed(self) -> bool:
        return self.max_error_deg <= self.tolerance_deg

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "julian_day_error_days": self.julian_day_error_days,
            "deviations_deg": {b.value: v for b, v in self.deviations_deg.items()},
            "max_error_deg": self.max_error_deg,
            "passed": self.passed,
        }


def compare_with_reference(vector: ReferenceVector, config: Optional[EngineConfig] = None) -> ReferenceReport:
    """Run the engine on a reference birth and measure each body against it."""
    chart = compute_natal_chart(vector.birth, config)
    deviations: Dict[Body, float] = {}
    for body, ref_lon in vector.positions.items():
        p = chart.position(body)
        if p is not None:
            deviations[body] = abs_sep_deg(p.longitude, ref_lon)
    return ReferenceReport(
        name=vector.name,
        julian_day_error_days=abs(chart.julian_day.value - vector.julian_day),
        deviations_deg=deviations,
        tolerance_deg=vector.tolerance_deg,
    )


# ─────────────────────────── ERFA cross-check ───────────────────────────

@dataclass
class ErrorBudget:
    sidereal_time: float = 0.0
    obliquity: float = 0.0
    julian_day: float = 0.0
    total_rss: float = 0.0

    def compute_total(self) -> float:
        comps = [self.sidereal_time, self.obliquity, self.julian_day]
        self.total_rss = math.sqrt(sum(x * x for x in comps))
        return self.total_rss

    def certify_accuracy(self, target_arcsec: float = _DEFAULT_TARGET_ARCSEC) -> bool:
        self.compute_total()
        return self.total_rss * 3600.0 <= target_arcsec


class SiderealCheck(NamedTuple):
    jd: float
    gmst_deg: float
    gmst_erfa_deg: float
    obliquity_deg: float
    obliquity_erfa_deg: float
    error_budget: ErrorBudget
    passed: bool


def erfa_julian_day(year: int, month: int, day: int) -> float:
    """Julian Day at 0h from erfa.cal2jd (proleptic Gregorian)."""
    djm0, djm = erfa.cal2jd(year, month, day)
    return float(djm0) + float(djm)


def cross_check_sidereal(
    jd: float,
    date: Optional[CivilDate] = None,
    *,
    target_arcsec: float = _DEFAULT_TARGET_ARCSEC,
) -> SiderealCheck:
    """
    Compare the engine's sidereal quantities at `jd` with ERFA. When a
    Gregorian `date` is given its 0h Julian Day is checked as well.
    """
    ours_gmst = gmst_deg(jd)
    ref_gmst = math.degrees(float(erfa.gmst82(jd, 0.0))) % 360.0
    ours_eps = mean_obliquity_deg(jd)
    ref_eps = math.degrees(float(erfa.obl80(jd, 0.0)))

    budget = ErrorBudget(
        sidereal_time=abs_sep_deg(ours_gmst, ref_gmst),
        obliquity=abs(ours_eps - ref_eps),
    )
    if date is not None and date.as_tuple() >= (1582, 10, 15):
        jd_err = abs(julian_day(date.year, date.month, date.day) - erfa_julian_day(*date.as_tuple()))
        budget.julian_day = jd_err * _SIDEREAL_RATE_DEG
    passed = budget.certify_accuracy(target_arcsec)
    return SiderealCheck(
        jd=jd,
        gmst_deg=ours_gmst,
        gmst_erfa_deg=ref_gmst,
        obliquity_deg=ours_eps,
        obliquity_erfa_deg=ref_eps,
        error_budget=budget,
        passed=passed,
    )
