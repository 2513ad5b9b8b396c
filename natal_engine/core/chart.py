# natal_engine/core/chart.py
# -*- coding: utf-8 -*-
"""
Chart assembly.

Public API:
    compute_natal_chart(birth: BirthInput, config: EngineConfig | None = None) -> NatalChart

Order of work (each step only consumes the ones before it):
    civil time → Julian Day → sidereal time / obliquity / angles
               → house cusps → planetary longitudes → aspects → NatalChart

The function is pure: identical input and config give an identical chart.
Any EngineError aborts the whole call; no partially built chart escapes.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from natal_engine.core.aspects import detect_aspects
from natal_engine.core.astronomy import ChartAngles, compute_angles
from natal_engine.core.constants import Body, delta_deg
from natal_engine.core.ephemeris import compute_positions
from natal_engine.core.houses import compute_houses, resolve_house_system
from natal_engine.core.models import BirthInput, CelestialLongitude, HouseCusp, NatalChart
from natal_engine.core.timescales import normalize_birth_moment
from natal_engine.utils.config import EngineConfig, get_config

logger = logging.getLogger(__name__)

__all__ = ["compute_natal_chart"]


def _angle_points(
    now: ChartAngles,
    jd: float,
    birth: BirthInput,
    cfg: EngineConfig,
) -> List[CelestialLongitude]:
    """Ascendant/Midheaven as chart points, with speeds sampled over the angle step."""
    wanted = [b for b in (Body.ASCENDANT, Body.MIDHEAVEN) if b in cfg.bodies]
    if not wanted:
        return []
    step = cfg.angle_motion_step_days
    before = compute_angles(jd - step, birth.latitude, birth.longitude)
    out: List[CelestialLongitude] = []
    for body in wanted:
        if body is Body.ASCENDANT:
            lon, prev = now.ascendant, before.ascendant
        else:
            lon, prev = now.midheaven, before.midheaven
        out.append(CelestialLongitude(body=body, longitude=lon, speed=delta_deg(prev, lon) / step))
    return out


def _dedup(items: List[str]) -> Tuple[str, ...]:
    seen: List[str] = []
    for s in items:
        if s not in seen:
            seen.append(s)
    return tuple(seen)


def compute_natal_chart(birth: BirthInput, config: Optional[EngineConfig] = None) -> NatalChart:
    """
    Build the complete chart for one birth moment.

    Raises InvalidDateError / InvalidCoordinateError for bad input,
    UnsupportedHouseSystemError, HouseSystemDegenerateError at polar
    latitudes, BodyComputationError if a series produces a non-finite value.
    """
    cfg = config or get_config()
    system = resolve_house_system(birth.house_system or cfg.default_house_system, cfg.house_systems)

    jd = normalize_birth_moment(birth)
    angles = compute_angles(jd.value, birth.latitude, birth.longitude)
    houses = compute_houses(
        system,
        lst=angles.lst,
        latitude=birth.latitude,
        obliquity=angles.obliquity,
        polar_limit=cfg.polar_latitude_limit_deg,
        max_iterations=cfg.placidus_max_iterations,
        tolerance=cfg.placidus_tolerance_deg,
    )

    planets = compute_positions(jd.value, cfg.bodies, step_days=cfg.retrograde_step_days)
    points = _angle_points(angles, jd.value, birth, cfg)

    aspect_inputs = planets + points if cfg.include_angles_in_aspects else planets
    aspects = detect_aspects(aspect_inputs, max_orb=cfg.max_orb_deg, orbs=cfg.aspect_orbs)

    skipped = [b for b in cfg.bodies if b.is_reserved]
    if skipped:
        logger.debug("reserved bodies not computed: %s", ", ".join(b.value for b in skipped))

    chart = NatalChart(
        birth=birth,
        julian_day=jd,
        house_system=system,
        positions=tuple(planets + points),
        houses=tuple(HouseCusp(house=i + 1, longitude=c) for i, c in enumerate(houses.cusps)),
        aspects=tuple(aspects),
        sidereal_time=angles.lst,
        obliquity=angles.obliquity,
        warnings=_dedup(list(jd.warnings)),
    )
    logger.debug(
        "natal chart assembled: system=%s bodies=%d aspects=%d",
        system.key, len(chart.positions), len(chart.aspects),
    )
    return chart
