# natal_engine/core/aspects.py
from __future__ import annotations

import itertools
import math
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from natal_engine.core.constants import AspectType, abs_sep_deg, delta_deg
from natal_engine.core.models import Aspect, CelestialLongitude

__all__ = [
    "ASPECT_CATALOG",
    "DEFAULT_MAX_ORB_DEG",
    "find_aspect",
    "is_applying",
    "detect_aspects",
]

DEFAULT_MAX_ORB_DEG = 8.0

# Catalog order doubles as the tie-break when two angles are equally close.
ASPECT_CATALOG: Tuple[AspectType, ...] = tuple(AspectType)


# ─────────────────────────────────────────────────────────────────────────────
# Geometry
# ─────────────────────────────────────────────────────────────────────────────

def _orb_limit(aspect: AspectType, max_orb: float, orbs: Optional[Mapping[AspectType, float]]) -> float:
    if not orbs or aspect not in orbs:
        return max_orb
    return min(float(orbs[aspect]), max_orb)


def find_aspect(
    lon_a: float,
    lon_b: float,
    *,
    max_orb: float = DEFAULT_MAX_ORB_DEG,
    orbs: Optional[Mapping[AspectType, float]] = None,
) -> Optional[Tuple[AspectType, float, float]]:
    """
    Closest catalog aspect between two longitudes.

    Returns (aspect, orb, separation) when the smallest deviation is within
    that aspect's orb limit, else None. Separation is the smaller arc [0, 180].
    """
    sep = abs_sep_deg(lon_a, lon_b)
    best: Optional[Tuple[AspectType, float]] = None
    for aspect in ASPECT_CATALOG:
        orb = abs(sep - aspect.angle)
        if orb > _orb_limit(aspect, max_orb, orbs):
            continue
        if best is None or orb < best[1]:
            best = (aspect, orb)
    if best is None:
        return None
    return best[0], best[1], sep


def is_applying(lon_a: float, speed_a: float, lon_b: float, speed_b: float, exact_angle: float) -> bool:
    """
    True when the relative motion is shrinking the deviation from the exact
    angle. An exact hit (zero deviation) is never applying.
    """
    d = delta_deg(lon_a, lon_b)          # signed b − a, (-180, 180]
    deviation = abs(d) - exact_angle
    if deviation == 0.0:
        return False
    relative = speed_b - speed_a
    # d/dt |d| = sign(d)·relative; a conjunction (d == 0) can only open up
    sep_rate = math.copysign(1.0, d) * relative if d != 0.0 else abs(relative)
    return deviation * sep_rate < 0.0


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline
# ─────────────────────────────────────────────────────────────────────────────

def detect_aspects(
    points: Sequence[CelestialLongitude],
    *,
    max_orb: float = DEFAULT_MAX_ORB_DEG,
    orbs: Optional[Mapping[AspectType, float]] = None,
) -> List[Aspect]:
    """All aspects between unordered pairs, closest-to-exact first."""
    hits: List[Aspect] = []
    for a, b in itertools.combinations(points, 2):
        found = find_aspect(a.longitude, b.longitude, max_orb=max_orb, orbs=orbs)
        if found is None:
            continue
        aspect, orb, sep = found
        hits.append(Aspect(
            body_a=a.body,
            body_b=b.body,
            aspect=aspect,
            orb=orb,
            separation=sep,
            applying=is_applying(a.longitude, a.speed, b.longitude, b.speed, aspect.angle),
        ))
    order: Dict[object, int] = {p.body: i for i, p in enumerate(points)}
    hits.sort(key=lambda h: (h.orb, order[h.body_a], order[h.body_b]))
    return hits
