# natal_engine/core/constants.py
# -*- coding: utf-8 -*-
"""
Core constants & small helpers

Purpose
-------
Single source of truth for:
- the closed set of bodies (computed + schema-reserved)
- the twelve zodiac signs
- aspect angles
- declared house systems and their aliases
- tiny angle helpers (wrap/Δ/separation)

Design
------
- Pure-Python, no external dependencies.
- Safe to import from any core module.
- Enums are closed: adding a body or an aspect is a change here, and every
  `match`/lookup over them must be updated with it.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Dict, Tuple

__all__ = [
    # enums
    "Body", "ZodiacSign", "AspectType", "HouseSystem",
    # body sets
    "PLANETS", "ANGLES", "COMPUTED_BODIES", "RESERVED_BODIES",
    # houses
    "IMPLEMENTED_HOUSE_SYSTEMS", "HOUSE_SYSTEM_ALIASES",
    # time
    "J2000_JD", "DAYS_PER_CENTURY",
    # helpers
    "wrap_deg", "delta_deg", "abs_sep_deg",
]

# ── epochs ───────────────────────────────────────────────────────────────────
J2000_JD: float = 2451545.0
DAYS_PER_CENTURY: float = 36525.0


# ── bodies ───────────────────────────────────────────────────────────────────
class Body(str, Enum):
    """Every body the chart schema knows about. Values are display names."""

    SUN = "Sun"
    MOON = "Moon"
    MERCURY = "Mercury"
    VENUS = "Venus"
    MARS = "Mars"
    JUPITER = "Jupiter"
    SATURN = "Saturn"
    ASCENDANT = "Ascendant"
    MIDHEAVEN = "Midheaven"
    # reserved: present in the persistence schema, never computed here
    URANUS = "Uranus"
    NEPTUNE = "Neptune"
    PLUTO = "Pluto"
    NORTH_NODE = "North Node"
    SOUTH_NODE = "South Node"
    LILITH = "Lilith"

    @property
    def is_angle(self) -> bool:
        return self in ANGLES

    @property
    def is_reserved(self) -> bool:
        return self in RESERVED_BODIES

    @classmethod
    def parse(cls, value: object) -> "Body":
        """Accept an enum, its value ("North Node") or its name ("north_node")."""
        if isinstance(value, cls):
            return value
        s = str(value).strip()
        for b in cls:
            if s == b.value or s.lower() == b.value.lower() or s.upper().replace(" ", "_") == b.name:
                return b
        raise ValueError(f"unknown body {value!r}")


PLANETS: Tuple[Body, ...] = (
    Body.SUN, Body.MOON, Body.MERCURY, Body.VENUS,
    Body.MARS, Body.JUPITER, Body.SATURN,
)
ANGLES: Tuple[Body, ...] = (Body.ASCENDANT, Body.MIDHEAVEN)
COMPUTED_BODIES: Tuple[Body, ...] = PLANETS + ANGLES
RESERVED_BODIES: Tuple[Body, ...] = (
    Body.URANUS, Body.NEPTUNE, Body.PLUTO,
    Body.NORTH_NODE, Body.SOUTH_NODE, Body.LILITH,
)


# ── zodiac ───────────────────────────────────────────────────────────────────
class ZodiacSign(Enum):
    ARIES = 0
    TAURUS = 1
    GEMINI = 2
    CANCER = 3
    LEO = 4
    VIRGO = 5
    LIBRA = 6
    SCORPIO = 7
    SAGITTARIUS = 8
    CAPRICORN = 9
    AQUARIUS = 10
    PISCES = 11

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @property
    def start_deg(self) -> float:
        return self.value * 30.0


# ── aspect geometry ──────────────────────────────────────────────────────────
class AspectType(Enum):
    CONJUNCTION = ("conjunction", 0.0)
    SEMISQUARE = ("semisquare", 45.0)
    SEXTILE = ("sextile", 60.0)
    SQUARE = ("square", 90.0)
    TRINE = ("trine", 120.0)
    SESQUIQUADRATE = ("sesquiquadrate", 135.0)
    QUINCUNX = ("quincunx", 150.0)
    OPPOSITION = ("opposition", 180.0)

    def __init__(self, label: str, angle: float):
        self.label = label
        self.angle = angle

    @classmethod
    def parse(cls, value: object) -> "AspectType":
        if isinstance(value, cls):
            return value
        s = str(value).strip().lower()
        for a in cls:
            if a.label == s:
                return a
        raise ValueError(f"unknown aspect {value!r}")


# ── houses: canonical keys & common aliases ──────────────────────────────────
class HouseSystem(Enum):
    PLACIDUS = ("placidus", "Placidus")
    KOCH = ("koch", "Koch")
    EQUAL = ("equal", "Equal")
    WHOLE_SIGN = ("whole_sign", "Whole Sign")
    CAMPANUS = ("campanus", "Campanus")
    # declared so callers get a precise error instead of a silent default
    REGIOMONTANUS = ("regiomontanus", "Regiomontanus")
    PORPHYRY = ("porphyry", "Porphyrius")

    def __init__(self, key: str, display: str):
        self.key = key
        self.display = display

    @property
    def implemented(self) -> bool:
        return self in IMPLEMENTED_HOUSE_SYSTEMS


IMPLEMENTED_HOUSE_SYSTEMS: Tuple[HouseSystem, ...] = (
    HouseSystem.PLACIDUS, HouseSystem.KOCH, HouseSystem.EQUAL,
    HouseSystem.WHOLE_SIGN, HouseSystem.CAMPANUS,
)

# Map user inputs (already slugged: lowercase, '_' separators) to canonical keys.
HOUSE_SYSTEM_ALIASES: Dict[str, str] = {
    "placidus": "placidus",
    "koch": "koch",
    "equal": "equal",
    "whole_sign": "whole_sign",
    "campanus": "campanus",
    "regiomontanus": "regiomontanus",
    "porphyry": "porphyry",
    # aliases → canonical
    "p": "placidus",
    "plac": "placidus",
    "k": "koch",
    "e": "equal",
    "equal_house": "equal",
    "w": "whole_sign",
    "whole": "whole_sign",
    "wholesign": "whole_sign",
    "ws": "whole_sign",
    "c": "campanus",
    "regio": "regiomontanus",
    "porphyrius": "porphyry",
}


# ── tiny angle helpers ───────────────────────────────────────────────────────
def wrap_deg(x: float) -> float:
    """
    Wrap any angle to [0, 360).
    """
    x = math.fmod(float(x), 360.0)
    if x < 0.0:
        x += 360.0
    # fmod of a tiny negative can round up to exactly 360.0
    return 0.0 if x >= 360.0 else x


def delta_deg(a: float, b: float) -> float:
    """
    Shortest signed difference b - a in degrees, range (-180, 180].
    """
    d = wrap_deg(b) - wrap_deg(a)
    if d > 180.0:
        d -= 360.0
    elif d <= -180.0:
        d += 360.0
    return d


def abs_sep_deg(a: float, b: float) -> float:
    """
    Smaller of the two arcs between a and b, in [0, 180].
    """
    return abs(delta_deg(a, b))
