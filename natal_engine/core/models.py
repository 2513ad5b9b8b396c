# natal_engine/core/models.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from natal_engine.core.constants import AspectType, Body, HouseSystem, ZodiacSign
from natal_engine.core.errors import InvalidCoordinateError
from natal_engine.core.houses import house_of_longitude, normalize_house_system
from natal_engine.core.timescales import (
    CivilDate,
    CivilTime,
    JulianDay,
    validate_civil_date,
    validate_civil_time,
)
from natal_engine.core.zodiac import ZodiacPosition, zodiac_position

__all__ = [
    "BirthInput",
    "CelestialLongitude",
    "HouseCusp",
    "Aspect",
    "NatalChart",
]


# ───────────────────────── input ─────────────────────────

@dataclass(frozen=True)
class BirthInput:
    """
    One birth moment and place. Validated on construction, never mutated;
    correcting birth data means building a new BirthInput and recomputing.
    """

    date: CivilDate
    latitude: float
    longitude: float
    time: Optional[CivilTime] = None
    location: str = ""
    timezone: Optional[str] = None
    utc_offset_hours: Optional[float] = None
    house_system: Optional[HouseSystem] = None

    def __post_init__(self) -> None:
        validate_civil_date(self.date)
        if self.time is not None:
            validate_civil_time(self.time)
        for name, value, bound in (("latitude", self.latitude, 90.0), ("longitude", self.longitude, 180.0)):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidCoordinateError(f"{name} must be a finite number", loc=name)
            if not -bound <= value <= bound:
                raise InvalidCoordinateError(f"{name} must be between -{bound:g} and {bound:g}", loc=name)
        object.__setattr__(self, "latitude", float(self.latitude))
        object.__setattr__(self, "longitude", float(self.longitude))
        if self.house_system is not None and not isinstance(self.house_system, HouseSystem):
            object.__setattr__(self, "house_system", normalize_house_system(self.house_system))

    @property
    def time_unknown(self) -> bool:
        return self.time is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.iso(),
            "time": self.time.iso() if self.time else None,
            "location": self.location,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timezone": self.timezone,
            "utc_offset_hours": self.utc_offset_hours,
            "house_system": self.house_system.key if self.house_system else None,
        }


# ───────────────────────── chart parts ─────────────────────────

@dataclass(frozen=True)
class CelestialLongitude:
    body: Body
    longitude: float                  # [0, 360)
    latitude: Optional[float] = None  # ecliptic latitude; None for the angles
    speed: float = 0.0                # deg/day
    retrograde: bool = False

    @property
    def zodiac(self) -> ZodiacPosition:
        return zodiac_position(self.longitude)

    @property
    def sign(self) -> ZodiacSign:
        return self.zodiac.sign

    @property
    def degree_in_sign(self) -> float:
        return self.zodiac.degree

    def to_dict(self) -> Dict[str, Any]:
        zp = self.zodiac
        return {
            "body": self.body.value,
            "longitude": self.longitude,
            "latitude": self.latitude,
            "speed": self.speed,
            "retrograde": self.retrograde,
            "sign": zp.sign.label,
            "degree_in_sign": zp.degree,
        }


@dataclass(frozen=True)
class HouseCusp:
    house: int        # 1..12
    longitude: float  # [0, 360)

    @property
    def sign(self) -> ZodiacSign:
        return zodiac_position(self.longitude).sign

    @property
    def degree_in_sign(self) -> float:
        return zodiac_position(self.longitude).degree

    def to_dict(self) -> Dict[str, Any]:
        zp = zodiac_position(self.longitude)
        return {"house": self.house, "longitude": self.longitude, "sign": zp.sign.label, "degree_in_sign": zp.degree}


@dataclass(frozen=True)
class Aspect:
    body_a: Body
    body_b: Body
    aspect: AspectType
    orb: float          # |separation − exact angle|
    separation: float   # smaller arc, [0, 180]
    applying: bool

    @property
    def exact_angle(self) -> float:
        return self.aspect.angle

    def to_dict(self) -> Dict[str, Any]:
        return {
            "body_a": self.body_a.value,
            "body_b": self.body_b.value,
            "aspect": self.aspect.label,
            "exact_angle": self.exact_angle,
            "separation": self.separation,
            "orb": self.orb,
            "applying": self.applying,
        }


# ───────────────────────── aggregate ─────────────────────────

@dataclass(frozen=True)
class NatalChart:
    birth: BirthInput
    julian_day: JulianDay
    house_system: HouseSystem
    positions: Tuple[CelestialLongitude, ...]
    houses: Tuple[HouseCusp, ...]
    aspects: Tuple[Aspect, ...]
    sidereal_time: float
    obliquity: float
    warnings: Tuple[str, ...] = ()

    # ----- lookups -----

    def position(self, body: Body) -> Optional[CelestialLongitude]:
        for p in self.positions:
            if p.body is body:
                return p
        return None

    @property
    def ascendant(self) -> Optional[float]:
        p = self.position(Body.ASCENDANT)
        return p.longitude if p else None

    @property
    def midheaven(self) -> Optional[float]:
        p = self.position(Body.MIDHEAVEN)
        return p.longitude if p else None

    @property
    def time_unknown(self) -> bool:
        return self.julian_day.time_unknown

    @property
    def cusp_longitudes(self) -> Tuple[float, ...]:
        return tuple(h.longitude for h in self.houses)

    def house_of(self, body: Body) -> Optional[int]:
        p = self.position(body)
        if p is None:
            return None
        return house_of_longitude(self.cusp_longitudes, p.longitude)

    # ----- serialization -----

    def to_dict(self) -> Dict[str, Any]:
        return {
            "birth": self.birth.to_dict(),
            "julian_day": self.julian_day.to_dict(),
            "house_system": self.house_system.key,
            "sidereal_time_deg": self.sidereal_time,
            "obliquity_deg": self.obliquity,
            "positions": [dict(p.to_dict(), house=self.house_of(p.body)) for p in self.positions],
            "houses": [h.to_dict() for h in self.houses],
            "aspects": [a.to_dict() for a in self.aspects],
            "warnings": list(self.warnings),
        }

    def _birth_datetime_utc(self) -> str:
        secs = min(int(round(self.julian_day.ut_hours * 3600.0)), 86399)
        hh, rem = divmod(secs, 3600)
        mm, ss = divmod(rem, 60)
        return f"{self.julian_day.ut_date.iso()}T{hh:02d}:{mm:02d}:{ss:02d}Z"

    def to_rows(self) -> Dict[str, List[Dict[str, Any]]]:
        """
        Rows for the natal_charts / planetary_positions / house_cusps /
        aspects tables. Keys match column names; ids and timestamps are left
        to the store, which replaces a chart's rows in one transaction.
        """
        chart_row = {
            "birth_datetime": self._birth_datetime_utc(),
            "birth_latitude": self.birth.latitude,
            "birth_longitude": self.birth.longitude,
            "birth_location": self.birth.location,
            "house_system": self.house_system.display,
        }
        positions = []
        for p in self.positions:
            zp = p.zodiac
            positions.append({
                "celestial_body": p.body.value,
                "longitude": p.longitude,
                "latitude": p.latitude,
                "house_number": self.house_of(p.body),
                "zodiac_sign": zp.sign.label,
                "degree_in_sign": zp.degree,
                "retrograde": p.retrograde,
            })
        cusps = [
            {
                "house_number": h.house,
                "cusp_longitude": h.longitude,
                "zodiac_sign": h.sign.label,
                "degree_in_sign": h.degree_in_sign,
            }
            for h in self.houses
        ]
        aspects = [
            {
                "body1": a.body_a.value,
                "body2": a.body_b.value,
                "aspect_type": a.aspect.label,
                "orb": a.orb,
                "exact_angle": a.exact_angle,
                "applying": a.applying,
            }
            for a in self.aspects
        ]
        return {
            "natal_charts": [chart_row],
            "planetary_positions": positions,
            "house_cusps": cusps,
            "aspects": aspects,
        }
