# natal_engine/core/timescales.py
# -*- coding: utf-8 -*-
"""
Civil time → Julian Day (UT)

Pipeline
--------
1) Validate the civil date against the calendar actually in force:
   Julian leap rule before the 1582 reform, Gregorian from 1582-10-15 on,
   with the ten dropped days (1582-10-05 .. 1582-10-14) rejected.
2) Resolve the UTC offset, highest priority first:
     explicit offset  >  IANA zone (zoneinfo, DST-aware)  >  round(longitude / 15)
3) UT = local − offset, rolling day/month/year (leap February and the reform
   gap included) when the shift crosses midnight.
4) Meeus Julian Day on the UT calendar date.

A missing birth time becomes local noon and is flagged `time_unknown`.

All functions are pure; nothing here reads the process clock or TZ.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from natal_engine.core.constants import DAYS_PER_CENTURY, J2000_JD
from natal_engine.core.errors import InvalidDateError

if TYPE_CHECKING:  # pragma: no cover
    from natal_engine.core.models import BirthInput

__all__ = [
    "CivilDate",
    "CivilTime",
    "JulianDay",
    "NOON",
    "is_leap_year",
    "days_in_month",
    "validate_civil_date",
    "validate_civil_time",
    "resolve_utc_offset",
    "to_universal_time",
    "julian_day",
    "normalize_birth_moment",
]

# Gregorian calendar takes effect on this date; the ten days before it never existed.
_REFORM_DATE: Tuple[int, int, int] = (1582, 10, 15)
_LAST_JULIAN_DATE: Tuple[int, int, int] = (1582, 10, 4)

# Real-world offsets span UTC−12 .. UTC+14.
_MAX_OFFSET_HOURS = 14.0


# ───────────────────────────── Civil types ─────────────────────────────

@dataclass(frozen=True)
class CivilDate:
    year: int
    month: int
    day: int

    def as_tuple(self) -> Tuple[int, int, int]:
        return (self.year, self.month, self.day)

    def iso(self) -> str:
        sign = "-" if self.year < 0 else ""
        return f"{sign}{abs(self.year):04d}-{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class CivilTime:
    hour: int
    minute: int
    second: float = 0.0

    @property
    def hours(self) -> float:
        return self.hour + self.minute / 60.0 + self.second / 3600.0

    def iso(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}:{int(self.second):02d}"


NOON = CivilTime(12, 0, 0.0)


@dataclass(frozen=True)
class JulianDay:
    """Continuous UT-referenced day count plus how it was derived."""

    value: float
    ut_date: CivilDate
    ut_hours: float
    utc_offset_hours: float
    offset_source: str          # "explicit" | "timezone" | "longitude"
    time_unknown: bool = False
    warnings: Tuple[str, ...] = ()

    @property
    def days_since_j2000(self) -> float:
        return self.value - J2000_JD

    @property
    def centuries(self) -> float:
        return (self.value - J2000_JD) / DAYS_PER_CENTURY

    def to_dict(self) -> dict:
        return {
            "jd_ut": self.value,
            "ut_date": self.ut_date.iso(),
            "ut_hours": self.ut_hours,
            "utc_offset_hours": self.utc_offset_hours,
            "offset_source": self.offset_source,
            "time_unknown": self.time_unknown,
            "warnings": list(self.warnings),
        }


# ───────────────────────────── Calendar rules ─────────────────────────────

def is_leap_year(year: int) -> bool:
    if year <= _REFORM_DATE[0]:
        return year % 4 == 0
    return (year % 4 == 0 and year % 100 != 0) or year % 400 == 0


def days_in_month(year: int, month: int) -> int:
    if month == 2:
        return 29 if is_leap_year(year) else 28
    if month in (4, 6, 9, 11):
        return 30
    return 31


def _in_reform_gap(year: int, month: int, day: int) -> bool:
    return _LAST_JULIAN_DATE < (year, month, day) < _REFORM_DATE


def validate_civil_date(date: CivilDate) -> CivilDate:
    if not all(isinstance(v, int) and not isinstance(v, bool) for v in date.as_tuple()):
        raise InvalidDateError("year, month and day must be integers", loc="date")
    if not 1 <= date.month <= 12:
        raise InvalidDateError(f"month {date.month} out of range 1..12", loc="date")
    dim = days_in_month(date.year, date.month)
    if not 1 <= date.day <= dim:
        raise InvalidDateError(
            f"day {date.day} out of range 1..{dim} for {date.year}-{date.month:02d}", loc="date"
        )
    if _in_reform_gap(*date.as_tuple()):
        raise InvalidDateError("1582-10-05..1582-10-14 were dropped by the Gregorian reform", loc="date")
    return date


def validate_civil_time(time: CivilTime) -> CivilTime:
    if not (isinstance(time.hour, int) and isinstance(time.minute, int)):
        raise InvalidDateError("hour and minute must be integers", loc="time")
    sec = float(time.second)
    if not (0 <= time.hour <= 23 and 0 <= time.minute <= 59 and 0.0 <= sec < 60.0):
        raise InvalidDateError("time fields out of range", loc="time")
    return time


# ───────────────────────────── Calendar stepping ─────────────────────────────

def _next_day(year: int, month: int, day: int) -> Tuple[int, int, int]:
    if (year, month, day) == _LAST_JULIAN_DATE:
        return _REFORM_DATE
    if day < days_in_month(year, month):
        return year, month, day + 1
    if month < 12:
        return year, month + 1, 1
    return year + 1, 1, 1


def _previous_day(year: int, month: int, day: int) -> Tuple[int, int, int]:
    if (year, month, day) == _REFORM_DATE:
        return _LAST_JULIAN_DATE
    if day > 1:
        return year, month, day - 1
    if month > 1:
        return year, month - 1, days_in_month(year, month - 1)
    return year - 1, 12, 31


def to_universal_time(date: CivilDate, local_hours: float, utc_offset_hours: float) -> Tuple[CivilDate, float]:
    """
    Shift a local civil instant to UT (UT = local − offset), rolling the
    calendar date as needed. Returns (UT date, UT hours in [0, 24)).
    """
    hours = float(local_hours) - float(utc_offset_hours)
    y, m, d = date.as_tuple()
    while hours < 0.0:
        y, m, d = _previous_day(y, m, d)
        hours += 24.0
    while hours >= 24.0:
        y, m, d = _next_day(y, m, d)
        hours -= 24.0
    return CivilDate(y, m, d), hours


# ───────────────────────────── Offset resolution ─────────────────────────────

def _offset_from_zone(tz_name: str, date: CivilDate, time: CivilTime) -> Tuple[float, List[str]]:
    try:
        zone = ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidDateError(f"unknown IANA time zone {tz_name!r}", loc="timezone") from e
    try:
        naive = datetime(date.year, date.month, date.day, time.hour, time.minute, int(time.second))
    except ValueError as e:
        raise InvalidDateError("IANA zones need a Gregorian date in years 1..9999", loc="timezone") from e

    warnings: List[str] = []
    off0 = naive.replace(tzinfo=zone, fold=0).utcoffset()
    off1 = naive.replace(tzinfo=zone, fold=1).utcoffset()
    if off0 is None:
        raise InvalidDateError(f"time zone {tz_name!r} returned no UTC offset", loc="timezone")
    if off1 is not None and off1 != off0:
        warnings.append("dst_ambiguous")
    return off0.total_seconds() / 3600.0, warnings


def resolve_utc_offset(
    date: CivilDate,
    time: CivilTime,
    longitude: float,
    *,
    timezone: Optional[str] = None,
    utc_offset_hours: Optional[float] = None,
) -> Tuple[float, str, List[str]]:
    """
    Return (offset hours east of UTC, source, warnings).

    An explicit offset wins, then an IANA zone, then the nautical zone of the
    longitude, floor(longitude / 15 + 0.5).
    """
    if utc_offset_hours is not None:
        off = float(utc_offset_hours)
        if not (math.isfinite(off) and abs(off) <= _MAX_OFFSET_HOURS):
            raise InvalidDateError(f"utc offset must be within ±{_MAX_OFFSET_HOURS:g} h", loc="utc_offset")
        return off, "explicit", []
    if timezone:
        off, warnings = _offset_from_zone(timezone, date, time)
        return off, "timezone", warnings
    # ties round east: 7.5°E is +1, 7.5°W is 0
    return float(math.floor(longitude / 15.0 + 0.5)), "longitude", ["utc_offset_from_longitude"]


# ───────────────────────────── Julian Day ─────────────────────────────

def julian_day(year: int, month: int, day: int, hours: float = 0.0) -> float:
    """
    Meeus, Astronomical Algorithms ch. 7. Dates before 1582-10-15 are read
    in the Julian calendar (no Gregorian term).
    """
    gregorian = (year, month, day) >= _REFORM_DATE
    y, m = year, month
    if m <= 2:
        y -= 1
        m += 12
    b = 0
    if gregorian:
        a = math.floor(y / 100)
        b = 2 - a + math.floor(a / 4)
    return (
        math.floor(365.25 * (y + 4716))
        + math.floor(30.6001 * (m + 1))
        + day
        + b
        - 1524.5
        + hours / 24.0
    )


def normalize_birth_moment(birth: "BirthInput") -> JulianDay:
    """BirthInput → JulianDay (UT). Missing time means local noon, flagged."""
    date = validate_civil_date(birth.date)
    time_unknown = birth.time is None
    time = NOON if time_unknown else validate_civil_time(birth.time)

    offset, source, warnings = resolve_utc_offset(
        date, time, birth.longitude,
        timezone=birth.timezone, utc_offset_hours=birth.utc_offset_hours,
    )
    ut_date, ut_hours = to_universal_time(date, time.hours, offset)
    jd = julian_day(ut_date.year, ut_date.month, ut_date.day, ut_hours)

    if time_unknown:
        warnings = ["time_unknown"] + warnings
    return JulianDay(
        value=jd,
        ut_date=ut_date,
        ut_hours=ut_hours,
        utc_offset_hours=offset,
        offset_source=source,
        time_unknown=time_unknown,
        warnings=tuple(warnings),
    )
