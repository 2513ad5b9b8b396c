# natal_engine/core/validators.py
from __future__ import annotations

import math
import re
from typing import Any, Mapping, Optional, Tuple

from natal_engine.core.errors import (
    EngineError,
    InvalidCoordinateError,
    InvalidDateError,
)
from natal_engine.core.houses import normalize_house_system
from natal_engine.core.models import BirthInput
from natal_engine.core.timescales import CivilDate, CivilTime

__all__ = [
    "parse_date",
    "parse_time",
    "parse_latlon",
    "parse_utc_offset",
    "parse_birth_input",
]


# ───────────────────────── helpers ─────────────────────────

def _as_float(v: Any) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    try:
        x = float(v)
    except (TypeError, ValueError):
        return None
    return x if math.isfinite(x) else None


def _first(body: Mapping[str, Any], *keys: str) -> Any:
    for k in keys:
        if body.get(k) is not None:
            return body[k]
    return None


# ───────────────────────── atomic parsers ─────────────────────────

_DATE_RE = re.compile(r"^\s*(?P<y>-?\d{1,4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})\s*$")
_TIME_RE = re.compile(r"^\s*(?P<h>\d{1,2}):(?P<m>\d{2})(?::(?P<s>\d{2})(?:\.(?P<f>\d+))?)?\s*$")
_OFFSET_RE = re.compile(r"^\s*(?P<sign>[+-])?(?P<h>\d{1,2})(?::?(?P<m>\d{2}))?\s*$")


def parse_date(s: Any) -> CivilDate:
    """'YYYY-MM-DD' (proleptic, negative years allowed) → validated CivilDate."""
    m = _DATE_RE.match(s) if isinstance(s, str) else None
    if not m:
        raise InvalidDateError("date must be 'YYYY-MM-DD'", loc="date")
    # BirthInput validates the calendar (month/day ranges, reform gap)
    return CivilDate(int(m.group("y")), int(m.group("m")), int(m.group("d")))


def parse_time(s: Any) -> Optional[CivilTime]:
    """
    Accept 'HH:MM', 'HH:MM:SS' or 'HH:MM:SS.frac'. None or blank means the
    birth time is unknown.
    """
    if s is None or (isinstance(s, str) and not s.strip()):
        return None
    m = _TIME_RE.match(s) if isinstance(s, str) else None
    if not m:
        raise InvalidDateError("time must be 'HH:MM' or 'HH:MM:SS[.frac]'", loc="time")
    hh = int(m.group("h")); mm = int(m.group("m"))
    ss = float(f"{m.group('s') or '0'}.{m.group('f') or '0'}")
    return CivilTime(hh, mm, ss)


def parse_latlon(lat: Any, lon: Any) -> Tuple[float, float]:
    lat_f = _as_float(lat); lon_f = _as_float(lon)
    if lat_f is None:
        raise InvalidCoordinateError("latitude must be a finite number", loc="latitude")
    if lon_f is None:
        raise InvalidCoordinateError("longitude must be a finite number", loc="longitude")
    if not (-90.0 <= lat_f <= 90.0):
        raise InvalidCoordinateError("latitude must be between -90 and 90", loc="latitude")
    if not (-180.0 <= lon_f <= 180.0):
        raise InvalidCoordinateError("longitude must be between -180 and 180", loc="longitude")
    return lat_f, lon_f


def parse_utc_offset(v: Any) -> Optional[float]:
    """Hours east of UTC from a number (5.5) or a string ('+05:30', '-0800', '-7')."""
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    if isinstance(v, str):
        m = _OFFSET_RE.match(v)
        if not m:
            raise InvalidDateError("utc_offset must look like '+05:30' or be a number of hours", loc="utc_offset")
        mins = int(m.group("m") or 0)
        if mins >= 60:
            raise InvalidDateError("utc_offset minutes out of range", loc="utc_offset")
        hours = int(m.group("h")) + mins / 60.0
        return -hours if m.group("sign") == "-" else hours
    off = _as_float(v)
    if off is None:
        raise InvalidDateError("utc_offset must be a finite number of hours", loc="utc_offset")
    return off


# ───────────────────────── birth payload ─────────────────────────

def parse_birth_input(body: Mapping[str, Any]) -> BirthInput:
    """
    Normalize a JSON-like birth payload into a BirthInput.

    Keys (aliases in parentheses):
      date, time, latitude (lat), longitude (lon), location (place),
      timezone (tz), utc_offset, house_system
    A missing or blank time is allowed and yields an unknown-time chart.
    """
    if not isinstance(body, Mapping):
        raise EngineError("payload must be an object")

    if _first(body, "date") is None:
        raise InvalidDateError("date is required", loc="date")
    date = parse_date(body["date"])
    time = parse_time(body.get("time"))
    lat, lon = parse_latlon(_first(body, "latitude", "lat"), _first(body, "longitude", "lon"))

    tz = _first(body, "timezone", "tz")
    if tz is not None and (not isinstance(tz, str) or not tz.strip()):
        raise InvalidDateError("timezone must be an IANA zone name like 'Europe/Paris'", loc="timezone")

    hs = body.get("house_system")
    house_system = normalize_house_system(hs) if hs not in (None, "") else None

    return BirthInput(
        date=date,
        time=time,
        latitude=lat,
        longitude=lon,
        location=str(_first(body, "location", "place") or ""),
        timezone=tz.strip() if tz else None,
        utc_offset_hours=parse_utc_offset(body.get("utc_offset")),
        house_system=house_system,
    )
