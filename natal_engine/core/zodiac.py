# natal_engine/core/zodiac.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from natal_engine.core.constants import ZodiacSign, wrap_deg

__all__ = ["ZodiacPosition", "zodiac_position", "sign_of", "format_position"]

_SIGNS: Tuple[ZodiacSign, ...] = tuple(ZodiacSign)


@dataclass(frozen=True)
class ZodiacPosition:
    sign: ZodiacSign
    degree: float  # [0, 30)

    def as_dict(self) -> dict:
        return {"sign": self.sign.label, "degree": self.degree}


def zodiac_position(longitude: float) -> ZodiacPosition:
    """
    Map an ecliptic longitude to (sign, degree-in-sign).

    The longitude is wrapped into [0, 360) first, so negative or >360 inputs
    never reach the division.
    """
    lam = wrap_deg(longitude)
    idx = int(math.floor(lam / 30.0))
    deg = lam - 30.0 * idx
    # float residue right under a sign boundary
    if deg >= 30.0:
        idx, deg = idx + 1, 0.0
    return ZodiacPosition(_SIGNS[idx % 12], max(0.0, deg))


def sign_of(longitude: float) -> ZodiacSign:
    return zodiac_position(longitude).sign


def format_position(longitude: float) -> str:
    """'16°22\' Leo' style label (minutes truncated, never rounded up to 30°)."""
    zp = zodiac_position(longitude)
    whole = int(zp.degree)
    minutes = int((zp.degree - whole) * 60.0)
    return f"{whole}°{minutes:02d}' {zp.sign.label}"
