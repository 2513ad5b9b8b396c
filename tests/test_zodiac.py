# tests/test_zodiac.py
from __future__ import annotations

import pytest
from hypothesis import given, strategies as st

from natal_engine.core.constants import ZodiacSign
from natal_engine.core.zodiac import format_position, sign_of, zodiac_position


@pytest.mark.parametrize("lon,sign,deg", [
    (0.0, ZodiacSign.ARIES, 0.0),
    (29.999, ZodiacSign.ARIES, 29.999),
    (30.0, ZodiacSign.TAURUS, 0.0),
    (136.383, ZodiacSign.LEO, 16.383),
    (359.5, ZodiacSign.PISCES, 29.5),
    (360.0, ZodiacSign.ARIES, 0.0),
    (-10.0, ZodiacSign.PISCES, 20.0),
    (725.0, ZodiacSign.ARIES, 5.0),
])
def test_sign_and_degree(lon, sign, deg) -> None:
    zp = zodiac_position(lon)
    assert zp.sign is sign
    assert zp.degree == pytest.approx(deg, abs=1e-9)

def test_format_position() -> None:
    assert format_position(136.383) == "16°22' Leo"
    assert format_position(31.633) == "1°37' Taurus"

def test_labels() -> None:
    assert [s.label for s in ZodiacSign][:3] == ["Aries", "Taurus", "Gemini"]
    assert ZodiacSign.CAPRICORN.start_deg == 270.0

@given(lon=st.floats(min_value=-1e4, max_value=1e4, allow_nan=False))
def test_degree_in_sign_range(lon) -> None:
    zp = zodiac_position(lon)
    assert 0.0 <= zp.degree < 30.0
    assert sign_of(lon) is zp.sign
