# tests/test_chart.py
from __future__ import annotations

import json
from dataclasses import replace

import pytest
from hypothesis import given, strategies as st

from natal_engine.core.chart import compute_natal_chart
from natal_engine.core.constants import COMPUTED_BODIES, PLANETS, RESERVED_BODIES, Body, HouseSystem, ZodiacSign
from natal_engine.core.errors import HouseSystemDegenerateError, UnsupportedHouseSystemError
from natal_engine.core.models import BirthInput
from natal_engine.core.timescales import CivilDate, CivilTime
from natal_engine.utils.config import EngineConfig


def _check_contracts(chart, max_orb: float = 8.0) -> None:
    for p in chart.positions:
        assert 0.0 <= p.longitude < 360.0
        assert 0.0 <= p.degree_in_sign < 30.0
        assert 1 <= chart.house_of(p.body) <= 12
    assert [h.house for h in chart.houses] == list(range(1, 13))
    for a in chart.aspects:
        assert 0.0 <= a.orb <= max_orb


# ─────────────────────────────────────────────────────────────────────────────
# Fixture chart
# ─────────────────────────────────────────────────────────────────────────────

def test_vancouver_chart(vancouver_birth, engine_config) -> None:
    chart = compute_natal_chart(vancouver_birth, engine_config)
    assert chart.house_system is HouseSystem.PLACIDUS
    assert [p.body for p in chart.positions] == list(COMPUTED_BODIES)
    assert chart.julian_day.value == pytest.approx(2443281.270139, abs=1e-5)
    assert chart.position(Body.ASCENDANT).sign is ZodiacSign.LEO
    assert chart.position(Body.SUN).sign is ZodiacSign.TAURUS
    assert chart.houses[0].longitude == pytest.approx(chart.ascendant)
    assert chart.houses[9].longitude == pytest.approx(chart.midheaven)
    assert chart.house_of(Body.ASCENDANT) == 1
    assert chart.house_of(Body.MIDHEAVEN) == 10
    assert chart.warnings == ()
    _check_contracts(chart)

def test_reserved_bodies_never_appear(vancouver_birth) -> None:
    cfg = EngineConfig(bodies=tuple(Body))
    chart = compute_natal_chart(vancouver_birth, cfg)
    present = {p.body for p in chart.positions}
    assert present.isdisjoint(RESERVED_BODIES)
    for a in chart.aspects:
        assert a.body_a not in RESERVED_BODIES and a.body_b not in RESERVED_BODIES

def test_idempotent(vancouver_birth, engine_config) -> None:
    a = compute_natal_chart(vancouver_birth, engine_config)
    b = compute_natal_chart(vancouver_birth, engine_config)
    assert a == b
    assert a.to_dict() == b.to_dict()

def test_angles_excluded_from_aspects_when_disabled(vancouver_birth) -> None:
    chart = compute_natal_chart(vancouver_birth, EngineConfig(include_angles_in_aspects=False))
    for a in chart.aspects:
        assert not a.body_a.is_angle and not a.body_b.is_angle
    assert chart.position(Body.ASCENDANT) is not None

def test_planets_only_config(vancouver_birth) -> None:
    chart = compute_natal_chart(vancouver_birth, EngineConfig(bodies=PLANETS))
    assert chart.ascendant is None
    assert [p.body for p in chart.positions] == list(PLANETS)
    assert len(chart.houses) == 12

def test_angles_move_forward(vancouver_birth, engine_config) -> None:
    chart = compute_natal_chart(vancouver_birth, engine_config)
    asc = chart.position(Body.ASCENDANT)
    mc = chart.position(Body.MIDHEAVEN)
    # the angles sweep the whole zodiac about once a sidereal day
    assert 150.0 < asc.speed < 900.0
    assert 300.0 < mc.speed < 420.0
    assert not asc.retrograde and not mc.retrograde

def test_requested_house_system(vancouver_birth, engine_config) -> None:
    birth = replace(vancouver_birth, house_system=HouseSystem.WHOLE_SIGN)
    chart = compute_natal_chart(birth, engine_config)
    assert chart.house_system is HouseSystem.WHOLE_SIGN
    assert chart.houses[0].longitude == 120.0  # start of Leo

def test_disabled_house_system_rejected(vancouver_birth) -> None:
    cfg = EngineConfig(house_systems=(HouseSystem.PLACIDUS,))
    birth = replace(vancouver_birth, house_system=HouseSystem.KOCH)
    with pytest.raises(UnsupportedHouseSystemError):
        compute_natal_chart(birth, cfg)

def test_polar_birth_fails_whole(engine_config) -> None:
    birth = BirthInput(date=CivilDate(2000, 6, 21), time=CivilTime(12, 0), latitude=78.2, longitude=15.6,
                       timezone="Arctic/Longyearbyen")
    with pytest.raises(HouseSystemDegenerateError):
        compute_natal_chart(birth, engine_config)
    chart = compute_natal_chart(replace(birth, house_system=HouseSystem.EQUAL), engine_config)
    _check_contracts(chart)


# ─────────────────────────────────────────────────────────────────────────────
# Unknown time
# ─────────────────────────────────────────────────────────────────────────────

def test_unknown_time_is_flagged(vancouver_birth, engine_config) -> None:
    chart = compute_natal_chart(replace(vancouver_birth, time=None), engine_config)
    assert chart.time_unknown
    assert "time_unknown" in chart.warnings
    assert chart.to_dict()["julian_day"]["time_unknown"] is True

def test_longitude_offset_warning(engine_config) -> None:
    birth = BirthInput(date=CivilDate(1990, 1, 1), time=CivilTime(8, 0), latitude=40.0, longitude=-74.0)
    chart = compute_natal_chart(birth, engine_config)
    assert "utc_offset_from_longitude" in chart.warnings
    assert chart.julian_day.utc_offset_hours == -5.0


# ─────────────────────────────────────────────────────────────────────────────
# Serialization / persistence rows
# ─────────────────────────────────────────────────────────────────────────────

def test_to_dict_is_json_serializable(vancouver_birth, engine_config) -> None:
    d = compute_natal_chart(vancouver_birth, engine_config).to_dict()
    s = json.dumps(d)
    assert '"house_system": "placidus"' in s
    assert len(d["houses"]) == 12

def test_rows_match_table_constraints(vancouver_birth, engine_config) -> None:
    rows = compute_natal_chart(vancouver_birth, engine_config).to_rows()
    (chart_row,) = rows["natal_charts"]
    assert chart_row["house_system"] == "Placidus"
    assert chart_row["birth_datetime"] == "1977-05-17T18:29:00Z"
    assert chart_row["birth_location"] == "Vancouver, BC"

    bodies = [r["celestial_body"] for r in rows["planetary_positions"]]
    assert len(bodies) == len(set(bodies))
    for r in rows["planetary_positions"]:
        assert 0.0 <= r["longitude"] < 360.0
        assert 0.0 <= r["degree_in_sign"] < 30.0
        assert 1 <= r["house_number"] <= 12
        assert r["zodiac_sign"] in {s.label for s in ZodiacSign}

    assert [r["house_number"] for r in rows["house_cusps"]] == list(range(1, 13))
    for r in rows["aspects"]:
        assert r["body1"] != r["body2"]
        assert 0.0 <= r["orb"] <= 15.0

@given(
    year=st.integers(min_value=1900, max_value=2099),
    month=st.integers(min_value=1, max_value=12),
    day=st.integers(min_value=1, max_value=28),
    hour=st.integers(min_value=0, max_value=23),
    minute=st.integers(min_value=0, max_value=59),
    lat=st.floats(min_value=-60.0, max_value=60.0, allow_nan=False),
    lon=st.floats(min_value=-180.0, max_value=180.0, allow_nan=False),
    system=st.sampled_from([HouseSystem.PLACIDUS, HouseSystem.KOCH, HouseSystem.CAMPANUS,
                            HouseSystem.EQUAL, HouseSystem.WHOLE_SIGN]),
)
def test_chart_contracts_hold(year, month, day, hour, minute, lat, lon, system) -> None:
    birth = BirthInput(date=CivilDate(year, month, day), time=CivilTime(hour, minute),
                       latitude=lat, longitude=lon, house_system=system)
    chart = compute_natal_chart(birth, EngineConfig())
    _check_contracts(chart)
