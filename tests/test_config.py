# tests/test_config.py
from __future__ import annotations

import pytest

from natal_engine.core.aspects import find_aspect
from natal_engine.core.constants import COMPUTED_BODIES, AspectType, Body, HouseSystem
from natal_engine.core.errors import ConfigError
from natal_engine.utils.config import DEFAULT_ASPECT_ORBS, EngineConfig, config_from_mapping, load_config


def test_packaged_defaults_match_dataclass_defaults() -> None:
    cfg = load_config(env={})
    assert cfg == EngineConfig(angle_motion_step_days=cfg.angle_motion_step_days)
    assert cfg.bodies == COMPUTED_BODIES
    assert cfg.default_house_system is HouseSystem.PLACIDUS
    assert cfg.angle_motion_step_days == pytest.approx(1.0 / 1440.0)
    assert cfg.aspect_orbs == DEFAULT_ASPECT_ORBS

def test_yaml_file_overlays_defaults(tmp_path) -> None:
    p = tmp_path / "natal.yaml"
    p.write_text(
        "aspects:\n"
        "  max_orb_deg: 6\n"
        "  orbs:\n"
        "    semisquare: 2\n"
        "houses:\n"
        "  default: Whole Sign\n",
        encoding="utf-8",
    )
    cfg = load_config(str(p), env={})
    assert cfg.max_orb_deg == 6.0
    assert cfg.aspect_orbs[AspectType.SEMISQUARE] == 2.0
    # packaged caps not named in the file survive the merge
    assert cfg.aspect_orbs[AspectType.SEXTILE] == 6.0
    assert AspectType.TRINE not in cfg.aspect_orbs
    assert cfg.default_house_system is HouseSystem.WHOLE_SIGN
    # untouched sections keep their defaults
    assert cfg.retrograde_step_days == 1.0

def test_env_overrides_win(tmp_path) -> None:
    p = tmp_path / "natal.yaml"
    p.write_text("aspects:\n  max_orb_deg: 6\n", encoding="utf-8")
    env = {
        "NATAL_ENGINE_CONFIG": str(p),
        "NATAL_MAX_ORB": "4.5",
        "NATAL_BODIES": "Sun, Moon, Ascendant",
        "NATAL_HOUSE_SYSTEM": "koch",
        "NATAL_RETROGRADE_STEP_DAYS": "0.5",
        "NATAL_POLAR_LATITUDE_LIMIT": "60",
    }
    cfg = load_config(env=env)
    assert cfg.max_orb_deg == 4.5
    assert cfg.bodies == (Body.SUN, Body.MOON, Body.ASCENDANT)
    assert cfg.default_house_system is HouseSystem.KOCH
    assert cfg.retrograde_step_days == 0.5
    assert cfg.polar_latitude_limit_deg == 60.0

@pytest.mark.parametrize("data", [
    {"aspects": {"max_orb_deg": 0}},
    {"aspects": {"max_orb_deg": 20}},
    {"aspects": {"max_orb_deg": "wide"}},
    {"aspects": {"orbs": {"quintile": 2}}},
    {"bodies": ["Sun", "Chiron"]},
    {"bodies": ["Sun", "Sun"]},
    {"houses": {"default": "topocentric"}},
    {"houses": {"default": "koch", "enabled": ["placidus"]}},
    {"houses": {"enabled": ["porphyry"]}},
    {"houses": {"polar_latitude_limit_deg": 120}},
    {"motion": {"retrograde_step_days": 0}},
    {"houses": "placidus"},
])
def test_invalid_values_raise_config_error(data) -> None:
    with pytest.raises(ConfigError):
        config_from_mapping(data)

def test_missing_file_raises(tmp_path) -> None:
    with pytest.raises(ConfigError):
        load_config(str(tmp_path / "nope.yaml"), env={})

def test_malformed_yaml_raises(tmp_path) -> None:
    p = tmp_path / "bad.yaml"
    p.write_text("aspects: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(str(p), env={})

def test_config_is_frozen() -> None:
    cfg = EngineConfig()
    with pytest.raises(Exception):
        cfg.max_orb_deg = 10.0  # type: ignore[misc]
    with pytest.raises(TypeError):
        cfg.aspect_orbs[AspectType.TRINE] = 1.0  # type: ignore[index]

def test_default_orbs_keep_minor_aspects_tight() -> None:
    cfg = EngineConfig()
    # 53° is 8 off semisquare and 7 off sextile: in orb only without the caps
    assert find_aspect(0.0, 53.0, max_orb=cfg.max_orb_deg) is not None
    assert find_aspect(0.0, 53.0, max_orb=cfg.max_orb_deg, orbs=cfg.aspect_orbs) is None
    # majors still use the full max orb
    aspect, orb, _ = find_aspect(0.0, 127.5, max_orb=cfg.max_orb_deg, orbs=cfg.aspect_orbs)
    assert aspect is AspectType.TRINE
    assert orb == pytest.approx(7.5)
