# natal_engine/utils/config.py
"""
Engine configuration: YAML file + environment overrides → frozen EngineConfig.

Sources, later wins:
  1) packaged defaults.yaml (next to this module)
  2) the YAML file at `path`, or at $NATAL_ENGINE_CONFIG when no path is given
  3) env overrides:
       NATAL_MAX_ORB               max aspect orb (deg)
       NATAL_BODIES                comma list, e.g. "Sun,Moon,Ascendant"
       NATAL_HOUSE_SYSTEM          default house system
       NATAL_RETROGRADE_STEP_DAYS  finite-difference step for speeds
       NATAL_POLAR_LATITUDE_LIMIT  polar cut-off for placidus/koch/campanus

`get_config()` loads once per process; the object is read-only and is passed
explicitly into the engine.
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from natal_engine.core.constants import (
    COMPUTED_BODIES,
    IMPLEMENTED_HOUSE_SYSTEMS,
    AspectType,
    Body,
    HouseSystem,
)
from natal_engine.core.errors import ConfigError, UnsupportedHouseSystemError
from natal_engine.core.houses import normalize_house_system

logger = logging.getLogger(__name__)

__all__ = ["EngineConfig", "DEFAULT_ASPECT_ORBS", "DEFAULTS_PATH", "config_from_mapping", "load_config", "get_config"]

DEFAULTS_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), "defaults.yaml")

# persistence stores orbs as DECIMAL with a 15° ceiling
_MAX_ORB_CEILING = 15.0

# major aspects take max_orb_deg; sextile and the minor aspects are capped
DEFAULT_ASPECT_ORBS: Mapping[AspectType, float] = MappingProxyType({
    AspectType.SEXTILE: 6.0,
    AspectType.SEMISQUARE: 3.0,
    AspectType.SESQUIQUADRATE: 3.0,
    AspectType.QUINCUNX: 3.0,
})


@dataclass(frozen=True)
class EngineConfig:
    max_orb_deg: float = 8.0
    aspect_orbs: Mapping[AspectType, float] = field(default_factory=lambda: DEFAULT_ASPECT_ORBS)
    bodies: Tuple[Body, ...] = COMPUTED_BODIES
    include_angles_in_aspects: bool = True
    house_systems: Tuple[HouseSystem, ...] = IMPLEMENTED_HOUSE_SYSTEMS
    default_house_system: HouseSystem = HouseSystem.PLACIDUS
    retrograde_step_days: float = 1.0
    angle_motion_step_days: float = 1.0 / 1440.0
    polar_latitude_limit_deg: Optional[float] = None
    placidus_max_iterations: int = 100
    placidus_tolerance_deg: float = 1e-9

    def __post_init__(self) -> None:
        if not (0.0 < self.max_orb_deg <= _MAX_ORB_CEILING):
            raise ConfigError(f"max_orb_deg must be in (0, {_MAX_ORB_CEILING:g}]", loc="max_orb_deg")
        for aspect, orb in self.aspect_orbs.items():
            if not isinstance(aspect, AspectType) or not (0.0 <= orb <= _MAX_ORB_CEILING):
                raise ConfigError(f"bad orb override {aspect!r}: {orb!r}", loc="aspect_orbs")
        if not isinstance(self.aspect_orbs, MappingProxyType):
            object.__setattr__(self, "aspect_orbs", MappingProxyType(dict(self.aspect_orbs)))
        if len(set(self.bodies)) != len(self.bodies):
            raise ConfigError("bodies must not repeat", loc="bodies")
        for hs in self.house_systems:
            if not hs.implemented:
                raise ConfigError(f"house system {hs.key!r} is declared but not implemented", loc="house_systems")
        if self.default_house_system not in self.house_systems:
            raise ConfigError("default_house_system must be enabled", loc="default_house_system")
        for name in ("retrograde_step_days", "angle_motion_step_days", "placidus_tolerance_deg"):
            v = getattr(self, name)
            if not (math.isfinite(v) and v > 0.0):
                raise ConfigError(f"{name} must be a positive number", loc=name)
        if self.placidus_max_iterations < 1:
            raise ConfigError("placidus_max_iterations must be >= 1", loc="placidus_max_iterations")
        lim = self.polar_latitude_limit_deg
        if lim is not None and not (0.0 < lim <= 90.0):
            raise ConfigError("polar_latitude_limit_deg must be in (0, 90]", loc="polar_latitude_limit_deg")


# ───────────────────────── parsing ─────────────────────────

def _section(data: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    v = data.get(key) or {}
    if not isinstance(v, Mapping):
        raise ConfigError(f"'{key}' must be a mapping", loc=key)
    return v


def _float(v: Any, loc: str) -> float:
    try:
        return float(v)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{loc} must be a number", loc=loc) from e


def _house_system(v: Any, loc: str) -> HouseSystem:
    try:
        return normalize_house_system(v)
    except UnsupportedHouseSystemError as e:
        raise ConfigError(e.message, loc=loc) from e


def _bodies(v: Any) -> Tuple[Body, ...]:
    items = v.split(",") if isinstance(v, str) else list(v or [])
    try:
        return tuple(Body.parse(x) for x in items if str(x).strip())
    except ValueError as e:
        raise ConfigError(str(e), loc="bodies") from e


def config_from_mapping(data: Mapping[str, Any]) -> EngineConfig:
    """Build an EngineConfig from the YAML shape (see defaults.yaml)."""
    aspects = _section(data, "aspects")
    houses = _section(data, "houses")
    motion = _section(data, "motion")
    placidus = _section(houses, "placidus")

    kwargs: Dict[str, Any] = {}
    if "max_orb_deg" in aspects:
        kwargs["max_orb_deg"] = _float(aspects["max_orb_deg"], "aspects.max_orb_deg")
    if "include_angles" in aspects:
        kwargs["include_angles_in_aspects"] = bool(aspects["include_angles"])
    if aspects.get("orbs"):
        orbs: Dict[AspectType, float] = {}
        for k, v in dict(aspects["orbs"]).items():
            try:
                aspect = AspectType.parse(k)
            except ValueError as e:
                raise ConfigError(str(e), loc="aspects.orbs") from e
            orbs[aspect] = _float(v, f"aspects.orbs.{k}")
        kwargs["aspect_orbs"] = orbs
    if "bodies" in data:
        kwargs["bodies"] = _bodies(data["bodies"])
    if "enabled" in houses:
        kwargs["house_systems"] = tuple(_house_system(h, "houses.enabled") for h in houses["enabled"] or [])
    if "default" in houses:
        kwargs["default_house_system"] = _house_system(houses["default"], "houses.default")
    if houses.get("polar_latitude_limit_deg") is not None:
        kwargs["polar_latitude_limit_deg"] = _float(houses["polar_latitude_limit_deg"], "houses.polar_latitude_limit_deg")
    if "max_iterations" in placidus:
        kwargs["placidus_max_iterations"] = int(_float(placidus["max_iterations"], "houses.placidus.max_iterations"))
    if "tolerance_deg" in placidus:
        kwargs["placidus_tolerance_deg"] = _float(placidus["tolerance_deg"], "houses.placidus.tolerance_deg")
    if "retrograde_step_days" in motion:
        kwargs["retrograde_step_days"] = _float(motion["retrograde_step_days"], "motion.retrograde_step_days")
    if "angle_step_days" in motion:
        kwargs["angle_motion_step_days"] = _float(motion["angle_step_days"], "motion.angle_step_days")
    return EngineConfig(**kwargs)


def _read_yaml(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"cannot read config file: {e.strerror}", loc="path") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML: {e}", loc="path") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping", loc="path")
    return data


def _merge(base: Dict[str, Any], over: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in over.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), Mapping):
            out[k] = _merge(dict(out[k]), v)
        else:
            out[k] = v
    return out


def _apply_env(data: Dict[str, Any], env: Mapping[str, str]) -> Dict[str, Any]:
    over: Dict[str, Any] = {}
    if env.get("NATAL_MAX_ORB"):
        over.setdefault("aspects", {})["max_orb_deg"] = env["NATAL_MAX_ORB"]
    if env.get("NATAL_BODIES"):
        over["bodies"] = env["NATAL_BODIES"]
    if env.get("NATAL_HOUSE_SYSTEM"):
        over.setdefault("houses", {})["default"] = env["NATAL_HOUSE_SYSTEM"]
    if env.get("NATAL_POLAR_LATITUDE_LIMIT"):
        over.setdefault("houses", {})["polar_latitude_limit_deg"] = env["NATAL_POLAR_LATITUDE_LIMIT"]
    if env.get("NATAL_RETROGRADE_STEP_DAYS"):
        over.setdefault("motion", {})["retrograde_step_days"] = env["NATAL_RETROGRADE_STEP_DAYS"]
    return _merge(data, over)


def load_config(path: Optional[str] = None, env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Load defaults.yaml, overlay the YAML at `path` (or $NATAL_ENGINE_CONFIG),
    then environment overrides. Raises ConfigError on any malformed value.
    """
    env = os.environ if env is None else env
    data = _read_yaml(DEFAULTS_PATH)
    path = path or env.get("NATAL_ENGINE_CONFIG")
    if path:
        data = _merge(data, _read_yaml(path))
    cfg = config_from_mapping(_apply_env(data, env))
    logger.debug("engine config loaded (custom file: %s)", bool(path))
    return cfg


@lru_cache(maxsize=1)
def get_config() -> EngineConfig:
    """Process-wide configuration, loaded on first use."""
    return load_config()
