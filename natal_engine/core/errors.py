# natal_engine/core/errors.py
from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

__all__ = [
    "EngineError",
    "InvalidDateError",
    "InvalidCoordinateError",
    "UnsupportedHouseSystemError",
    "HouseSystemDegenerateError",
    "BodyComputationError",
    "ConfigError",
]

Loc = Union[str, Sequence[str], None]


# ───────────────────────── base ─────────────────────────

class EngineError(ValueError):
    """
    Base for every error the engine raises.

    Carries a stable machine `code` plus a structured `.errors()` list
    ({"loc", "msg", "type"} items) so a calling layer can map it to a
    user-facing message without parsing strings.
    """

    code: str = "engine_error"

    def __init__(self, message: str, *, loc: Loc = None):
        self.message = message
        if loc is None:
            self.loc: List[str] = []
        elif isinstance(loc, str):
            self.loc = [loc]
        else:
            self.loc = list(loc)
        super().__init__(f"{self.code}: {message}")

    def errors(self) -> List[Dict[str, Any]]:
        return [{"loc": list(self.loc), "msg": self.message, "type": self.code}]

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.code, "message": self.message, "errors": self.errors()}


# ───────────────────────── input errors ─────────────────────────

class InvalidDateError(EngineError):
    code = "invalid_date"


class InvalidCoordinateError(EngineError):
    code = "invalid_coordinate"


# ───────────────────────── house systems ─────────────────────────

class UnsupportedHouseSystemError(EngineError):
    code = "unsupported_house_system"

    def __init__(self, requested: Any, suggestions: Optional[Sequence[str]] = None):
        self.requested = requested
        self.suggestions = list(suggestions or [])
        msg = f"unsupported house system {requested!r}"
        if self.suggestions:
            msg += f" (did you mean: {', '.join(self.suggestions)})"
        super().__init__(msg, loc="house_system")


class HouseSystemDegenerateError(EngineError):
    """Valid system, but mathematically undefined for this sky (polar latitudes)."""

    code = "house_system_degenerate"

    def __init__(self, system: str, reason: str):
        self.system = system
        self.reason = reason
        super().__init__(f"{system} houses undefined: {reason}", loc="house_system")


# ───────────────────────── series / config ─────────────────────────

class BodyComputationError(EngineError):
    code = "body_computation_failed"

    def __init__(self, body: str, reason: str = "non-finite longitude"):
        self.body = body
        super().__init__(f"{body}: {reason}", loc=["positions", body])


class ConfigError(EngineError):
    code = "invalid_config"
