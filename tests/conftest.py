# tests/conftest.py
from __future__ import annotations

"""
Pytest configuration for the natal engine suite.

- Registers Hypothesis profiles for local dev and CI.
- Freezes the process TZ to UTC (the engine never reads it; zones are passed explicitly).
- Shared fixtures: ERFA handle, the Vancouver 1977 birth, a default config.
"""

import os
import pytest
from hypothesis import settings, HealthCheck

from natal_engine.core.models import BirthInput
from natal_engine.core.timescales import CivilDate, CivilTime
from natal_engine.utils.config import EngineConfig


# ──────────────────────────────────────────────────────────────────────────────
# Hypothesis profiles
# ──────────────────────────────────────────────────────────────────────────────
settings.register_profile(
    "dev",
    settings(
        deadline=None,
        max_examples=60,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)
settings.register_profile(
    "ci",
    settings(
        deadline=None,
        max_examples=150,
        suppress_health_check=[HealthCheck.too_slow],
    ),
)

_profile = (
    "ci"
    if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS"))
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
)
settings.load_profile(_profile)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "slow: mark test as slow")


def pytest_report_header(config: pytest.Config) -> str:
    return f"Hypothesis profile: '{_profile}'"


# ──────────────────────────────────────────────────────────────────────────────
# Global fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session", autouse=True)
def freeze_tz_env():
    prev = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    try:
        yield
    finally:
        if prev is None:
            os.environ.pop("TZ", None)
        else:
            os.environ["TZ"] = prev


@pytest.fixture(scope="session")
def ensure_erfa():
    """Fail early if pyERFA is missing the routines used as references."""
    import erfa
    for fn in ("gmst82", "obl80", "cal2jd"):
        assert hasattr(erfa, fn), f"ERFA.{fn} not available"
    return erfa


@pytest.fixture(scope="session")
def ensure_tzdata():
    from zoneinfo import ZoneInfo
    for name in ("UTC", "America/Vancouver", "Asia/Kolkata", "America/New_York"):
        ZoneInfo(name)


@pytest.fixture()
def vancouver_birth(ensure_tzdata) -> BirthInput:
    """1977-05-17 11:29 PDT, Vancouver BC."""
    return BirthInput(
        date=CivilDate(1977, 5, 17),
        time=CivilTime(11, 29),
        latitude=49.2827,
        longitude=-123.1207,
        location="Vancouver, BC",
        timezone="America/Vancouver",
    )


@pytest.fixture()
def engine_config() -> EngineConfig:
    return EngineConfig()
