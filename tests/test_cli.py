# tests/test_cli.py
from __future__ import annotations

import io
import json

import pytest

from natal_engine.main import EXIT_ENGINE_ERROR, EXIT_OK, main

PAYLOAD = {
    "date": "1977-05-17",
    "time": "11:29",
    "latitude": 49.2827,
    "longitude": -123.1207,
    "location": "Vancouver, BC",
    "timezone": "America/Vancouver",
}


@pytest.fixture(autouse=True)
def _hermetic_env(monkeypatch):
    for k in ("NATAL_ENGINE_CONFIG", "NATAL_MAX_ORB", "NATAL_BODIES", "NATAL_HOUSE_SYSTEM",
              "NATAL_POLAR_LATITUDE_LIMIT", "NATAL_RETROGRADE_STEP_DAYS"):
        monkeypatch.delenv(k, raising=False)


def _run(argv, payload=None):
    stdin = io.StringIO(json.dumps(payload) if payload is not None else "")
    stdout = io.StringIO()
    code = main(argv, stdin=stdin, stdout=stdout)
    return code, json.loads(stdout.getvalue())


def test_chart_from_stdin() -> None:
    code, out = _run([], PAYLOAD)
    assert code == EXIT_OK
    assert out["ok"] is True
    assert out["house_system"] == "placidus"
    assert [p["body"] for p in out["positions"]][:2] == ["Sun", "Moon"]

def test_rows_from_file(tmp_path) -> None:
    p = tmp_path / "birth.json"
    p.write_text(json.dumps(dict(PAYLOAD, house_system="Equal")), encoding="utf-8")
    code, out = _run([str(p), "--rows"])
    assert code == EXIT_OK
    assert set(out) == {"natal_charts", "planetary_positions", "house_cusps", "aspects"}
    assert out["natal_charts"][0]["house_system"] == "Equal"

def test_engine_error_exit_code() -> None:
    code, out = _run([], dict(PAYLOAD, latitude=123.0))
    assert code == EXIT_ENGINE_ERROR
    assert out["ok"] is False
    assert out["error"] == "invalid_coordinate"
    assert out["errors"][0]["loc"] == ["latitude"]

def test_invalid_json() -> None:
    stdout = io.StringIO()
    code = main([], stdin=io.StringIO("{not json"), stdout=stdout)
    assert code == EXIT_ENGINE_ERROR
    assert json.loads(stdout.getvalue())["error"] == "engine_error"

def test_bad_config_file(tmp_path) -> None:
    cfg = tmp_path / "c.yaml"
    cfg.write_text("aspects:\n  max_orb_deg: 99\n", encoding="utf-8")
    code, out = _run(["--config", str(cfg)], PAYLOAD)
    assert code == EXIT_ENGINE_ERROR
    assert out["error"] == "invalid_config"

def test_self_check(ensure_erfa) -> None:
    code, out = _run(["--self-check"])
    assert code == EXIT_OK
    assert out["ok"] is True
    assert out["reference"][0]["name"] == "vancouver_1977"
