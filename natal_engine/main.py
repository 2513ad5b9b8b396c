# natal_engine/main.py
"""
natal-chart: command-line calling layer.

  natal-chart payload.json            chart as JSON
  natal-chart --rows < payload.json   persistence rows as JSON
  natal-chart --self-check            reference + ERFA diagnostics

Engine errors print the structured error body and exit with status 2.
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional, TextIO

from natal_engine.core.chart import compute_natal_chart
from natal_engine.core.errors import EngineError
from natal_engine.core.validators import parse_birth_input
from natal_engine.utils.config import get_config, load_config
from natal_engine.version import VERSION

log = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ENGINE_ERROR = 2


def _configure_logging() -> None:
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "WARNING"))


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="natal-chart",
        description="Compute a tropical natal chart from a JSON birth payload.",
    )
    parser.add_argument("payload", nargs="?", help="Path to a JSON payload (default: stdin).")
    parser.add_argument("--rows", action="store_true", help="Print persistence rows instead of the chart.")
    parser.add_argument("--config", help="YAML config file (default: $NATAL_ENGINE_CONFIG or packaged defaults).")
    parser.add_argument("--self-check", action="store_true", help="Run the reference and ERFA diagnostics.")
    parser.add_argument("--indent", type=int, default=2, help="JSON indent (default 2).")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    return parser


def _read_payload(path: Optional[str], stdin: TextIO) -> Dict[str, Any]:
    try:
        if path:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        else:
            data = json.load(stdin)
    except OSError as e:
        raise EngineError(f"cannot read payload: {e.strerror}", loc="payload") from e
    except json.JSONDecodeError as e:
        raise EngineError(f"payload is not valid JSON: {e.msg}", loc="payload") from e
    if not isinstance(data, dict):
        raise EngineError("payload must be a JSON object", loc="payload")
    return data


def _self_check(cfg) -> Dict[str, Any]:
    from natal_engine.core.diagnostics import REFERENCE_VECTORS, compare_with_reference, cross_check_sidereal

    reports = [compare_with_reference(v, cfg) for v in REFERENCE_VECTORS]
    checks = [cross_check_sidereal(v.julian_day, v.birth.date) for v in REFERENCE_VECTORS]
    return {
        "ok": all(r.passed for r in reports) and all(c.passed for c in checks),
        "reference": [r.to_dict() for r in reports],
        "erfa": [
            {
                "jd": c.jd,
                "gmst_error_arcsec": c.error_budget.sidereal_time * 3600.0,
                "obliquity_error_arcsec": c.error_budget.obliquity * 3600.0,
                "total_rss_arcsec": c.error_budget.total_rss * 3600.0,
                "passed": c.passed,
            }
            for c in checks
        ],
    }


def main(argv: Optional[List[str]] = None, stdin: Optional[TextIO] = None, stdout: Optional[TextIO] = None) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    _configure_logging()
    args = _build_parser().parse_args(argv)

    try:
        cfg = load_config(args.config) if args.config else get_config()
        if args.self_check:
            out = _self_check(cfg)
        else:
            birth = parse_birth_input(_read_payload(args.payload, stdin))
            chart = compute_natal_chart(birth, cfg)
            out = chart.to_rows() if args.rows else dict(chart.to_dict(), ok=True)
    except EngineError as e:
        log.debug("engine error: %s", e.code)
        json.dump(e.to_dict(), stdout, indent=args.indent)
        stdout.write("\n")
        return EXIT_ENGINE_ERROR

    json.dump(out, stdout, indent=args.indent)
    stdout.write("\n")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
