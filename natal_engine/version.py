# natal_engine/version.py
from __future__ import annotations
import os

# Single place to bump the engine version (overridable via env for CI builds)
VERSION = os.getenv("NATAL_ENGINE_VERSION", "0.1.0")
