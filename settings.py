# settings.py
from __future__ import annotations

import os
from pathlib import Path

from schemas.validation import ValidationConfig

_BASE = Path(__file__).resolve().parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        # accept a decimal comma ("2,5")
        return float(raw.replace(",", "."))
    except ValueError:
        return default


LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
QUESTIONS_DIR = Path(os.getenv("QUESTIONS_DIR") or _BASE / "data" / "questions")

DEFAULT_VALIDATION_CONFIG = ValidationConfig(
    default_numeric_tolerance=_env_float("DEFAULT_NUMERIC_TOLERANCE", 2),
    default_tolerance_type=(
        "absolute" if os.getenv("DEFAULT_TOLERANCE_TYPE", "percent") == "absolute" else "percent"
    ),
    require_correct_units=_env_bool("REQUIRE_CORRECT_UNITS", True),
    enable_partial_credit=_env_bool("ENABLE_PARTIAL_CREDIT", True),
)
