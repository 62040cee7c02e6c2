# engine/compare.py
"""Tolerance, angle, geometry and unit comparisons shared by the validators."""

from __future__ import annotations

import math
import re
from typing import Literal, Optional, Protocol, Tuple

ToleranceType = Literal["absolute", "percent"]


class PointLike(Protocol):
    x: float
    y: float


def is_approximately_equal(
    value: float, expected: float, tolerance: float, tolerance_type: ToleranceType
) -> bool:
    if tolerance_type == "absolute":
        return abs(value - expected) <= tolerance
    # percent of zero is meaningless; the tolerance bounds |value| directly
    if expected == 0:
        return abs(value) <= tolerance
    return abs((value - expected) / expected) * 100 <= tolerance


def percent_error(value: float, expected: float) -> float:
    if expected == 0:
        return 0.0 if value == 0 else math.inf
    return abs((value - expected) / expected) * 100


def deg_to_rad(degrees: float) -> float:
    return degrees * (math.pi / 180)


def rad_to_deg(radians: float) -> float:
    return radians * (180 / math.pi)


def normalize_angle(degrees: float) -> float:
    """Map any angle in degrees onto [0, 360)."""
    return degrees % 360


def angles_are_similar(angle1: float, angle2: float, tolerance: float = 5) -> bool:
    diff = abs(normalize_angle(angle1) - normalize_angle(angle2))
    return min(diff, 360 - diff) <= tolerance


def distance(p1: PointLike, p2: PointLike) -> float:
    return math.hypot(p2.x - p1.x, p2.y - p1.y)


# --- Units ------------------------------------------------------------------------
# Spellings are compared after lower-casing and removing whitespace.
# Anything not listed is compared verbatim (so "kg·m/s" only equals itself).
_UNIT_ALIASES = {
    "n": "n",
    "newton": "n",
    "newtons": "n",
    "kn": "kn",
    "kilonewton": "kn",
    "kilonewtons": "kn",
    "nm": "nm",
    "n·m": "nm",
    "n.m": "nm",
    "n*m": "nm",
    "n-m": "nm",
    "newton-metre": "nm",
    "newton-meter": "nm",
    "knm": "knm",
    "kn·m": "knm",
    "kn.m": "knm",
    "kn*m": "knm",
    "pa": "pa",
    "pascal": "pa",
    "pascals": "pa",
    "kpa": "kpa",
    "mpa": "mpa",
    "megapascal": "mpa",
    "megapascals": "mpa",
    "gpa": "gpa",
    "gigapascal": "gpa",
    "gigapascals": "gpa",
    "m": "m",
    "meter": "m",
    "meters": "m",
    "metre": "m",
    "metres": "m",
    "mètre": "m",
    "mètres": "m",
    "mm": "mm",
    "millimètre": "mm",
    "millimètres": "mm",
    "s": "s",
    "sec": "s",
    "seconde": "s",
    "secondes": "s",
    "m/s": "m/s",
    "m/s²": "m/s2",
    "m/s^2": "m/s2",
    "m/s2": "m/s2",
    "hz": "hz",
    "hertz": "hz",
    "°": "deg",
    "deg": "deg",
    "degré": "deg",
    "degrés": "deg",
    "degree": "deg",
    "degrees": "deg",
    "rad": "rad",
    "radian": "rad",
    "radians": "rad",
}

_WS_RE = re.compile(r"\s+")


def normalize_unit(unit: Optional[str]) -> str:
    compact = _WS_RE.sub("", (unit or "").lower())
    return _UNIT_ALIASES.get(compact, compact)


def units_are_equivalent(unit1: Optional[str], unit2: Optional[str]) -> bool:
    return normalize_unit(unit1) == normalize_unit(unit2)


# --- Learner input helpers --------------------------------------------------------
_NUMERIC_ANSWER_RE = re.compile(r"^([+-]?\d*[.,]?\d+(?:[eE][+-]?\d+)?)\s*(.*)$")


def parse_numeric_answer(text: Optional[str]) -> Tuple[Optional[float], str]:
    """Split "12.5 kN" into (12.5, "kN"). A decimal comma is accepted."""
    m = _NUMERIC_ANSWER_RE.match((text or "").strip())
    if not m:
        return None, ""
    return float(m.group(1).replace(",", ".")), m.group(2).strip()


def format_number(x: float) -> str:
    if math.isfinite(x) and abs(x - round(x)) < 1e-12:
        return str(int(round(x)))
    return str(x)
