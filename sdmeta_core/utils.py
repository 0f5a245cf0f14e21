"""
Utility helpers shared across core modules.
"""
from __future__ import annotations

import math
import os
from typing import Any

BOOL_TRUE_VALUES = frozenset({"1", "true", "yes", "on", "enabled"})
BOOL_FALSE_VALUES = frozenset({"0", "false", "no", "off", "disabled"})


def parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in BOOL_TRUE_VALUES:
            return True
        if normalized in BOOL_FALSE_VALUES:
            return False
    return default


def env_bool(name: str, default: bool) -> bool:
    if not name:
        return default
    raw = os.environ.get(name)
    if raw is None:
        return default
    return parse_bool(raw, default)


def as_str(value: Any) -> str | None:
    """Return value when it is a string, else None."""
    return value if isinstance(value, str) else None


def as_number(value: Any) -> int | float | None:
    """Return value when it is a real JSON number (bools excluded), else None."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def as_int(value: Any) -> int | None:
    """Integral JSON numbers only; 512.0 becomes 512, 512.5 is rejected."""
    num = as_number(value)
    if num is None:
        return None
    if isinstance(num, float):
        return int(num) if num.is_integer() else None
    return num


def coerce_number(value: Any) -> int | float | None:
    """
    Loose numeric coercion for tools that store numbers as text.

    Zero, empty strings and unparseable values all collapse to None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        num: float | int = value
    elif isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            num = int(s)
        except ValueError:
            try:
                num = float(s)
            except ValueError:
                return None
    else:
        return None
    if isinstance(num, float):
        if not math.isfinite(num) or num == 0:
            return None
        return int(num) if num.is_integer() else num
    return num or None


def round2(value: float) -> float:
    """Round half-up to two decimals (1.005 style ties go up, unlike round())."""
    return math.floor(value * 100 + 0.5) / 100
