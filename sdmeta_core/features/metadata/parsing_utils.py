"""
JSON helpers shared by the detector, parsers and converters.

Payloads written by generation tools are decoded and re-encoded the way the
tools' own JavaScript/Python front-ends do it: compact separators, non-ASCII
left as-is, and integral floats written without a fractional part.
"""
from __future__ import annotations

import json
import re
from typing import Any, Optional

from sdmeta_shared import ErrorCode, Result

from ... import config

_TRAILING_NUL_RE = re.compile(r"\x00+$")


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name}")


def parse_json(text: Any) -> Result[Any]:
    """Decode JSON text; oversize, non-string and malformed input are errors."""
    if not isinstance(text, str):
        return Result.Err(ErrorCode.PARSE_ERROR, "JSON payload is not text")
    if len(text) > config.MAX_JSON_SIZE:
        return Result.Err(ErrorCode.PARSE_ERROR, "JSON payload too large", size=len(text))
    try:
        value = json.loads(text, parse_constant=_reject_constant)
    except (ValueError, RecursionError) as exc:
        return Result.Err(ErrorCode.PARSE_ERROR, f"Invalid JSON: {exc}")
    return Result(ok=True, data=value, code="OK")


def parse_json_object(text: Any) -> Optional[dict[str, Any]]:
    """Decode JSON text that must be an object; anything else gives None."""
    res = parse_json(text)
    if res.ok and isinstance(res.data, dict):
        return res.data
    return None


def _normalize_numbers(value: Any) -> Any:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {k: _normalize_numbers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_normalize_numbers(v) for v in value]
    return value


def dump_json(value: Any) -> str:
    """Compact JSON encoding matching what the tools write."""
    return json.dumps(_normalize_numbers(value), ensure_ascii=False, separators=(",", ":"))


def stringify(value: Any) -> Optional[str]:
    """Strings pass through untouched, everything else is JSON-encoded."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return dump_json(value)


def strip_trailing_nul(text: str) -> str:
    return _TRAILING_NUL_RE.sub("", text)


def looks_like_json_object(text: Any) -> bool:
    return isinstance(text, str) and text.startswith("{")


def repair_utf8_mojibake(text: str) -> str:
    """Undo UTF-8 bytes that were decoded as Latin-1 (raw UTF-8 inside tEXt)."""
    try:
        return text.encode("latin-1").decode("utf-8")
    except UnicodeError:
        return text
