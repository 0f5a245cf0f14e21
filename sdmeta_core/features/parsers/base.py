"""
Helpers shared by the per-tool parsers.

Error convention: UNSUPPORTED_FORMAT when a parser's marker entry is absent (the
registry may try another parser), PARSE_ERROR when the marker is present but
its payload is malformed (terminal).
"""
from __future__ import annotations

from typing import Any, Optional

from sdmeta_shared import ErrorCode, Result

from ..metadata.entries import EntryRecord
from ..metadata.parsing_utils import parse_json


def unsupported(message: str = "Marker entry not found", **meta) -> Result[Any]:
    return Result.Err(ErrorCode.UNSUPPORTED_FORMAT, message, **meta)


def parse_error(message: str, **meta) -> Result[Any]:
    return Result.Err(ErrorCode.PARSE_ERROR, message, **meta)


def first_text(record: EntryRecord, *keys: str) -> Optional[str]:
    """First entry present under keys, in order (empty strings count as present)."""
    for key in keys:
        value = record.get(key)
        if value is not None:
            return value
    return None


def load_json_object(text: str, label: str) -> Result[dict[str, Any]]:
    parsed = parse_json(text)
    if not parsed.ok:
        return parse_error(f"Invalid JSON in {label}")
    if not isinstance(parsed.data, dict):
        return parse_error(f"Expected a JSON object in {label}")
    return Result.Ok(parsed.data)


def get_dict(data: Any, *path: str) -> dict[str, Any]:
    """Walk nested objects; any missing or non-object step gives {}."""
    cur = data
    for key in path:
        if not isinstance(cur, dict):
            return {}
        cur = cur.get(key)
    return cur if isinstance(cur, dict) else {}
