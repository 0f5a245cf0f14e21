"""
Fooocus: JSON in Comment/UserComment/parameters, or A1111 text when the
``fooocus_scheme`` entry says so.
"""
from __future__ import annotations

import re
from dataclasses import replace
from typing import Any, Optional

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_str, coerce_number
from ..metadata.entries import EntryRecord, build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings
from .a1111 import STEPS_MARKER, parse_parameters_text
from .base import first_text, load_json_object, unsupported

_RESOLUTION_RE = re.compile(r"(\d+)\D+(\d+)")


def _resolution(value: Any) -> tuple[int, int]:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return as_int(value[0]) or 0, as_int(value[1]) or 0
    match = _RESOLUTION_RE.search(value) if isinstance(value, str) else None
    if not match:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


def _int(value: Any) -> Optional[int]:
    num = coerce_number(value)
    return as_int(num) if num is not None else None


def build_metadata(data: dict[str, Any]) -> GenerationMetadata:
    width = _int(data.get("width")) or 0
    height = _int(data.get("height")) or 0
    if not (width and height):
        width, height = _resolution(data.get("resolution"))
    cfg = data.get("cfg")
    return GenerationMetadata(
        software=SoftwareId.FOOOCUS,
        prompt=(as_str(data.get("prompt")) or "").strip(),
        negative_prompt=(as_str(data.get("negative_prompt")) or "").strip(),
        width=width,
        height=height,
        model=ModelSettings.build(name=as_str(data.get("base_model"))),
        sampling=SamplingSettings.build(
            sampler=as_str(data.get("sampler")),
            scheduler=as_str(data.get("scheduler")),
            steps=_int(data.get("steps")),
            cfg=coerce_number(cfg if cfg is not None else data.get("guidance_scale")),
            seed=_int(data.get("seed")),
        ),
    )


def _payload(record: EntryRecord) -> Optional[str]:
    return first_text(record, "Comment", "UserComment", "parameters")


def _parse_text(text: str, scheme: Optional[str]) -> Result[GenerationMetadata]:
    if not text.startswith("{"):
        if scheme == "a1111" or STEPS_MARKER in text:
            return Result.Ok(replace(parse_parameters_text(text), software=SoftwareId.FOOOCUS))
        return unsupported("Fooocus metadata is not JSON")

    loaded = load_json_object(text, "Fooocus metadata")
    if not loaded.ok:
        return loaded
    data = loaded.data or {}

    # JPEG/WebP copies fold {"parameters": ..., "fooocus_scheme": ...} into one object
    if "fooocus_scheme" in data and "parameters" in data:
        inner = data["parameters"]
        if isinstance(inner, dict):
            return Result.Ok(build_metadata(inner))
        if isinstance(inner, str):
            return _parse_text(inner, as_str(data.get("fooocus_scheme")))
    return Result.Ok(build_metadata(data))


def parse_fooocus(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    text = _payload(record)
    if not text:
        return unsupported("No Fooocus metadata entry")
    return _parse_text(text, record.get("fooocus_scheme"))
