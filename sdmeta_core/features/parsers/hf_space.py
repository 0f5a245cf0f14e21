"""Hugging Face Spaces (Animagine and friends): ``parameters`` JSON."""
from __future__ import annotations

import re

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_number, as_str
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings
from .base import first_text, load_json_object, unsupported

_RESOLUTION_RE = re.compile(r"(\d+)\s*x\s*(\d+)")


def parse_resolution(value) -> tuple[int, int]:
    match = _RESOLUTION_RE.search(value) if isinstance(value, str) else None
    if not match:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


def parse_hf_space(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    text = first_text(record, "parameters", "UserComment")
    if not text:
        return unsupported("No parameters entry")

    loaded = load_json_object(text, "parameters entry")
    if not loaded.ok:
        return loaded
    data = loaded.data or {}
    width, height = parse_resolution(data.get("resolution"))

    return Result.Ok(
        GenerationMetadata(
            software=SoftwareId.HF_SPACE,
            prompt=as_str(data.get("prompt")) or "",
            negative_prompt=as_str(data.get("negative_prompt")) or "",
            width=width,
            height=height,
            model=ModelSettings.build(
                name=as_str(data.get("Model")) or None,
                hash=as_str(data.get("Model hash")) or None,
            ),
            sampling=SamplingSettings.build(
                sampler=as_str(data.get("sampler")) or None,
                steps=as_int(data.get("num_inference_steps")),
                cfg=as_number(data.get("guidance_scale")),
                seed=as_int(data.get("seed")),
            ),
        )
    )
