"""
TensorArt: a ComfyUI prompt graph plus a ``generation_data`` JSON entry.

TensorArt's checkpoint loader node is not one the resolver knows, so prompt,
negative prompt and model come from generation_data while everything else is
resolved from the graph.
"""
from __future__ import annotations

from dataclasses import replace

from sdmeta_shared import Result, SoftwareId

from ...utils import as_str
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings
from ..metadata.parsing_utils import parse_json_object, repair_utf8_mojibake, strip_trailing_nul
from .base import get_dict, load_json_object, unsupported
from .comfyui import build_from_graph


def parse_tensorart(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    raw = record.get("generation_data")
    if raw is None:
        return unsupported("No generation_data entry")

    loaded = load_json_object(repair_utf8_mojibake(strip_trailing_nul(raw)), "generation_data entry")
    if not loaded.ok:
        return loaded
    data = loaded.data or {}

    graph = parse_json_object(strip_trailing_nul(record.get("prompt") or "")) or {}
    metadata = build_from_graph(graph, SoftwareId.TENSORART)

    base_model = get_dict(data, "baseModel")
    model = ModelSettings.build(
        name=as_str(base_model.get("modelFileName")) or None,
        hash=as_str(base_model.get("hash")) or None,
    )
    return Result.Ok(
        replace(
            metadata,
            prompt=as_str(data.get("prompt")) or metadata.prompt,
            negative_prompt=as_str(data.get("negativePrompt")) or metadata.negative_prompt,
            model=model or metadata.model,
            nodes=graph or None,
        )
    )
