"""
Stability Matrix: a ``parameters-json`` entry next to the ComfyUI ``prompt``
graph (and an ``smproj`` project entry).
"""
from __future__ import annotations

from dataclasses import replace

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_number, as_str
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings
from ..metadata.parsing_utils import parse_json_object
from .base import load_json_object, unsupported
from .comfyui import build_from_graph


def parse_stability_matrix(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    raw = record.get("parameters-json")
    if not raw:
        return unsupported("No parameters-json entry")

    loaded = load_json_object(raw, "parameters-json entry")
    if not loaded.ok:
        return loaded
    data = loaded.data or {}

    graph = parse_json_object(record.get("prompt") or "") or {}
    base = build_from_graph(graph, SoftwareId.STABILITY_MATRIX)

    model = ModelSettings.build(
        name=as_str(data.get("ModelName")) or None,
        hash=as_str(data.get("ModelHash")) or None,
    )
    sampling = SamplingSettings.build(
        seed=as_int(data.get("Seed")),
        steps=as_int(data.get("Steps")),
        cfg=as_number(data.get("CfgScale")),
        sampler=as_str(data.get("Sampler")),
    )
    return Result.Ok(
        replace(
            base,
            prompt=as_str(data.get("PositivePrompt")) or base.prompt,
            negative_prompt=as_str(data.get("NegativePrompt")) or base.negative_prompt,
            width=as_int(data.get("Width")) or base.width,
            height=as_int(data.get("Height")) or base.height,
            model=model or base.model,
            sampling=sampling or base.sampling,
            nodes=graph or None,
        )
    )
