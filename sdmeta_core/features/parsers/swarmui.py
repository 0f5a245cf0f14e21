"""
SwarmUI: ``parameters`` JSON with a ``sui_image_params`` object; PNG exports
usually also carry the backend ComfyUI graph in ``prompt``.
"""
from __future__ import annotations

from typing import Any

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_number, as_str
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata, HiresSettings, ModelSettings, SamplingSettings
from ..metadata.parsing_utils import parse_json_object, strip_trailing_nul
from .base import first_text, get_dict, load_json_object, unsupported


def _unwrap(data: dict[str, Any]) -> dict[str, Any]:
    """Older JPEG exports nest the parameters JSON string under a "parameters" key."""
    nested = data.get("parameters")
    if "sui_image_params" not in data and isinstance(nested, str):
        return parse_json_object(nested) or data
    return data


def parse_swarmui(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    text = first_text(record, "parameters", "UserComment", "Comment")
    if not text:
        return unsupported("No parameters entry")

    loaded = load_json_object(strip_trailing_nul(text), "parameters entry")
    if not loaded.ok:
        return loaded
    data = _unwrap(loaded.data or {})
    if not isinstance(data.get("sui_image_params"), dict):
        return unsupported("parameters has no sui_image_params")
    params = get_dict(data, "sui_image_params")

    graph = parse_json_object(record.get("prompt") or record.get("Make") or "")
    return Result.Ok(
        GenerationMetadata(
            software=SoftwareId.SWARMUI,
            prompt=as_str(params.get("prompt")) or "",
            negative_prompt=as_str(params.get("negativeprompt")) or "",
            width=as_int(params.get("width")) or 0,
            height=as_int(params.get("height")) or 0,
            model=ModelSettings.build(name=as_str(params.get("model")) or None),
            sampling=SamplingSettings.build(
                seed=as_int(params.get("seed")),
                steps=as_int(params.get("steps")),
                cfg=as_number(params.get("cfgscale")),
                sampler=as_str(params.get("sampler")),
                scheduler=as_str(params.get("scheduler")),
            ),
            hires=HiresSettings.build(
                scale=as_number(params.get("refinerupscale")),
                upscaler=as_str(params.get("refinerupscalemethod")),
                denoise=as_number(params.get("refinercontrolpercentage")),
            ),
            nodes=graph,
        )
    )
