"""
CivitAI exports.

Two sub-formats share one software id: Orchestration JSON (a ComfyUI prompt
graph, possibly carrying an ``extraMetadata`` JSON string with the pre-upscale
generation parameters) and plain A1111 text.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from sdmeta_shared import Result, SoftwareId, get_logger

from ...utils import as_int, as_number, as_str
from ..geninfo.graph import calculate_scale
from ..metadata.entries import EntryRecord, build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings, UpscaleSettings
from ..metadata.parsing_utils import parse_json_object
from .a1111 import parse_a1111
from .base import first_text

logger = get_logger(__name__)

EXTRA_METADATA_KEY = "extraMetadata"


def extract_extra_metadata(graph: Any, record: Optional[EntryRecord] = None) -> Optional[dict[str, Any]]:
    """
    extraMetadata lives inside the prompt graph (JPEG) or in its own entry (PNG).
    """
    if isinstance(graph, dict):
        inner = parse_json_object(graph.get(EXTRA_METADATA_KEY))
        if inner is not None:
            return inner
    if record is not None:
        return parse_json_object(record.get(EXTRA_METADATA_KEY))
    return None


def _transformation_scale(extra: dict[str, Any], fallback_width: int) -> Optional[float]:
    """Scale of the first upscale transformation, relative to the pre-upscale width."""
    transformations = extra.get("transformations")
    if not isinstance(transformations, list):
        return None
    base_width = as_number(extra.get("width"))
    if base_width is None:
        base_width = fallback_width
    for item in transformations:
        if isinstance(item, dict) and item.get("type") == "upscale":
            return calculate_scale(item.get("upscaleWidth"), base_width)
    return None


def _merge_upscale(current: Optional[UpscaleSettings], scale: Optional[float]) -> Optional[UpscaleSettings]:
    if scale is None or (current is not None and current.scale is not None):
        return current
    return UpscaleSettings.build(upscaler=current.upscaler if current else None, scale=scale)


def apply_extra_metadata(metadata: GenerationMetadata, extra: Optional[dict[str, Any]]) -> GenerationMetadata:
    """Fill the gaps the prompt graph left with CivitAI's original generation parameters."""
    if not extra:
        return metadata

    changes: dict[str, Any] = {}
    if not metadata.prompt and as_str(extra.get("prompt")):
        changes["prompt"] = extra["prompt"]
    if not metadata.negative_prompt and as_str(extra.get("negativePrompt")):
        changes["negative_prompt"] = extra["negativePrompt"]
    width = as_int(extra.get("width"))
    height = as_int(extra.get("height"))
    if metadata.width == 0 and width:
        changes["width"] = width
    if metadata.height == 0 and height:
        changes["height"] = height
    if metadata.model is None:
        changes["model"] = ModelSettings.build(name=as_str(extra.get("baseModel")) or None)
    if metadata.sampling is None:
        changes["sampling"] = SamplingSettings.build(
            seed=as_int(extra.get("seed")),
            steps=as_int(extra.get("steps")),
            cfg=as_number(extra.get("cfgScale")),
            sampler=as_str(extra.get("sampler")),
            clip_skip=as_int(extra.get("clipSkip")),
        )
    if metadata.hires is None:
        scale = _transformation_scale(extra, changes.get("width", metadata.width))
        changes["upscale"] = _merge_upscale(metadata.upscale, scale)

    return replace(metadata, **changes)


def parse_civitai(entries) -> Result[GenerationMetadata]:
    """Orchestration JSON goes through the ComfyUI path, anything else is A1111 text."""
    from .comfyui import parse_comfyui

    record = build_entry_record(entries)
    text = first_text(record, "parameters", "UserComment", "Comment")
    if text is None or text.lstrip().startswith("{") or "prompt" in record:
        res = parse_comfyui(record, software=SoftwareId.CIVITAI)
        if res.ok or text is None:
            return res
        logger.debug("CivitAI JSON path failed (%s), retrying as A1111 text", res.code)
    return parse_a1111(record, software=SoftwareId.CIVITAI)
