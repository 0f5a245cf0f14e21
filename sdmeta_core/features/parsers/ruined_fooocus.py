"""RuinedFooocus: ``parameters`` JSON tagged ``"software": "RuinedFooocus"``."""
from __future__ import annotations

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_number, as_str
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings
from .base import first_text, load_json_object, unsupported

SOFTWARE_TAG = "RuinedFooocus"


def parse_ruined_fooocus(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    text = first_text(record, "parameters", "UserComment")
    if not text or not text.startswith("{"):
        return unsupported("No RuinedFooocus parameters")

    loaded = load_json_object(text, "RuinedFooocus metadata")
    if not loaded.ok:
        return loaded
    data = loaded.data or {}
    if data.get("software") != SOFTWARE_TAG:
        return unsupported("parameters is not tagged RuinedFooocus")

    return Result.Ok(
        GenerationMetadata(
            software=SoftwareId.RUINED_FOOOCUS,
            prompt=(as_str(data.get("Prompt")) or "").strip(),
            negative_prompt=(as_str(data.get("Negative")) or "").strip(),
            width=as_int(data.get("width")) or 0,
            height=as_int(data.get("height")) or 0,
            model=ModelSettings.build(
                name=as_str(data.get("base_model_name")) or None,
                hash=as_str(data.get("base_model_hash")) or None,
            ),
            sampling=SamplingSettings.build(
                sampler=as_str(data.get("sampler_name")) or None,
                scheduler=as_str(data.get("scheduler")) or None,
                steps=as_int(data.get("steps")),
                cfg=as_number(data.get("cfg")),
                seed=as_int(data.get("seed")),
                clip_skip=as_int(data.get("clip_skip")),
            ),
        )
    )
