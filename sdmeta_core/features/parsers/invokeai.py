"""InvokeAI: ``invokeai_metadata`` JSON entry."""
from __future__ import annotations

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_number, as_str
from ..metadata.entries import EntryRecord, build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings
from ..metadata.parsing_utils import dump_json, parse_json_object
from .base import get_dict, load_json_object, unsupported

METADATA_KEY = "invokeai_metadata"


def _find_metadata_text(record: EntryRecord) -> str | None:
    if METADATA_KEY in record:
        return record[METADATA_KEY]
    # JPEG/WebP: the converter nests every chunk inside one Comment/UserComment object
    for key in ("UserComment", "Comment"):
        outer = parse_json_object(record.get(key))
        if outer is None or METADATA_KEY not in outer:
            continue
        inner = outer[METADATA_KEY]
        return inner if isinstance(inner, str) else dump_json(inner)
    return None


def parse_invokeai(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    text = _find_metadata_text(record)
    if text is None:
        return unsupported("No invokeai_metadata entry")

    loaded = load_json_object(text, "invokeai_metadata entry")
    if not loaded.ok:
        return loaded
    data = loaded.data or {}
    model = get_dict(data, "model")

    return Result.Ok(
        GenerationMetadata(
            software=SoftwareId.INVOKEAI,
            prompt=as_str(data.get("positive_prompt")) or "",
            negative_prompt=as_str(data.get("negative_prompt")) or "",
            width=as_int(data.get("width")) or 0,
            height=as_int(data.get("height")) or 0,
            model=ModelSettings.build(
                name=as_str(model.get("name")) or None,
                hash=as_str(model.get("hash")) or None,
            ),
            # InvokeAI calls its sampler a scheduler
            sampling=SamplingSettings.build(
                seed=as_int(data.get("seed")),
                steps=as_int(data.get("steps")),
                cfg=as_number(data.get("cfg_scale")),
                sampler=as_str(data.get("scheduler")),
            ),
        )
    )
