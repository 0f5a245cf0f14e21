"""
NovelAI: ``Software`` = "NovelAI" and a ``Comment`` JSON with the generation
request. V4 requests carry structured captions with per-character prompts.
"""
from __future__ import annotations

from typing import Any, Optional

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, as_number, as_str
from ..metadata.entries import build_entry_record
from ..metadata.models import CharacterPrompt, GenerationMetadata, Point, SamplingSettings
from .base import get_dict, load_json_object, parse_error, unsupported

# Exif ImageDescription as NovelAI writes it starts with 4 NUL bytes
_DESCRIPTION_NUL_PREFIX = "\x00" * 4


def _caption(comment: dict[str, Any], key: str) -> dict[str, Any]:
    return get_dict(comment, key, "caption")


def _first_center(value: Any) -> Optional[Point]:
    if not isinstance(value, list) or not value or not isinstance(value[0], dict):
        return None
    x = as_number(value[0].get("x"))
    y = as_number(value[0].get("y"))
    if x is None or y is None:
        return None
    return Point(x=x, y=y)


def extract_character_prompts(comment: dict[str, Any]) -> Optional[tuple[CharacterPrompt, ...]]:
    captions = _caption(comment, "v4_prompt").get("char_captions")
    if not isinstance(captions, list) or not captions:
        return None
    out = []
    for item in captions:
        if not isinstance(item, dict):
            continue
        text = as_str(item.get("char_caption"))
        if not text:
            continue
        out.append(CharacterPrompt(prompt=text, center=_first_center(item.get("centers"))))
    return tuple(out)


def _description(record) -> Optional[str]:
    text = record.get("ImageDescription")
    if not text:
        return None
    if text.startswith(_DESCRIPTION_NUL_PREFIX):
        text = text[len(_DESCRIPTION_NUL_PREFIX):]
    return text or None


def parse_novelai(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    software = record.get("Software")
    if not software or not software.startswith("NovelAI"):
        return unsupported("Software is not NovelAI")

    comment_text = record.get("Comment")
    if not comment_text:
        return parse_error("Missing Comment entry")
    loaded = load_json_object(comment_text, "Comment entry")
    if not loaded.ok:
        return loaded
    comment = loaded.data or {}

    width = as_int(comment.get("width"))
    height = as_int(comment.get("height"))
    if width is None or height is None:
        return parse_error("Missing width or height in Comment")

    prompt = as_str(_caption(comment, "v4_prompt").get("base_caption"))
    if prompt is None:
        prompt = as_str(comment.get("prompt")) or ""
    negative = as_str(_caption(comment, "v4_negative_prompt").get("base_caption"))
    if negative is None:
        negative = as_str(comment.get("uc")) or ""

    # The JSON copy can carry broken UTF-8 on WebP; the Exif description is the reliable one
    description = _description(record)
    if description is not None:
        prompt = description

    characters = extract_character_prompts(comment)
    v4 = get_dict(comment, "v4_prompt")
    return Result.Ok(
        GenerationMetadata(
            software=SoftwareId.NOVELAI,
            prompt=prompt,
            negative_prompt=negative,
            width=width,
            height=height,
            sampling=SamplingSettings.build(
                steps=as_int(comment.get("steps")),
                cfg=as_number(comment.get("scale")),
                seed=as_int(comment.get("seed")),
                sampler=as_str(comment.get("sampler")),
                scheduler=as_str(comment.get("noise_schedule")),
            ),
            character_prompts=characters,
            use_coords=v4.get("use_coords") if characters is not None else None,
            use_order=v4.get("use_order") if characters is not None else None,
        )
    )
