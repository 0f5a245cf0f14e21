"""
A1111-style "parameters" text, shared by the WebUI family, SD.Next, Forge
variants and CivitAI's plain-text exports:

    positive prompt
    Negative prompt: negative prompt
    Steps: 20, Sampler: Euler a, CFG scale: 7, Seed: 1, Size: 512x768, ...
"""
from __future__ import annotations

import re
from typing import Optional

from sdmeta_shared import A1111_FAMILY, Result, SoftwareId, coerce_software

from ...utils import round2
from ..metadata.detect import forge_variant
from ..metadata.entries import EntryRecord, build_entry_record
from ..metadata.models import GenerationMetadata, HiresSettings, ModelSettings, SamplingSettings
from .base import first_text, unsupported

NEGATIVE_MARKER = "Negative prompt:"
STEPS_MARKER = "Steps:"

# A comma only separates settings when another "Key:" follows it
_SETTING_RE = re.compile(r"([A-Za-z][A-Za-z0-9 ]*?):\s*(.+?)(?=,\s*[A-Za-z][A-Za-z0-9 ]*?:|$)")
_SIZE_RE = re.compile(r"(\d+)x(\d+)")
_FLOAT_PREFIX_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")


def split_parameters(text: str) -> tuple[str, str, str]:
    """Split parameters text into (prompt, negative prompt, settings line)."""
    neg_idx = text.find(NEGATIVE_MARKER)
    steps_idx = text.find(STEPS_MARKER)

    if neg_idx == -1 and steps_idx == -1:
        return text.strip(), "", ""

    settings_start = 0
    if steps_idx != -1:
        settings_start = max(text.rfind("\n", 0, steps_idx + 1), 0)

    if neg_idx == -1:
        return text[:settings_start].strip(), "", text[settings_start:].strip()
    if steps_idx == -1:
        return text[:neg_idx].strip(), text[neg_idx + len(NEGATIVE_MARKER):].strip(), ""
    return (
        text[:neg_idx].strip(),
        text[neg_idx + len(NEGATIVE_MARKER):settings_start].strip(),
        text[settings_start:].strip(),
    )


def parse_settings(settings: str) -> dict[str, str]:
    """Tokenize "Key: value, Key: value" into an ordered dict."""
    out: dict[str, str] = {}
    if not settings:
        return out
    for match in _SETTING_RE.finditer(settings):
        out[match.group(1).strip()] = match.group(2).strip()
    return out


def parse_size(size: Optional[str]) -> tuple[int, int]:
    match = _SIZE_RE.search(size or "")
    if not match:
        return 0, 0
    return int(match.group(1)), int(match.group(2))


def parse_number(value: Optional[str]) -> int | float | None:
    """Leading-number parse ("7.5 (x)" -> 7.5); unparseable text gives None."""
    if value is None:
        return None
    match = _FLOAT_PREFIX_RE.match(value)
    if not match:
        return None
    num = float(match.group(0))
    return int(num) if num.is_integer() else num


def _parse_int(value: Optional[str]) -> Optional[int]:
    num = parse_number(value)
    return int(num) if num is not None else None


def detect_variant(version: Optional[str], app: Optional[str]) -> SoftwareId:
    if app == "SD.Next":
        return SoftwareId.SD_NEXT
    if not version:
        return SoftwareId.SD_WEBUI
    return forge_variant(version) or SoftwareId.SD_WEBUI


def _resolve_software(hint: Optional[SoftwareId], settings: dict[str, str]) -> SoftwareId:
    if hint is not None and (hint in A1111_FAMILY or hint == SoftwareId.CIVITAI):
        return hint
    return detect_variant(settings.get("Version"), settings.get("App"))


def _hires(settings: dict[str, str], width: int) -> Optional[HiresSettings]:
    scale = parse_number(settings.get("Hires upscale"))
    size = settings.get("Hires size")
    upscaler = settings.get("Hires upscaler")
    steps = _parse_int(settings.get("Hires steps"))
    denoise = parse_number(settings.get("Denoising strength"))

    if all(v is None for v in (scale, size, upscaler, steps, denoise)):
        return None
    if scale is None and size is not None:
        hires_width, _ = parse_size(size)
        if hires_width > 0 and width > 0:
            scale = round2(hires_width / width)
    return HiresSettings.build(scale=scale, upscaler=upscaler, steps=steps, denoise=denoise)


def parse_parameters_text(text: str, software: Optional[SoftwareId] = None) -> GenerationMetadata:
    prompt, negative, settings_text = split_parameters(text)
    settings = parse_settings(settings_text)
    width, height = parse_size(settings.get("Size", "0x0"))

    return GenerationMetadata(
        software=_resolve_software(software, settings),
        prompt=prompt,
        negative_prompt=negative,
        width=width,
        height=height,
        model=ModelSettings.build(
            name=settings.get("Model"),
            hash=settings.get("Model hash"),
            vae=settings.get("VAE"),
        ),
        sampling=SamplingSettings.build(
            sampler=settings.get("Sampler"),
            scheduler=settings.get("Schedule type"),
            steps=_parse_int(settings.get("Steps")),
            cfg=parse_number(settings.get("CFG scale", settings.get("CFG Scale"))),
            seed=_parse_int(settings.get("Seed")),
            clip_skip=_parse_int(settings.get("Clip skip")),
        ),
        hires=_hires(settings, width),
    )


def parse_a1111(entries, software: SoftwareId | str | None = None) -> Result[GenerationMetadata]:
    """
    Parse A1111-family text from ``parameters`` (PNG) or ``UserComment``/``Comment`` (JPEG/WebP).

    ``software`` is an optional caller hint (e.g. forge-classic, reforge, civitai)
    that wins over the Version/App decision table.
    """
    record: EntryRecord = build_entry_record(entries)
    text = first_text(record, "parameters", "UserComment", "Comment")
    if text is None:
        return unsupported("No parameters entry")
    return Result.Ok(parse_parameters_text(text, coerce_software(software)))
