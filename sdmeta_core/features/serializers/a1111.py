"""
A1111 WebUI text rendering of GenerationMetadata.

Output mirrors what the WebUI writes into its ``parameters`` chunk, so any
tool's metadata can be pasted into WebUI's PNG Info tab.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from ..metadata.models import CharacterPrompt, GenerationMetadata


def normalize_line_endings(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _fmt(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _character_section(prompts: tuple[CharacterPrompt, ...]) -> str:
    lines = []
    for index, cp in enumerate(prompts, start=1):
        coords = f" [{_fmt(cp.center.x)}, {_fmt(cp.center.y)}]" if cp.center else ""
        lines.append(f"# Character {index}{coords}:")
        lines.append(normalize_line_endings(cp.prompt))
    return "\n".join(lines)


def build_settings_line(metadata: GenerationMetadata, extras: Optional[Mapping[str, Any]] = None) -> str:
    """
    "Key: value" pairs in WebUI order; extras override known keys in place or append.
    """
    sampling = metadata.sampling
    model = metadata.model
    # Post-hoc upscale is reported through the hires fields when no hires pass exists
    hires = metadata.hires or metadata.upscale
    denoise = getattr(hires, "denoise", None)
    if denoise is None and sampling is not None:
        denoise = sampling.denoise

    fields: dict[str, Any] = {
        "Steps": sampling.steps if sampling else None,
        "Sampler": sampling.sampler if sampling else None,
        "Schedule type": sampling.scheduler if sampling else None,
        "CFG scale": sampling.cfg if sampling else None,
        "Seed": sampling.seed if sampling else None,
        "Size": f"{metadata.width}x{metadata.height}" if metadata.width > 0 and metadata.height > 0 else None,
        "Model hash": model.hash if model else None,
        "Model": model.name if model else None,
        "Clip skip": sampling.clip_skip if sampling else None,
        "Denoising strength": denoise,
        "Hires upscale": getattr(hires, "scale", None),
        "Hires steps": getattr(hires, "steps", None),
        "Hires upscaler": getattr(hires, "upscaler", None),
    }
    if extras:
        fields.update(extras)
    return ", ".join(f"{key}: {_fmt(value)}" for key, value in fields.items() if value is not None)


def format_as_webui(metadata: GenerationMetadata, extras: Optional[Mapping[str, Any]] = None) -> str:
    parts: list[str] = [normalize_line_endings(metadata.prompt)]
    if metadata.character_prompts:
        parts.append(_character_section(metadata.character_prompts))
    if metadata.negative_prompt:
        parts.append(f"Negative prompt: {normalize_line_endings(metadata.negative_prompt)}")
    settings = build_settings_line(metadata, extras)
    if settings:
        parts.append(settings)
    return "\n".join(parts)
