"""
Easy Diffusion: one PNG entry per setting, or the same settings as a JSON
object in ``parameters``/``UserComment``. Keys come in snake_case (embedded
JSON) or as capitalized labels (PNG text entries).
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from sdmeta_shared import Result, SoftwareId

from ...utils import as_int, coerce_number
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata, ModelSettings, SamplingSettings
from .base import load_json_object, unsupported

ENTRY_MARKERS = ("use_stable_diffusion_model", "negative_prompt", "Negative Prompt")


def model_basename(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return path.replace("\\", "/").split("/")[-1]


class _Fields:
    def __init__(self, data: Mapping[str, Any]):
        self._data = data

    def _get(self, key_a: str, key_b: str) -> Any:
        value = self._data.get(key_a)
        return value if value is not None else self._data.get(key_b)

    def text(self, key_a: str, key_b: str) -> Optional[str]:
        value = self._get(key_a, key_b)
        return value if isinstance(value, str) else None

    def number(self, key_a: str, key_b: str):
        return coerce_number(self._get(key_a, key_b))

    def integer(self, key_a: str, key_b: str) -> Optional[int]:
        num = self.number(key_a, key_b)
        return as_int(num) if num is not None else None


def build_metadata(data: Mapping[str, Any]) -> GenerationMetadata:
    f = _Fields(data)
    return GenerationMetadata(
        software=SoftwareId.EASYDIFFUSION,
        prompt=(f.text("prompt", "Prompt") or "").strip(),
        negative_prompt=(f.text("negative_prompt", "Negative Prompt") or "").strip(),
        width=f.integer("width", "Width") or 0,
        height=f.integer("height", "Height") or 0,
        model=ModelSettings.build(
            name=model_basename(f.text("use_stable_diffusion_model", "Stable Diffusion model")),
            vae=f.text("use_vae_model", "VAE model"),
        ),
        sampling=SamplingSettings.build(
            sampler=f.text("sampler_name", "Sampler"),
            steps=f.integer("num_inference_steps", "Steps"),
            cfg=f.number("guidance_scale", "Guidance Scale"),
            seed=f.integer("seed", "Seed"),
            clip_skip=f.integer("clip_skip", "Clip Skip"),
            denoise=f.number("prompt_strength", "Prompt Strength"),
        ),
    )


def parse_easydiffusion(entries) -> Result[GenerationMetadata]:
    record = build_entry_record(entries)
    if any(record.get(key) for key in ENTRY_MARKERS):
        return Result.Ok(build_metadata(record))

    text = None
    for key in ("parameters", "UserComment"):
        candidate = record.get(key)
        if candidate and candidate.startswith("{"):
            text = candidate
            break
    if text is None:
        return unsupported("No Easy Diffusion entries")

    loaded = load_json_object(text, "Easy Diffusion metadata")
    if not loaded.ok:
        return loaded
    return Result.Ok(build_metadata(loaded.data or {}))
