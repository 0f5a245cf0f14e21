"""
Immutable records exchanged between readers, parsers and converters.

Optional settings objects follow one rule: they exist iff at least one of
their fields is known. Use the ``build`` constructors, which return None for an
all-empty object, instead of instantiating them directly from parser code.
"""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Literal, Optional

from sdmeta_shared.types import ImageFormat, ParseStatus, SegmentSource, SoftwareId

ChunkType = Literal["tEXt", "iTXt"]


def _build(cls, values: dict[str, Any]):
    if all(v is None for v in values.values()):
        return None
    return cls(**values)


@dataclass(frozen=True)
class ModelSettings:
    name: Optional[str] = None
    hash: Optional[str] = None
    vae: Optional[str] = None

    @classmethod
    def build(cls, name: Optional[str] = None, hash: Optional[str] = None, vae: Optional[str] = None) -> Optional["ModelSettings"]:
        return _build(cls, {"name": name, "hash": hash, "vae": vae})


@dataclass(frozen=True)
class SamplingSettings:
    sampler: Optional[str] = None
    scheduler: Optional[str] = None
    steps: Optional[int] = None
    cfg: Optional[float] = None
    seed: Optional[int] = None
    clip_skip: Optional[int] = None
    denoise: Optional[float] = None

    @classmethod
    def build(
        cls,
        sampler: Optional[str] = None,
        scheduler: Optional[str] = None,
        steps: Optional[int] = None,
        cfg: Optional[float] = None,
        seed: Optional[int] = None,
        clip_skip: Optional[int] = None,
        denoise: Optional[float] = None,
    ) -> Optional["SamplingSettings"]:
        return _build(
            cls,
            {
                "sampler": sampler,
                "scheduler": scheduler,
                "steps": steps,
                "cfg": cfg,
                "seed": seed,
                "clip_skip": clip_skip,
                "denoise": denoise,
            },
        )


@dataclass(frozen=True)
class HiresSettings:
    """In-pipeline second denoising pass (hires fix)."""

    scale: Optional[float] = None
    upscaler: Optional[str] = None
    steps: Optional[int] = None
    denoise: Optional[float] = None

    @classmethod
    def build(
        cls,
        scale: Optional[float] = None,
        upscaler: Optional[str] = None,
        steps: Optional[int] = None,
        denoise: Optional[float] = None,
    ) -> Optional["HiresSettings"]:
        return _build(cls, {"scale": scale, "upscaler": upscaler, "steps": steps, "denoise": denoise})


@dataclass(frozen=True)
class UpscaleSettings:
    """Post-hoc resolution increase without a second denoising pass."""

    upscaler: Optional[str] = None
    scale: Optional[float] = None

    @classmethod
    def build(cls, upscaler: Optional[str] = None, scale: Optional[float] = None) -> Optional["UpscaleSettings"]:
        return _build(cls, {"upscaler": upscaler, "scale": scale})


@dataclass(frozen=True)
class Point:
    x: float
    y: float


@dataclass(frozen=True)
class CharacterPrompt:
    prompt: str
    center: Optional[Point] = None


@dataclass(frozen=True)
class GenerationMetadata:
    software: SoftwareId
    prompt: str = ""
    negative_prompt: str = ""
    width: int = 0
    height: int = 0
    model: Optional[ModelSettings] = None
    sampling: Optional[SamplingSettings] = None
    hires: Optional[HiresSettings] = None
    upscale: Optional[UpscaleSettings] = None
    character_prompts: Optional[tuple[CharacterPrompt, ...]] = None
    use_coords: Optional[bool] = None
    use_order: Optional[bool] = None
    # ComfyUI-family prompt graph and UI workflow, kept for round trips
    nodes: Optional[dict[str, Any]] = field(default=None, compare=False)
    workflow: Optional[Any] = field(default=None, compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Plain dict view with unset optionals dropped."""
        out: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.name == "software":
                out[f.name] = value.value
            elif f.name == "character_prompts":
                out[f.name] = [asdict(cp) for cp in value]
            elif f.name in ("model", "sampling", "hires", "upscale"):
                out[f.name] = {k: v for k, v in asdict(value).items() if v is not None}
            else:
                out[f.name] = value
        return out


@dataclass(frozen=True)
class PngTextChunk:
    """tEXt (Latin-1) or iTXt (UTF-8) chunk; the iTXt-only fields stay at defaults for tEXt."""

    type: ChunkType
    keyword: str
    text: str
    compression_flag: int = 0
    compression_method: int = 0
    language_tag: str = ""
    translated_keyword: str = ""

    @classmethod
    def text_chunk(cls, keyword: str, text: str) -> "PngTextChunk":
        return cls(type="tEXt", keyword=keyword, text=text)

    @classmethod
    def itxt_chunk(cls, keyword: str, text: str) -> "PngTextChunk":
        return cls(type="iTXt", keyword=keyword, text=text)


@dataclass(frozen=True)
class MetadataSegment:
    source: SegmentSource
    data: str
    # "Workflow"/"Prompt" label some savers put before ImageDescription/Make text
    prefix: Optional[str] = None


@dataclass(frozen=True)
class RawMetadata:
    format: ImageFormat
    chunks: tuple[PngTextChunk, ...] = ()
    segments: tuple[MetadataSegment, ...] = ()

    @classmethod
    def png(cls, chunks) -> "RawMetadata":
        return cls(format="png", chunks=tuple(chunks))

    @classmethod
    def of_segments(cls, fmt: ImageFormat, segments) -> "RawMetadata":
        return cls(format=fmt, segments=tuple(segments))

    def is_empty(self) -> bool:
        return not (self.chunks if self.format == "png" else self.segments)


@dataclass(frozen=True)
class ParseResult:
    status: ParseStatus
    metadata: Optional[GenerationMetadata] = None
    raw: Optional[RawMetadata] = None
    message: str = ""

    @classmethod
    def empty(cls) -> "ParseResult":
        return cls(status="empty")

    @classmethod
    def invalid(cls, message: str) -> "ParseResult":
        return cls(status="invalid", message=message)

    @classmethod
    def unrecognized(cls, raw: RawMetadata) -> "ParseResult":
        return cls(status="unrecognized", raw=raw)

    @classmethod
    def success(cls, metadata: GenerationMetadata, raw: RawMetadata) -> "ParseResult":
        return cls(status="success", metadata=metadata, raw=raw)
