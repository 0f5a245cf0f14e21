"""
ComfyUI prompt-graph resolver shared by every ComfyUI-family parser.

A graph maps node ids to ``{"class_type": ..., "inputs": {...}}``. An input is
either a literal or a ``[node_id, output_index]`` reference. Graphs come from
untrusted files: references may dangle, nodes may be malformed and cycles are
possible, so every helper here degrades to empty/None instead of raising.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from ... import config
from ..metadata.models import HiresSettings, ModelSettings, SamplingSettings, UpscaleSettings
from ...utils import as_int, as_number, as_str, round2

SAMPLER_TYPES = frozenset({"KSampler", "KSamplerAdvanced", "SamplerCustomAdvanced"})
LATENT_IMAGE_TYPES = frozenset({"EmptyLatentImage"})
LATENT_IMAGE_RGTHREE_TYPES = frozenset({"SDXL Empty Latent Image (rgthree)"})
CHECKPOINT_TYPES = frozenset({"CheckpointLoaderSimple", "CheckpointLoader"})
UNET_LOADER_TYPES = frozenset({"UNETLoader"})
UPSCALE_MODEL_TYPES = frozenset({"UpscaleModelLoader"})
IMAGE_SCALE_TYPES = frozenset({"ImageScale", "ImageScaleBy"})
LATENT_UPSCALE_TYPES = frozenset({"LatentUpscale", "LatentUpscaleBy"})
VAE_ENCODE_TYPES = frozenset({"VAEEncode", "VAEEncodeTiled"})
CLIP_SKIP_TYPES = frozenset({"CLIPSetLastLayer"})

_DIMENSIONS_RE = re.compile(r"^(\d+)\s*x\s*(\d+)")


@dataclass(frozen=True)
class ClassifiedNodes:
    """First node of each role found in a graph."""

    sampler: Optional[dict[str, Any]] = None
    latent_image: Optional[dict[str, Any]] = None
    latent_image_rgthree: Optional[dict[str, Any]] = None
    checkpoint: Optional[dict[str, Any]] = None
    unet_loader: Optional[dict[str, Any]] = None
    upscale_model: Optional[dict[str, Any]] = None
    image_scale: Optional[dict[str, Any]] = None
    latent_upscale: Optional[dict[str, Any]] = None
    vae_encode: Optional[dict[str, Any]] = None
    clip_skip: Optional[dict[str, Any]] = None


@dataclass(frozen=True)
class GraphFacts:
    """Everything the resolver can derive from one prompt graph."""

    prompt: str = ""
    negative_prompt: str = ""
    width: int = 0
    height: int = 0
    model: Optional[ModelSettings] = None
    sampling: Optional[SamplingSettings] = None
    hires: Optional[HiresSettings] = None
    upscale: Optional[UpscaleSettings] = None


def _node_type(node: Any) -> str:
    if not isinstance(node, dict):
        return ""
    ct = node.get("class_type")
    return ct if isinstance(ct, str) else ""


def _inputs(node: Any) -> dict[str, Any]:
    if not isinstance(node, dict):
        return {}
    ins = node.get("inputs")
    return ins if isinstance(ins, dict) else {}


def _iter_nodes(graph: Mapping[str, Any]):
    if not isinstance(graph, Mapping):
        return
    for node in graph.values():
        if isinstance(node, dict):
            yield node


def _node_id(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


def is_node_reference(value: Any) -> bool:
    """True for a ``[node_id, output_index]`` pair."""
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        return False
    target, index = value
    if isinstance(target, bool) or not isinstance(target, (str, int, float)):
        return False
    return as_number(index) is not None


def resolve_node(graph: Mapping[str, Any], ref: Any) -> Optional[dict[str, Any]]:
    """Target node of a reference; None for malformed or dangling references."""
    if not is_node_reference(ref) or not isinstance(graph, Mapping):
        return None
    node = graph.get(_node_id(ref[0]))
    return node if isinstance(node, dict) else None


def classify_nodes(graph: Mapping[str, Any]) -> ClassifiedNodes:
    """Single pass over the graph keeping the first node of each role."""
    found: dict[str, dict[str, Any]] = {}
    for node in _iter_nodes(graph):
        ct = _node_type(node)
        if "sampler" not in found and ct in SAMPLER_TYPES:
            found["sampler"] = node
        elif "latent_image" not in found and ct in LATENT_IMAGE_TYPES:
            found["latent_image"] = node
        elif "latent_image_rgthree" not in found and ct in LATENT_IMAGE_RGTHREE_TYPES:
            found["latent_image_rgthree"] = node
        elif "checkpoint" not in found and ct in CHECKPOINT_TYPES:
            found["checkpoint"] = node
        elif "unet_loader" not in found and ct in UNET_LOADER_TYPES:
            found["unet_loader"] = node
        elif "upscale_model" not in found and ct in UPSCALE_MODEL_TYPES:
            found["upscale_model"] = node
        elif "image_scale" not in found and ct in IMAGE_SCALE_TYPES:
            found["image_scale"] = node
        elif "latent_upscale" not in found and ct in LATENT_UPSCALE_TYPES:
            found["latent_upscale"] = node
        elif "vae_encode" not in found and ct in VAE_ENCODE_TYPES:
            found["vae_encode"] = node
        elif "clip_skip" not in found and ct in CLIP_SKIP_TYPES:
            found["clip_skip"] = node
    return ClassifiedNodes(**found)


def _first_present(ins: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = ins.get(key)
        if value is not None:
            return value
    return None


def _sdxl_text(ins: dict[str, Any]) -> str:
    g = as_str(ins.get("text_g")) or ""
    l = as_str(ins.get("text_l")) or ""  # noqa: E741
    if g == l or not g:
        return l
    if not l:
        return g
    return f"{g},\n{l}"


def extract_text(graph: Mapping[str, Any], node_id: Any, max_depth: Optional[int] = None) -> str:
    """
    Text carried by a node, following reference chains.

    Tries ``text``, ``prompt`` and ``Text`` in that order. The hop budget is the
    only cycle guard: dead ends and exhausted budgets both give "".
    """
    depth = config.TEXT_MAX_DEPTH if max_depth is None else max_depth
    if depth <= 0 or not isinstance(graph, Mapping):
        return ""
    node = graph.get(_node_id(node_id))
    if not isinstance(node, dict):
        return ""
    ins = _inputs(node)

    value = _first_present(ins, "text", "prompt", "Text")
    if isinstance(value, str):
        return value
    if is_node_reference(value):
        return extract_text(graph, value[0], depth - 1)
    if "text_g" in ins or "text_l" in ins:
        return _sdxl_text(ins)
    return ""


def _conditioning_source(graph: Mapping[str, Any], sampler: dict[str, Any]) -> dict[str, Any]:
    # SamplerCustomAdvanced keeps positive/negative on its guider node
    guider = resolve_node(graph, _inputs(sampler).get("guider"))
    return guider if guider is not None else sampler


def extract_prompt_texts(graph: Mapping[str, Any], sampler: Optional[dict[str, Any]]) -> tuple[str, str]:
    """(positive, negative) text traced from a sampler's conditioning inputs."""
    if sampler is None:
        return "", ""
    ins = _inputs(_conditioning_source(graph, sampler))
    positive = ins.get("positive")
    negative = ins.get("negative")
    return (
        extract_text(graph, positive[0]) if is_node_reference(positive) else "",
        extract_text(graph, negative[0]) if is_node_reference(negative) else "",
    )


def extract_dimensions(latent_image: Optional[dict[str, Any]], latent_image_rgthree: Optional[dict[str, Any]]) -> tuple[int, int]:
    """Width/height from EmptyLatentImage, else the rgthree "1024 x 1024 (square)" string."""
    if latent_image is not None:
        ins = _inputs(latent_image)
        width = as_int(ins.get("width")) or 0
        height = as_int(ins.get("height")) or 0
        if width > 0 and height > 0:
            return width, height

    if latent_image_rgthree is not None:
        dimensions = as_str(_inputs(latent_image_rgthree).get("dimensions"))
        if dimensions:
            match = _DIMENSIONS_RE.match(dimensions)
            if match:
                return int(match.group(1)), int(match.group(2))
    return 0, 0


def _denoise(value: Any) -> Optional[float]:
    # 1.0 is the txt2img default and carries no information
    num = as_number(value)
    return num if num is not None and num < 1 else None


def _advanced_sampling(graph: Mapping[str, Any], sampler: dict[str, Any]) -> Optional[SamplingSettings]:
    ins = _inputs(sampler)
    noise = _inputs(resolve_node(graph, ins.get("noise")))
    guider = _inputs(resolve_node(graph, ins.get("guider")))
    select = _inputs(resolve_node(graph, ins.get("sampler")))
    sigmas = _inputs(resolve_node(graph, ins.get("sigmas")))
    return SamplingSettings.build(
        seed=as_int(noise.get("noise_seed")),
        steps=as_int(sigmas.get("steps")),
        cfg=as_number(guider.get("cfg")),
        sampler=as_str(select.get("sampler_name")),
        scheduler=as_str(sigmas.get("scheduler")),
        denoise=_denoise(sigmas.get("denoise")),
    )


def extract_sampling(graph: Mapping[str, Any], sampler: Optional[dict[str, Any]]) -> Optional[SamplingSettings]:
    """
    Sampling settings of a sampler node.

    Direct samplers carry everything on their own inputs (the seed may still be
    a reference to a seed node). SamplerCustomAdvanced spreads the same facts
    over its noise/guider/sampler/sigmas inputs.
    """
    if sampler is None:
        return None
    if _node_type(sampler) == "SamplerCustomAdvanced":
        return _advanced_sampling(graph, sampler)

    ins = _inputs(sampler)
    seed = ins.get("seed")
    if is_node_reference(seed):
        seed = _inputs(resolve_node(graph, seed)).get("seed")
    return SamplingSettings.build(
        seed=as_int(seed),
        steps=as_int(ins.get("steps")),
        cfg=as_number(ins.get("cfg")),
        sampler=as_str(ins.get("sampler_name")),
        scheduler=as_str(ins.get("scheduler")),
        denoise=_denoise(ins.get("denoise")),
    )


def extract_model(checkpoint: Optional[dict[str, Any]], unet_loader: Optional[dict[str, Any]] = None) -> Optional[ModelSettings]:
    ckpt = _inputs(checkpoint).get("ckpt_name")
    if ckpt:
        return ModelSettings(name=str(ckpt))
    unet = _inputs(unet_loader).get("unet_name")
    if unet:
        return ModelSettings(name=str(unet))
    return None


def extract_clip_skip(node: Optional[dict[str, Any]]) -> Optional[int]:
    """CLIPSetLastLayer stores clip skip as a negative layer index (-2 means 2)."""
    layer = as_int(_inputs(node).get("stop_at_clip_layer"))
    if not layer:
        return None
    return abs(layer)


def calculate_scale(target_width: Any, base_width: Any) -> Optional[float]:
    """target/base rounded to two decimals; None when either side is not positive."""
    target = as_number(target_width)
    base = as_number(base_width)
    if target is None or base is None or target <= 0 or base <= 0:
        return None
    return round2(target / base)


def _latent_source(graph: Mapping[str, Any], sampler: dict[str, Any]) -> Optional[dict[str, Any]]:
    return resolve_node(graph, _inputs(sampler).get("latent_image"))


def _upscaled_pixels_node(graph: Mapping[str, Any], vae_encode: dict[str, Any]) -> Optional[dict[str, Any]]:
    node = resolve_node(graph, _inputs(vae_encode).get("pixels"))
    if node is not None and _node_type(node) in IMAGE_SCALE_TYPES:
        return node
    return None


def is_hires_sampler(graph: Mapping[str, Any], sampler: dict[str, Any]) -> bool:
    """
    Structural hires-fix test on a sampler's latent input.

    Hires iff latent_image comes from a latent-upscale node, or from a VAE
    encode whose pixels come from an image-scale node. Denoise is irrelevant.
    """
    source = _latent_source(graph, sampler)
    if source is None:
        return False
    ct = _node_type(source)
    if ct in LATENT_UPSCALE_TYPES:
        return True
    if ct not in VAE_ENCODE_TYPES:
        return False
    return _upscaled_pixels_node(graph, source) is not None


def find_hires_sampler(graph: Mapping[str, Any]) -> Optional[dict[str, Any]]:
    for node in _iter_nodes(graph):
        if _node_type(node) in SAMPLER_TYPES and is_hires_sampler(graph, node):
            return node
    return None


def _find_base_sampler(graph: Mapping[str, Any], fallback: Optional[dict[str, Any]], hires: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    if hires is None or fallback is not hires:
        return fallback
    for node in _iter_nodes(graph):
        if node is not hires and _node_type(node) in SAMPLER_TYPES:
            return node
    return fallback


def _scale_from_node(node: Optional[dict[str, Any]], base_width: int) -> Optional[float]:
    if node is None:
        return None
    ins = _inputs(node)
    scale_by = as_number(ins.get("scale_by"))
    if scale_by is not None and scale_by > 0:
        return round2(scale_by)
    return calculate_scale(ins.get("width"), base_width)


def _upscaler_name(node: Optional[dict[str, Any]]) -> Optional[str]:
    return as_str(_inputs(node).get("model_name"))


def extract_hires(graph: Mapping[str, Any], classified: ClassifiedNodes, base_width: int) -> Optional[HiresSettings]:
    """Hires settings from the structurally detected hires sampler, if any."""
    hires_sampler = find_hires_sampler(graph)
    if hires_sampler is None:
        return None
    source = _latent_source(graph, hires_sampler)
    if _node_type(source) in LATENT_UPSCALE_TYPES:
        scale_node = source
        upscaler = as_str(_inputs(source).get("upscale_method"))
    else:
        scale_node = _upscaled_pixels_node(graph, source) if source is not None else None
        upscaler = _upscaler_name(classified.upscale_model) or as_str(_inputs(scale_node).get("upscale_method"))
    # SamplerCustomAdvanced keeps steps and denoise on its sigmas node
    if _node_type(hires_sampler) == "SamplerCustomAdvanced":
        ins = _inputs(resolve_node(graph, _inputs(hires_sampler).get("sigmas")))
    else:
        ins = _inputs(hires_sampler)
    return HiresSettings.build(
        scale=_scale_from_node(scale_node, base_width),
        upscaler=upscaler,
        steps=as_int(ins.get("steps")),
        denoise=as_number(ins.get("denoise")),
    )


def extract_upscale(classified: ClassifiedNodes, base_width: int) -> Optional[UpscaleSettings]:
    """Post-hoc model upscale: an upscale model with no second sampling pass."""
    if classified.upscale_model is None:
        return None
    return UpscaleSettings.build(
        upscaler=_upscaler_name(classified.upscale_model),
        scale=_scale_from_node(classified.image_scale, base_width),
    )


def _with_clip_skip(sampling: Optional[SamplingSettings], clip_skip: Optional[int]) -> Optional[SamplingSettings]:
    if clip_skip is None:
        return sampling
    if sampling is None:
        return SamplingSettings(clip_skip=clip_skip)
    return SamplingSettings.build(
        sampler=sampling.sampler,
        scheduler=sampling.scheduler,
        steps=sampling.steps,
        cfg=sampling.cfg,
        seed=sampling.seed,
        clip_skip=clip_skip,
        denoise=sampling.denoise,
    )


def resolve_graph(graph: Mapping[str, Any]) -> GraphFacts:
    """Derive prompt, size, model, sampling, hires and upscale facts from a prompt graph."""
    classified = classify_nodes(graph)
    hires_sampler = find_hires_sampler(graph)
    base_sampler = _find_base_sampler(graph, classified.sampler, hires_sampler)

    prompt, negative = extract_prompt_texts(graph, base_sampler)
    width, height = extract_dimensions(classified.latent_image, classified.latent_image_rgthree)
    sampling = _with_clip_skip(extract_sampling(graph, base_sampler), extract_clip_skip(classified.clip_skip))

    hires = extract_hires(graph, classified, width)
    upscale = None if hires is not None else extract_upscale(classified, width)

    return GraphFacts(
        prompt=prompt,
        negative_prompt=negative,
        width=width,
        height=height,
        model=extract_model(classified.checkpoint, classified.unet_loader),
        sampling=sampling,
        hires=hires,
        upscale=upscale,
    )
