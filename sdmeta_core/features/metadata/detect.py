"""
Software detection over normalized metadata entries.

Two ordered tiers: keyword presence first, then content analysis. Many tools'
export markers are supersets of one another, so the order of every check below
is load-bearing and pinned by tests.
"""
from __future__ import annotations

import re
from typing import Any, Optional

from sdmeta_shared import SoftwareId, get_logger

from .entries import EntryRecord, build_entry_record
from .parsing_utils import looks_like_json_object, parse_json_object

logger = get_logger(__name__)

_VERSION_RE = re.compile(r"Version:\s*([^\s,]+)")
_FORGE_VERSION_RE = re.compile(r"^f\d")

_NOVELAI_JSON_MARKERS = (
    '"v4_prompt"',
    '"noise_schedule"',
    '"uncond_scale"',
    '"Software":"NovelAI"',
    '\\"noise_schedule\\"',
    '\\"v4_prompt\\"',
)


def detect_software(entries: Any) -> Optional[SoftwareId]:
    """
    Identify the generation tool that wrote the entries.

    Pure and total: returns None for empty or unrecognized input, never raises.
    """
    record = build_entry_record(entries)
    if not record:
        return None
    found = _detect_from_keywords(record)
    tier = "keyword"
    if found is None:
        found = _detect_from_content(record)
        tier = "content"
    if found is not None:
        logger.debug("Detected %s (%s tier)", found.value, tier)
    return found


# ---------------------------------------------------------------------------
# Tier A: keyword presence
# ---------------------------------------------------------------------------


def _detect_from_keywords(record: EntryRecord) -> Optional[SoftwareId]:
    if record.get("Software") == "NovelAI":
        return SoftwareId.NOVELAI
    if "invokeai_metadata" in record:
        return SoftwareId.INVOKEAI
    if "generation_data" in record:
        return SoftwareId.TENSORART
    if "smproj" in record:
        return SoftwareId.STABILITY_MATRIX
    if "fooocus_scheme" in record:
        return SoftwareId.FOOOCUS
    # A lone negative_prompt is too generic; only the model key identifies Easy Diffusion
    if "use_stable_diffusion_model" in record:
        return SoftwareId.EASYDIFFUSION

    # SwarmUI also writes a ComfyUI-shaped prompt entry, so this must precede any ComfyUI check
    parameters = record.get("parameters")
    if isinstance(parameters, str) and "sui_image_params" in parameters:
        return SoftwareId.SWARMUI

    for key in ("Comment", "UserComment"):
        found = _probe_json_comment(record.get(key))
        if found is not None:
            return found
    return None


def _is_json_carrier(value: Any) -> bool:
    if isinstance(value, (dict, list)):
        return True
    return looks_like_json_object(value)


def _probe_json_comment(comment: Any) -> Optional[SoftwareId]:
    if not looks_like_json_object(comment):
        return None
    parsed = parse_json_object(comment)
    if parsed is None:
        return None

    if "invokeai_metadata" in parsed:
        return SoftwareId.INVOKEAI
    if "prompt" in parsed and "workflow" in parsed:
        if _is_json_carrier(parsed["prompt"]) or _is_json_carrier(parsed["workflow"]):
            return SoftwareId.COMFYUI
    if "sui_image_params" in parsed:
        return SoftwareId.SWARMUI
    if "prompt" in parsed and "parameters" in parsed:
        params = str(parsed.get("parameters") or "")
        if "sui_image_params" in params or "swarm_version" in params:
            return SoftwareId.SWARMUI
    return None


# ---------------------------------------------------------------------------
# Tier B: content analysis
# ---------------------------------------------------------------------------


def _detect_from_content(record: EntryRecord) -> Optional[SoftwareId]:
    if "workflow" in record:
        return SoftwareId.COMFYUI

    prompt = record.get("prompt")
    if isinstance(prompt, str) and prompt.startswith("{"):
        if "sui_image_params" in prompt:
            return SoftwareId.SWARMUI
        if "class_type" in prompt:
            return SoftwareId.COMFYUI

    text = record.get("parameters") or record.get("Comment") or record.get("UserComment") or ""
    if not text:
        return None
    if text.startswith("{"):
        return _detect_from_json_text(text)
    return _detect_from_plain_text(text)


def _detect_from_json_text(text: str) -> Optional[SoftwareId]:
    # Unique field names first
    if "sui_image_params" in text:
        return SoftwareId.SWARMUI
    if '"software":"RuinedFooocus"' in text or '"software": "RuinedFooocus"' in text:
        return SoftwareId.RUINED_FOOOCUS
    if '"use_stable_diffusion_model"' in text:
        return SoftwareId.EASYDIFFUSION
    if '"fooocus_scheme"' in text:
        return SoftwareId.FOOOCUS
    if "civitai:" in text or '"resource-stack"' in text:
        return SoftwareId.CIVITAI

    # Multi-field combinations
    if any(marker in text for marker in _NOVELAI_JSON_MARKERS):
        return SoftwareId.NOVELAI
    if '"Model"' in text and '"resolution"' in text:
        return SoftwareId.HF_SPACE
    if '"prompt"' in text and '"base_model"' in text:
        return SoftwareId.FOOOCUS

    # Generic graph-ish JSON
    if '"prompt"' in text or '"nodes"' in text:
        return SoftwareId.COMFYUI
    return None


def forge_variant(version: str) -> Optional[SoftwareId]:
    """Forge fork named by an A1111 `Version:` value, or None."""
    if version.startswith("neo"):
        return SoftwareId.FORGE_NEO
    if version == "classic":
        return SoftwareId.FORGE_CLASSIC
    if _FORGE_VERSION_RE.match(version):
        return SoftwareId.FORGE
    return None


def _software_from_version(version: str) -> Optional[SoftwareId]:
    forge = forge_variant(version)
    if forge is not None:
        return forge
    if version.startswith("ComfyUI"):
        return SoftwareId.COMFYUI
    if version.startswith("Fooocus"):
        return SoftwareId.FOOOCUS
    return None


def _detect_from_plain_text(text: str) -> Optional[SoftwareId]:
    if "sui_image_params" in text or "swarm_version" in text:
        return SoftwareId.SWARMUI

    match = _VERSION_RE.search(text)
    if match:
        found = _software_from_version(match.group(1))
        if found is not None:
            return found

    if "App: SD.Next" in text or "App:SD.Next" in text:
        return SoftwareId.SD_NEXT
    if "Civitai resources:" in text:
        return SoftwareId.CIVITAI
    if "Steps:" in text and "Sampler:" in text:
        return SoftwareId.SD_WEBUI
    return None
