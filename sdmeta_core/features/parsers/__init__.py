"""
Per-tool parsers and the ordered registry that dispatches between them.
"""
from __future__ import annotations

import logging
from functools import partial
from types import MappingProxyType
from typing import Callable, Mapping

from sdmeta_shared import ErrorCode, Result, SoftwareId, coerce_software, get_logger, log_structured

from ..metadata.detect import detect_software
from ..metadata.entries import build_entry_record
from ..metadata.models import GenerationMetadata
from .a1111 import parse_a1111
from .base import unsupported
from .civitai import parse_civitai
from .comfyui import parse_comfyui
from .easydiffusion import parse_easydiffusion
from .fooocus import parse_fooocus
from .hf_space import parse_hf_space
from .invokeai import parse_invokeai
from .novelai import parse_novelai
from .ruined_fooocus import parse_ruined_fooocus
from .stability_matrix import parse_stability_matrix
from .swarmui import parse_swarmui
from .tensorart import parse_tensorart

logger = get_logger(__name__)

Parser = Callable[..., Result[GenerationMetadata]]


def _parse_comfyui_or_a1111(entries) -> Result[GenerationMetadata]:
    # comfy-image-saver and friends write A1111 text from ComfyUI
    res = parse_comfyui(entries)
    if res.ok:
        return res
    logger.debug("ComfyUI graph parse failed (%s), retrying as A1111 text", res.code)
    return parse_a1111(entries)


PARSERS: Mapping[SoftwareId, Parser] = MappingProxyType(
    {
        SoftwareId.NOVELAI: parse_novelai,
        SoftwareId.COMFYUI: _parse_comfyui_or_a1111,
        SoftwareId.SWARMUI: parse_swarmui,
        SoftwareId.TENSORART: parse_tensorart,
        SoftwareId.STABILITY_MATRIX: parse_stability_matrix,
        SoftwareId.INVOKEAI: parse_invokeai,
        SoftwareId.FORGE: partial(parse_a1111, software=SoftwareId.FORGE),
        SoftwareId.FORGE_CLASSIC: partial(parse_a1111, software=SoftwareId.FORGE_CLASSIC),
        SoftwareId.FORGE_NEO: partial(parse_a1111, software=SoftwareId.FORGE_NEO),
        SoftwareId.REFORGE: partial(parse_a1111, software=SoftwareId.REFORGE),
        SoftwareId.EASY_REFORGE: partial(parse_a1111, software=SoftwareId.EASY_REFORGE),
        SoftwareId.SD_WEBUI: parse_a1111,
        SoftwareId.SD_NEXT: partial(parse_a1111, software=SoftwareId.SD_NEXT),
        SoftwareId.CIVITAI: parse_civitai,
        SoftwareId.HF_SPACE: parse_hf_space,
        SoftwareId.EASYDIFFUSION: parse_easydiffusion,
        SoftwareId.FOOOCUS: parse_fooocus,
        SoftwareId.RUINED_FOOOCUS: parse_ruined_fooocus,
    }
)

# Tried in order when detection finds nothing
FALLBACK_ORDER: tuple[SoftwareId, ...] = (
    SoftwareId.SD_WEBUI,
    SoftwareId.COMFYUI,
    SoftwareId.INVOKEAI,
    SoftwareId.SWARMUI,
    SoftwareId.TENSORART,
    SoftwareId.STABILITY_MATRIX,
    SoftwareId.NOVELAI,
)


def parse_entries(entries, software: SoftwareId | str | None = None) -> Result[GenerationMetadata]:
    """
    Detect the generation tool and run its parser.

    ``software`` skips detection. Undetected entries go through FALLBACK_ORDER:
    UNSUPPORTED_FORMAT moves on to the next parser, PARSE_ERROR stops the chain.
    """
    record = build_entry_record(entries)
    if not record:
        return unsupported("No metadata entries")

    sid = coerce_software(software) or detect_software(record)
    parser = PARSERS.get(sid) if sid is not None else None
    if parser is not None:
        return parser(record)

    for candidate in FALLBACK_ORDER:
        res = PARSERS[candidate](record)
        if res.ok or res.is_code(ErrorCode.PARSE_ERROR):
            return res
        log_structured(logger, logging.DEBUG, "Fallback parser declined", parser=candidate.value, code=res.code)
    return unsupported("No parser recognized the metadata")


__all__ = [
    "PARSERS",
    "FALLBACK_ORDER",
    "parse_entries",
    "parse_a1111",
    "parse_civitai",
    "parse_comfyui",
    "parse_easydiffusion",
    "parse_fooocus",
    "parse_hf_space",
    "parse_invokeai",
    "parse_novelai",
    "parse_ruined_fooocus",
    "parse_stability_matrix",
    "parse_swarmui",
    "parse_tensorart",
]
