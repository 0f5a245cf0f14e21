"""
ComfyUI prompt-graph parser.

PNG files carry the graph in a ``prompt`` entry (plus ``workflow``). JPEG/WebP
savers put it in Comment/UserComment/Description/Make, sometimes wrapped as
``{"prompt": {...}, "workflow": {...}}``, and save-image-extended labels its
Exif fields with "Prompt:"/"Workflow:" prefixes.
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, Optional

from sdmeta_shared import Result, SoftwareId, coerce_software, get_logger

from ..geninfo.graph import resolve_graph
from ..metadata.entries import EntryRecord, build_entry_record
from ..metadata.models import GenerationMetadata
from ..metadata.parsing_utils import dump_json, parse_json, parse_json_object, strip_trailing_nul
from .base import parse_error, unsupported
from .civitai import apply_extra_metadata, extract_extra_metadata

logger = get_logger(__name__)

PROMPT_CANDIDATE_KEYS = ("Comment", "UserComment", "Description", "ImageDescription", "Make", "Prompt", "Workflow")


def _has_class_type(value: Any) -> bool:
    if not isinstance(value, dict):
        return False
    return any(isinstance(node, dict) and "class_type" in node for node in value.values())


def find_prompt_text(record: EntryRecord) -> tuple[Optional[str], Any]:
    """
    Locate the prompt-graph JSON text and any workflow riding next to it.

    Returns (graph_text, workflow); graph_text is None when no candidate looks
    like a ComfyUI graph.
    """
    prompt = record.get("prompt")
    if prompt:
        return strip_trailing_nul(prompt), None

    for key in PROMPT_CANDIDATE_KEYS:
        candidate = record.get(key)
        if not candidate or not candidate.startswith("{"):
            continue
        cleaned = strip_trailing_nul(candidate)
        parsed = parse_json_object(cleaned)
        if parsed is None:
            continue
        if isinstance(parsed.get("prompt"), dict):
            return dump_json(parsed["prompt"]), parsed.get("workflow")
        if _has_class_type(parsed):
            return cleaned, None
    return None, None


def _load_workflow(record: EntryRecord, found: Any) -> Any:
    if found is not None:
        return found
    for key in ("workflow", "Workflow"):
        parsed = parse_json(strip_trailing_nul(record.get(key) or ""))
        if parsed.ok:
            return parsed.data
    return None


def build_from_graph(graph: dict[str, Any], software: SoftwareId) -> GenerationMetadata:
    facts = resolve_graph(graph)
    return GenerationMetadata(
        software=software,
        prompt=facts.prompt,
        negative_prompt=facts.negative_prompt,
        width=facts.width,
        height=facts.height,
        model=facts.model,
        sampling=facts.sampling,
        hires=facts.hires,
        upscale=facts.upscale,
        nodes=graph,
    )


def parse_comfyui(entries, software: SoftwareId | str | None = None) -> Result[GenerationMetadata]:
    """Parse a ComfyUI prompt graph; CivitAI extraMetadata fills whatever the graph lacks."""
    record = build_entry_record(entries)
    text, wrapped_workflow = find_prompt_text(record)
    if text is None:
        return unsupported("No ComfyUI prompt graph")

    parsed = parse_json(text)
    if not parsed.ok:
        return parse_error("Invalid JSON in prompt entry")
    graph = parsed.data
    if not _has_class_type(graph):
        return unsupported("Prompt entry is not a ComfyUI graph")

    hint = coerce_software(software)
    metadata = build_from_graph(graph, hint if hint == SoftwareId.CIVITAI else SoftwareId.COMFYUI)
    metadata = apply_extra_metadata(metadata, extract_extra_metadata(graph, record))

    workflow = _load_workflow(record, wrapped_workflow)
    if workflow is not None:
        metadata = replace(metadata, workflow=workflow)
    logger.debug("ComfyUI graph resolved: %d nodes", len(graph))
    return Result.Ok(metadata)
