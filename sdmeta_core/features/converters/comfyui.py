"""
ComfyUI-family converters: ComfyUI itself, SwarmUI and CivitAI Orchestration.
"""
from __future__ import annotations

from typing import Any, Sequence

from sdmeta_shared import ChunkEncodingStrategy, SegmentSource

from ..metadata.models import MetadataSegment, PngTextChunk
from ..metadata.parsing_utils import dump_json, parse_json, parse_json_object, stringify
from .base import (
    Converter,
    find_chunk,
    find_segment,
    json_or_text,
    kv_object_to_chunks,
    kv_png_to_segments,
    simple_chunk_converter,
    user_comment,
)
from .chunk_encoding import create_encoded_chunk

_ESCAPE = ChunkEncodingStrategy.TEXT_UNICODE_ESCAPE
_RAW = ChunkEncodingStrategy.TEXT_UTF8_RAW


# ---------------------------------------------------------------------------
# ComfyUI
# ---------------------------------------------------------------------------


def _extended_to_chunks(segments: Sequence[MetadataSegment]) -> list[PngTextChunk] | None:
    """save-image-extended: prompt in Exif Make, workflow in ImageDescription."""
    description = find_segment(segments, SegmentSource.EXIF_IMAGE_DESCRIPTION)
    make = find_segment(segments, SegmentSource.EXIF_MAKE)
    if description is None and make is None:
        return None
    return [
        *create_encoded_chunk("prompt", make.data if make else None, _ESCAPE),
        *create_encoded_chunk("workflow", description.data if description else None, _ESCAPE),
    ]


def comfyui_segments_to_png(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    extended = _extended_to_chunks(segments)
    if extended is not None:
        return extended

    segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    if segment is None:
        return []
    data = parse_json_object(segment.data)
    if data is None:
        return create_encoded_chunk("prompt", segment.data, _ESCAPE)
    return kv_object_to_chunks(data, _ESCAPE)


COMFYUI = Converter(to_segments=kv_png_to_segments, to_chunks=comfyui_segments_to_png)


# ---------------------------------------------------------------------------
# SwarmUI: parameters -> UserComment, backend graph -> Make
# ---------------------------------------------------------------------------


def swarmui_png_to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
    parameters = find_chunk(chunks, "parameters")
    if parameters is None:
        return []
    parsed = parse_json(parameters.text)
    segments = [user_comment(dump_json(parsed.data) if parsed.ok else parameters.text)]
    prompt = find_chunk(chunks, "prompt")
    if prompt is not None:
        segments.append(MetadataSegment(source=SegmentSource.EXIF_MAKE, data=prompt.text))
    return segments


def swarmui_segments_to_png(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    make = find_segment(segments, SegmentSource.EXIF_MAKE)
    comment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    return [
        *create_encoded_chunk("prompt", make.data if make else None, _ESCAPE),
        *create_encoded_chunk("parameters", comment.data if comment else None, _ESCAPE),
    ]


SWARMUI = Converter(to_segments=swarmui_png_to_segments, to_chunks=swarmui_segments_to_png)


# ---------------------------------------------------------------------------
# CivitAI: A1111 text, or Orchestration JSON with the graph merged at top level
# ---------------------------------------------------------------------------

# Keys that are separate PNG chunks rather than graph nodes
CIVITAI_CHUNK_KEYS = ("extra", "extraMetadata", "workflow")

_CIVITAI_A1111 = simple_chunk_converter("parameters", ChunkEncodingStrategy.DYNAMIC)


def civitai_png_to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
    parameters = find_chunk(chunks, "parameters")
    if parameters is not None and not parameters.text.lstrip().startswith("{"):
        return _CIVITAI_A1111.to_segments(chunks)

    data: dict[str, Any] = {}
    for chunk in chunks:
        if chunk.keyword == "prompt":
            graph = parse_json_object(chunk.text)
            if graph is not None:
                data.update(graph)
        elif chunk.keyword == "extraMetadata":
            data[chunk.keyword] = chunk.text
        else:
            data[chunk.keyword] = json_or_text(chunk.text)
    return [user_comment(dump_json(data))]


def civitai_segments_to_png(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    if segment is None:
        return []
    data = parse_json_object(segment.data) if segment.data.lstrip().startswith("{") else None
    if data is None:
        return _CIVITAI_A1111.to_chunks(segments)

    graph: dict[str, Any] = {}
    extra_chunks: list[PngTextChunk] = []
    for key, value in data.items():
        if key in CIVITAI_CHUNK_KEYS:
            extra_chunks.extend(create_encoded_chunk(key, stringify(value), _RAW))
        else:
            graph[key] = value
    prompt_chunks = create_encoded_chunk("prompt", dump_json(graph), _RAW) if graph else []
    return prompt_chunks + extra_chunks


CIVITAI = Converter(to_segments=civitai_png_to_segments, to_chunks=civitai_segments_to_png)
