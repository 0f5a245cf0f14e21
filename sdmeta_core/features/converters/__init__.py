"""
Format conversion between PNG text chunks and JPEG/WebP segments.

The per-tool table decides how chunks are folded into segments and how they
are rebuilt, so a PNG -> JPEG -> PNG trip gives back what the tool wrote.
"""
from __future__ import annotations

from types import MappingProxyType
from typing import Mapping, Sequence

from sdmeta_shared import ChunkEncodingStrategy, ErrorCode, ImageFormat, Result, SegmentSource, SoftwareId, get_logger

from ..metadata.models import MetadataSegment, ParseResult, PngTextChunk, RawMetadata
from ..metadata.parsing_utils import parse_json_object
from .base import (
    Converter,
    find_chunk,
    find_segment,
    kv_converter,
    kv_object_to_chunks,
    kv_png_to_segments,
    simple_chunk_converter,
)
from .blind import BLIND, EASYDIFFUSION
from .chunk_encoding import BLIND_KEY, get_encoding
from .comfyui import CIVITAI, COMFYUI, SWARMUI
from .novelai import NOVELAI

logger = get_logger(__name__)

SUPPORTED_FORMATS: frozenset[str] = frozenset({"png", "jpeg", "webp"})

_DYNAMIC = ChunkEncodingStrategy.DYNAMIC


def _a1111(software: SoftwareId) -> Converter:
    return simple_chunk_converter("parameters", get_encoding(software))


# Fooocus writes either a Comment chunk or parameters + fooocus_scheme
_FOOOCUS_COMMENT = simple_chunk_converter("Comment", _DYNAMIC)


def _fooocus_to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
    if find_chunk(chunks, "Comment") is not None or not chunks:
        return _FOOOCUS_COMMENT.to_segments(chunks)
    return kv_png_to_segments(chunks)


def _fooocus_to_chunks(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    data = parse_json_object(segment.data) if segment is not None else None
    if data is not None and "fooocus_scheme" in data:
        return kv_object_to_chunks(data, _DYNAMIC)
    return _FOOOCUS_COMMENT.to_chunks(segments)


CONVERTERS: Mapping[str, Converter] = MappingProxyType(
    {
        SoftwareId.SD_WEBUI.value: _a1111(SoftwareId.SD_WEBUI),
        SoftwareId.SD_NEXT.value: _a1111(SoftwareId.SD_NEXT),
        SoftwareId.FORGE.value: _a1111(SoftwareId.FORGE),
        SoftwareId.FORGE_CLASSIC.value: _a1111(SoftwareId.FORGE_CLASSIC),
        SoftwareId.FORGE_NEO.value: _a1111(SoftwareId.FORGE_NEO),
        SoftwareId.REFORGE.value: _a1111(SoftwareId.REFORGE),
        SoftwareId.EASY_REFORGE.value: _a1111(SoftwareId.EASY_REFORGE),
        SoftwareId.HF_SPACE.value: simple_chunk_converter("parameters", _DYNAMIC),
        SoftwareId.RUINED_FOOOCUS.value: simple_chunk_converter("parameters", _DYNAMIC),
        SoftwareId.FOOOCUS.value: Converter(to_segments=_fooocus_to_segments, to_chunks=_fooocus_to_chunks),
        SoftwareId.COMFYUI.value: COMFYUI,
        SoftwareId.SWARMUI.value: SWARMUI,
        SoftwareId.CIVITAI.value: CIVITAI,
        SoftwareId.INVOKEAI.value: kv_converter(get_encoding(SoftwareId.INVOKEAI)),
        SoftwareId.STABILITY_MATRIX.value: kv_converter(get_encoding(SoftwareId.STABILITY_MATRIX)),
        SoftwareId.TENSORART.value: kv_converter(get_encoding(SoftwareId.TENSORART)),
        SoftwareId.EASYDIFFUSION.value: EASYDIFFUSION,
        SoftwareId.NOVELAI.value: NOVELAI,
        BLIND_KEY: BLIND,
    }
)


def convert_metadata(parse_result: ParseResult, target_format: ImageFormat) -> Result[RawMetadata]:
    """
    Convert the raw metadata of a parse result to another container format.

    Same-format requests return the raw input untouched; JPEG <-> WebP copies
    segments. Everything else goes through the converter of the detected tool,
    or the blind converter when the metadata was not recognized.
    """
    if target_format not in SUPPORTED_FORMATS:
        return Result.Err(ErrorCode.INVALID_INPUT, f"Unsupported target format: {target_format}")
    if parse_result.status == "empty":
        return Result.Err(ErrorCode.MISSING_RAW_DATA, "No metadata to convert")
    if parse_result.status == "invalid" or parse_result.raw is None:
        return Result.Err(ErrorCode.INVALID_PARSE_RESULT, "Parse result carries no raw metadata", status=parse_result.status)

    raw = parse_result.raw
    if raw.format == target_format:
        return Result.Ok(raw)
    if raw.format != "png" and target_format != "png":
        return Result.Ok(RawMetadata.of_segments(target_format, raw.segments))

    if parse_result.status == "success" and parse_result.metadata is not None:
        key = parse_result.metadata.software.value
    else:
        key = BLIND_KEY
    converter = CONVERTERS.get(key)
    if converter is None:
        return Result.Err(ErrorCode.UNSUPPORTED_SOFTWARE, f"No converter for {key}", software=key)

    logger.debug("Converting %s metadata %s -> %s", key, raw.format, target_format)
    if raw.format == "png":
        return Result.Ok(RawMetadata.of_segments(target_format, converter.to_segments(raw.chunks)))
    return Result.Ok(RawMetadata.png(converter.to_chunks(raw.segments)))


__all__ = ["CONVERTERS", "Converter", "convert_metadata"]
