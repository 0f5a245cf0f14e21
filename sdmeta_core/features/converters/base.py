"""
Converter shapes reused by the per-tool table.

A converter is a pair of total functions: PNG chunks -> JPEG/WebP segments and
back. Malformed input yields an empty list, never an exception.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Sequence

from sdmeta_shared import ChunkEncodingStrategy, SegmentSource

from ..metadata.models import MetadataSegment, PngTextChunk
from ..metadata.parsing_utils import dump_json, parse_json, parse_json_object, stringify
from .chunk_encoding import StrategySpec, create_encoded_chunk, create_encoded_chunks, unescape_unicode

ToSegments = Callable[[Sequence[PngTextChunk]], list[MetadataSegment]]
ToChunks = Callable[[Sequence[MetadataSegment]], list[PngTextChunk]]


@dataclass(frozen=True)
class Converter:
    to_segments: ToSegments
    to_chunks: ToChunks


def find_chunk(chunks: Iterable[PngTextChunk], keyword: str) -> Optional[PngTextChunk]:
    for chunk in chunks:
        if chunk.keyword == keyword:
            return chunk
    return None


def find_segment(segments: Iterable[MetadataSegment], source: SegmentSource) -> Optional[MetadataSegment]:
    for segment in segments:
        if segment.source == source:
            return segment
    return None


def user_comment(data: str) -> MetadataSegment:
    return MetadataSegment(source=SegmentSource.EXIF_USER_COMMENT, data=data)


def chunk_map(chunks: Iterable[PngTextChunk]) -> dict[str, str]:
    return {chunk.keyword: chunk.text for chunk in chunks}


def json_or_text(text: str) -> Any:
    parsed = parse_json(text)
    return parsed.data if parsed.ok else text


# ---------------------------------------------------------------------------
# Simple chunk: one keyword <-> exifUserComment
# ---------------------------------------------------------------------------


def simple_chunk_converter(keyword: str, strategy: ChunkEncodingStrategy) -> Converter:
    def to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
        chunk = find_chunk(chunks, keyword)
        return [user_comment(chunk.text)] if chunk is not None else []

    def to_chunks(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
        segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
        if segment is None:
            return []
        return create_encoded_chunk(keyword, segment.data, strategy)

    return Converter(to_segments=to_segments, to_chunks=to_chunks)


# ---------------------------------------------------------------------------
# Key-value JSON: every chunk folded into one UserComment object
# ---------------------------------------------------------------------------


def kv_png_to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
    """Chunk texts that hold JSON are embedded as values, the rest as strings."""
    data = {chunk.keyword: json_or_text(chunk.text) for chunk in chunks}
    return [user_comment(dump_json(data))]


def kv_object_to_chunks(data: dict[str, Any], encoding: StrategySpec) -> list[PngTextChunk]:
    pairs = []
    for keyword, value in data.items():
        text = stringify(value)
        pairs.append((keyword, unescape_unicode(text) if text is not None else None))
    return create_encoded_chunks(pairs, encoding)


def kv_segments_to_png(segments: Sequence[MetadataSegment], encoding: StrategySpec) -> list[PngTextChunk]:
    segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    if segment is None:
        return []
    data = parse_json_object(segment.data)
    if data is None:
        return []
    return kv_object_to_chunks(data, encoding)


def kv_converter(encoding: StrategySpec) -> Converter:
    return Converter(
        to_segments=kv_png_to_segments,
        to_chunks=lambda segments: kv_segments_to_png(segments, encoding),
    )


# ---------------------------------------------------------------------------
# Raw map: keyword -> text JSON without interpreting the texts
# ---------------------------------------------------------------------------


def raw_map_png_to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
    if not chunks:
        return []
    return [user_comment(dump_json(chunk_map(chunks)))]
