"""
Converters that carry chunks without interpreting them: the blind fallback
for unrecognized metadata, and Easy Diffusion, whose per-setting entries are
plain text.
"""
from __future__ import annotations

from typing import Sequence

from sdmeta_shared import ChunkEncodingStrategy, SegmentSource

from ..metadata.models import MetadataSegment, PngTextChunk
from ..metadata.parsing_utils import parse_json_object, stringify
from .base import Converter, find_segment, raw_map_png_to_segments
from .chunk_encoding import BLIND_KEY, create_encoded_chunk, get_encoding, strategy_for

BLIND_FALLBACK_KEYWORD = "metadata"


def blind_segments_to_png(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    if segment is None:
        return []
    encoding = get_encoding(BLIND_KEY)
    data = parse_json_object(segment.data)
    if data is None:
        return create_encoded_chunk(BLIND_FALLBACK_KEYWORD, segment.data, strategy_for(encoding, BLIND_FALLBACK_KEYWORD))

    chunks: list[PngTextChunk] = []
    for keyword, value in data.items():
        text = stringify(value)
        if not text:
            continue
        chunks.extend(create_encoded_chunk(keyword, text, strategy_for(encoding, keyword)))
    return chunks


def easydiffusion_segments_to_png(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    segment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    if segment is None:
        return []
    data = parse_json_object(segment.data)
    if data is None:
        return []
    chunks: list[PngTextChunk] = []
    for keyword, value in data.items():
        chunks.extend(create_encoded_chunk(keyword, stringify(value), ChunkEncodingStrategy.DYNAMIC))
    return chunks


BLIND = Converter(to_segments=raw_map_png_to_segments, to_chunks=blind_segments_to_png)
EASYDIFFUSION = Converter(to_segments=raw_map_png_to_segments, to_chunks=easydiffusion_segments_to_png)
