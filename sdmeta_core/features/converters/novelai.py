"""
NovelAI converter.

PNG -> JPEG/WebP stores every chunk as one UserComment JSON object (plus the
prompt in ImageDescription). The reverse rebuilds NovelAI's fixed chunk set.
"""
from __future__ import annotations

from typing import Optional, Sequence

from sdmeta_shared import ChunkEncodingStrategy, SegmentSource

from ..metadata.models import MetadataSegment, PngTextChunk
from ..metadata.parsing_utils import dump_json, parse_json_object, stringify
from .base import Converter, chunk_map, find_segment, user_comment
from .chunk_encoding import create_encoded_chunk

NOVELAI_TITLE = "NovelAI generated image"
NOVELAI_SOFTWARE = "NovelAI"

_RAW = ChunkEncodingStrategy.TEXT_UTF8_RAW


def novelai_png_to_segments(chunks: Sequence[PngTextChunk]) -> list[MetadataSegment]:
    values = chunk_map(chunks)
    segments = []
    description = values.get("Description")
    if description:
        segments.append(MetadataSegment(source=SegmentSource.EXIF_IMAGE_DESCRIPTION, data=description))
    segments.append(user_comment(dump_json(values)))
    return segments


def _text(keyword: str, text: Optional[str]) -> list[PngTextChunk]:
    return create_encoded_chunk(keyword, text, _RAW)


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value is not None:
            return value
    return None


def novelai_segments_to_png(segments: Sequence[MetadataSegment]) -> list[PngTextChunk]:
    comment = find_segment(segments, SegmentSource.EXIF_USER_COMMENT)
    com = find_segment(segments, SegmentSource.JPEG_COM)
    description = find_segment(segments, SegmentSource.EXIF_IMAGE_DESCRIPTION)
    description_text = description.data if description else None

    if comment is not None:
        data = parse_json_object(comment.data)
        if data is None:
            return _text("Comment", comment.data)
        return [
            *_text("Title", _first(stringify(data.get("Title")), NOVELAI_TITLE)),
            *_text("Description", _first(stringify(data.get("Description")), description_text)),
            *_text("Software", _first(stringify(data.get("Software")), NOVELAI_SOFTWARE)),
            *_text("Source", stringify(data.get("Source"))),
            *_text("Generation time", stringify(data.get("Generation time"))),
            *_text("Comment", stringify(data.get("Comment"))),
        ]

    if com is not None:
        return [
            *_text("Title", NOVELAI_TITLE),
            *_text("Description", description_text),
            *_text("Software", NOVELAI_SOFTWARE),
            *_text("Comment", com.data),
        ]
    return []


NOVELAI = Converter(to_segments=novelai_png_to_segments, to_chunks=novelai_segments_to_png)
