"""
Entry normalization: whatever shape a reader produced becomes one frozen
keyword -> text mapping.
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType
from typing import Any

from sdmeta_shared import SegmentSource

from .models import MetadataSegment, PngTextChunk, RawMetadata
from .parsing_utils import dump_json, parse_json, parse_json_object

EntryRecord = Mapping[str, str]

EMPTY_RECORD: EntryRecord = MappingProxyType({})

_SEGMENT_KEYWORDS: Mapping[SegmentSource, str] = MappingProxyType(
    {
        SegmentSource.JPEG_COM: "Comment",
        SegmentSource.EXIF_USER_COMMENT: "UserComment",
        SegmentSource.EXIF_IMAGE_DESCRIPTION: "ImageDescription",
        SegmentSource.EXIF_MAKE: "Make",
        SegmentSource.EXIF_SOFTWARE: "Software",
        SegmentSource.EXIF_DOCUMENT_NAME: "Title",
    }
)


def _pairs(entries: Any) -> Iterable[tuple[str, str]]:
    if isinstance(entries, Mapping):
        yield from entries.items()
        return
    for entry in entries or ():
        if isinstance(entry, (tuple, list)):
            if len(entry) == 2:
                yield entry[0], entry[1]
        elif hasattr(entry, "keyword") and hasattr(entry, "text"):
            yield entry.keyword, entry.text


def build_entry_record(entries: Any) -> EntryRecord:
    """
    Build a read-only keyword -> text map.

    Accepts a mapping, (keyword, text) pairs, or objects with ``keyword`` and
    ``text`` attributes; other elements are skipped. A later duplicate
    keyword overwrites an earlier one.
    """
    if isinstance(entries, MappingProxyType):
        return entries
    record: dict[str, str] = {}
    for keyword, text in _pairs(entries):
        record[str(keyword)] = text
    return MappingProxyType(record)


def chunks_to_record(chunks: Iterable[PngTextChunk]) -> EntryRecord:
    return build_entry_record(chunks)


def segment_keyword(segment: MetadataSegment) -> str:
    if segment.prefix and segment.source in (SegmentSource.EXIF_IMAGE_DESCRIPTION, SegmentSource.EXIF_MAKE):
        return segment.prefix
    return _SEGMENT_KEYWORDS[segment.source]


def _expand_novelai_webp(text: str) -> dict[str, str] | None:
    """NovelAI WebP wraps everything as {"Software": "NovelAI", "Comment": "<json>"}."""
    outer = parse_json_object(text)
    if outer is None:
        return None
    software = outer.get("Software")
    comment = outer.get("Comment")
    if (isinstance(software, str) and not software.startswith("NovelAI")) or not isinstance(comment, str):
        return None
    inner = parse_json(comment)
    return {
        "Software": software if isinstance(software, str) else "NovelAI",
        "Comment": dump_json(inner.data) if inner.ok else comment,
    }


def segments_to_record(segments: Iterable[MetadataSegment]) -> EntryRecord:
    record: dict[str, str] = {}
    for segment in segments:
        if segment.source == SegmentSource.EXIF_USER_COMMENT and segment.data.startswith("{"):
            expanded = _expand_novelai_webp(segment.data)
            if expanded:
                record.update(expanded)
                continue
        record[segment_keyword(segment)] = segment.data
    return MappingProxyType(record)


def raw_to_record(raw: RawMetadata) -> EntryRecord:
    if raw.format == "png":
        return chunks_to_record(raw.chunks)
    return segments_to_record(raw.segments)
