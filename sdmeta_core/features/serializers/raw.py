"""Plain-text dump of unrecognized raw metadata."""
from __future__ import annotations

from ..metadata.models import RawMetadata


def format_raw(raw: RawMetadata) -> str:
    if raw.format == "png":
        return "\n\n".join(chunk.text for chunk in raw.chunks)
    return "\n\n".join(segment.data for segment in raw.segments)
