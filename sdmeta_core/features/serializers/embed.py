"""
Embedding user-supplied metadata as WebUI text.

Any GenerationMetadata (plus optional settings-line extras) becomes the raw
metadata a writer puts into the target image: a ``parameters`` chunk for PNG,
an Exif UserComment for JPEG/WebP.
"""
from __future__ import annotations

from typing import Any, Mapping, Optional

from sdmeta_shared import ChunkEncodingStrategy, ErrorCode, ImageFormat, Result, SegmentSource, get_logger

from ..converters.chunk_encoding import create_encoded_chunk
from ..metadata.models import GenerationMetadata, MetadataSegment, RawMetadata
from .a1111 import format_as_webui

logger = get_logger(__name__)

EMBED_KEYWORD = "parameters"
EMBED_FORMATS: frozenset[str] = frozenset({"png", "jpeg", "webp"})


def build_embed(
    metadata: GenerationMetadata,
    extras: Optional[Mapping[str, Any]] = None,
    target_format: ImageFormat = "png",
) -> Result[RawMetadata]:
    """
    Raw metadata carrying ``format_as_webui(metadata, extras)`` for ``target_format``.

    PNG gets one ``parameters`` chunk, tEXt or iTXt depending on the text.
    """
    if target_format not in EMBED_FORMATS:
        return Result.Err(ErrorCode.INVALID_INPUT, f"Unsupported target format: {target_format}")

    text = format_as_webui(metadata, extras)
    logger.debug("Embedding %d chars of WebUI text as %s", len(text), target_format)
    if target_format == "png":
        return Result.Ok(RawMetadata.png(create_encoded_chunk(EMBED_KEYWORD, text, ChunkEncodingStrategy.DYNAMIC)))
    segment = MetadataSegment(source=SegmentSource.EXIF_USER_COMMENT, data=text)
    return Result.Ok(RawMetadata.of_segments(target_format, [segment]))
