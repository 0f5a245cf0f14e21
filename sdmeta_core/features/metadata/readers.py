"""
Pillow-backed reader producing the uniform chunk/segment shapes.

The core never touches container bytes itself; this module is the thin
adapter from an image file (path or bytes) to RawMetadata.
"""
from __future__ import annotations

import io
import os
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from PIL import Image, PngImagePlugin

from sdmeta_shared import ErrorCode, Result, SegmentSource, get_logger, sanitize_error_message

from .models import MetadataSegment, PngTextChunk, RawMetadata

logger = get_logger(__name__)

ImageSource = Union[str, "os.PathLike[str]", bytes, bytearray]

_FORMATS = {"PNG": "png", "JPEG": "jpeg", "WEBP": "webp"}

# Exif tag ids
TAG_DOCUMENT_NAME = 0x010D
TAG_IMAGE_DESCRIPTION = 0x010E
TAG_MAKE = 0x010F
TAG_SOFTWARE = 0x0131
TAG_EXIF_IFD = 0x8769
TAG_USER_COMMENT = 0x9286

_IFD0_SOURCES = (
    (TAG_IMAGE_DESCRIPTION, SegmentSource.EXIF_IMAGE_DESCRIPTION),
    (TAG_MAKE, SegmentSource.EXIF_MAKE),
    (TAG_SOFTWARE, SegmentSource.EXIF_SOFTWARE),
    (TAG_DOCUMENT_NAME, SegmentSource.EXIF_DOCUMENT_NAME),
)

# save-image-extended labels its Exif text fields
_PREFIX_RE = re.compile(r"^(Workflow|Prompt):\s*")

_UNICODE_HEADER = b"UNICODE\x00"
_ASCII_HEADER = b"ASCII\x00\x00\x00"


@dataclass(frozen=True)
class ImageRead:
    raw: RawMetadata
    width: int
    height: int


def _png_chunks(img: Any) -> list[PngTextChunk]:
    text = getattr(img, "text", None) or {}
    chunks = []
    for keyword, value in text.items():
        if isinstance(value, PngImagePlugin.iTXt):
            chunks.append(
                PngTextChunk(
                    type="iTXt",
                    keyword=str(keyword),
                    text=str(value),
                    language_tag=value.lang or "",
                    translated_keyword=value.tkey or "",
                )
            )
        else:
            chunks.append(PngTextChunk.text_chunk(str(keyword), str(value)))
    return chunks


def decode_user_comment(value: Any) -> str:
    """Decode an Exif UserComment: 8-byte charset header, then the payload."""
    if isinstance(value, str):
        return value
    if not isinstance(value, (bytes, bytearray)):
        return str(value)
    data = bytes(value)
    header, body = data[:8], data[8:]
    if header == _UNICODE_HEADER:
        # Byte order is not recorded; ASCII-range text reveals it through the NUL position
        encoding = "utf-16-be" if body[:1] == b"\x00" and body[1:2] != b"\x00" else "utf-16-le"
        return body.decode(encoding, errors="replace")
    if header == _ASCII_HEADER:
        return body.decode("latin-1")
    if len(data) >= 8 and header == b"\x00" * 8:
        return body.decode("utf-8", errors="replace")
    return data.decode("utf-8", errors="replace")


def _text_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


def _segment(source: SegmentSource, text: str) -> MetadataSegment:
    if source in (SegmentSource.EXIF_IMAGE_DESCRIPTION, SegmentSource.EXIF_MAKE):
        match = _PREFIX_RE.match(text)
        if match:
            return MetadataSegment(source=source, data=text[match.end():], prefix=match.group(1))
    return MetadataSegment(source=source, data=text)


def _exif_segments(img: Any) -> list[MetadataSegment]:
    try:
        exif = img.getexif()
    except (OSError, ValueError, SyntaxError) as exc:
        logger.debug("Unreadable Exif block: %s", exc)
        return []
    if not exif:
        return []

    segments: list[MetadataSegment] = []
    try:
        exif_ifd = exif.get_ifd(TAG_EXIF_IFD)
    except (OSError, ValueError, SyntaxError, KeyError):
        exif_ifd = {}
    user_comment = exif_ifd.get(TAG_USER_COMMENT) if exif_ifd else None
    if user_comment is not None:
        segments.append(MetadataSegment(source=SegmentSource.EXIF_USER_COMMENT, data=decode_user_comment(user_comment)))

    for tag, source in _IFD0_SOURCES:
        text = _text_value(exif.get(tag))
        if text:
            segments.append(_segment(source, text))
    return segments


def _jpeg_comment(img: Any) -> Optional[MetadataSegment]:
    comment = img.info.get("comment")
    if not comment:
        return None
    if isinstance(comment, (bytes, bytearray)):
        try:
            text = bytes(comment).decode("utf-8")
        except UnicodeDecodeError:
            text = bytes(comment).decode("latin-1")
    else:
        text = str(comment)
    return MetadataSegment(source=SegmentSource.JPEG_COM, data=text)


def _open(source: ImageSource):
    if isinstance(source, (bytes, bytearray)):
        return Image.open(io.BytesIO(bytes(source)))
    return Image.open(source)


def read_raw_metadata(source: ImageSource) -> Result[ImageRead]:
    """
    Read text metadata and pixel size from a PNG/JPEG/WebP file.

    Returns INVALID_IMAGE for anything Pillow cannot open or a container
    outside the three supported formats.
    """
    try:
        with _open(source) as img:
            fmt = _FORMATS.get(str(img.format or "").upper())
            if fmt is None:
                return Result.Err(ErrorCode.INVALID_IMAGE, f"Unsupported image format: {img.format}")
            width, height = int(img.width), int(img.height)
            if fmt == "png":
                raw = RawMetadata.png(_png_chunks(img))
            else:
                segments = _exif_segments(img)
                if fmt == "jpeg":
                    com = _jpeg_comment(img)
                    if com is not None:
                        segments.append(com)
                raw = RawMetadata.of_segments(fmt, segments)
    except (OSError, ValueError, SyntaxError, Image.DecompressionBombError) as exc:
        return Result.Err(ErrorCode.INVALID_IMAGE, sanitize_error_message(exc, "Unreadable image"))
    return Result.Ok(ImageRead(raw=raw, width=width, height=height), format=fmt)
