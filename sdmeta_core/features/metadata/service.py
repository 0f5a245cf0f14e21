"""
Metadata service - the parse boundary between raw containers and callers.

Every outcome is a ParseResult: empty, invalid, unrecognized or success. Raw
metadata always rides along so unrecognized files can still be converted.
"""
from __future__ import annotations

import logging
import os
from dataclasses import replace
from typing import Optional

from sdmeta_shared import get_logger, log_structured, source_var

from ... import config
from ..parsers import parse_entries
from .entries import raw_to_record
from .models import ParseResult, RawMetadata
from .readers import ImageSource, read_raw_metadata

logger = get_logger(__name__)


def parse_raw(raw: RawMetadata, software: Optional[str] = None) -> ParseResult:
    """Parse already-extracted chunks/segments."""
    if raw is None or raw.is_empty():
        return ParseResult.empty()

    res = parse_entries(raw_to_record(raw), software=software)
    if not res.ok or res.data is None:
        log_structured(logger, logging.DEBUG, "Metadata not recognized", format=raw.format, code=res.code, error=res.error)
        return ParseResult.unrecognized(raw)
    return ParseResult.success(res.data, raw)


def _source_label(source: ImageSource) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return os.path.basename(os.fspath(source))


def read_image(source: ImageSource, fallback_dimensions: Optional[bool] = None) -> ParseResult:
    """
    Read and parse metadata from an image file path or its bytes.

    When the parsed metadata has no width/height, the pixel size is used
    (controlled by ``fallback_dimensions``, default SDMETA_DIMENSION_FALLBACK).
    """
    token = source_var.set(_source_label(source))
    try:
        read = read_raw_metadata(source)
        if not read.ok or read.data is None:
            logger.warning("Cannot read image: %s", read.error)
            return ParseResult.invalid(read.error or "Unreadable image")

        image = read.data
        result = parse_raw(image.raw)
        use_fallback = config.DIMENSION_FALLBACK if fallback_dimensions is None else fallback_dimensions
        if result.status != "success" or result.metadata is None or not use_fallback:
            return result

        md = result.metadata
        if md.width > 0 and md.height > 0:
            return result
        md = replace(
            md,
            width=md.width if md.width > 0 else image.width,
            height=md.height if md.height > 0 else image.height,
        )
        return ParseResult.success(md, image.raw)
    finally:
        source_var.reset(token)
