"""Shared utilities for sd-metadata."""
from .errors import sanitize_error_message
from .log import get_logger, log_structured, source_var
from .result import Result
from .types import (
    A1111_FAMILY,
    ChunkEncodingStrategy,
    ErrorCode,
    ImageFormat,
    ParseStatus,
    SegmentSource,
    SoftwareId,
    coerce_software,
)

__all__ = [
    "Result",
    "get_logger",
    "log_structured",
    "source_var",
    "sanitize_error_message",
    "ErrorCode",
    "SoftwareId",
    "SegmentSource",
    "ChunkEncodingStrategy",
    "ImageFormat",
    "ParseStatus",
    "A1111_FAMILY",
    "coerce_software",
]
