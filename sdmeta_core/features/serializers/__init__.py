"""Text serializers for parse results."""
from __future__ import annotations

from ..metadata.models import ParseResult
from .a1111 import build_settings_line, format_as_webui
from .embed import build_embed
from .raw import format_raw


def stringify(result: ParseResult) -> str:
    """WebUI text for recognized metadata, raw text for unrecognized, "" otherwise."""
    if result.status == "success" and result.metadata is not None:
        return format_as_webui(result.metadata)
    if result.status == "unrecognized" and result.raw is not None:
        return format_raw(result.raw)
    return ""


__all__ = ["build_embed", "build_settings_line", "format_as_webui", "format_raw", "stringify"]
