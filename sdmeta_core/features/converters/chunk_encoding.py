"""
How text becomes PNG text chunks.

Each tool writes its chunks in its own way (tEXt with \\uXXXX escapes, tEXt
holding raw UTF-8, or tEXt/iTXt picked by content), and a JPEG/WebP -> PNG
conversion has to reproduce that choice to give the original bytes back.
"""
from __future__ import annotations

import re
from types import MappingProxyType
from typing import Iterable, Mapping, Optional, Union

from sdmeta_shared import ChunkEncodingStrategy, SoftwareId

from ..metadata.models import PngTextChunk

EncodingMap = Mapping[str, ChunkEncodingStrategy]
StrategySpec = Union[ChunkEncodingStrategy, EncodingMap]

_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})")
_SURROGATE_RE = re.compile("[\ud800-\udfff]")

DEFAULT_KEY = "default"
BLIND_KEY = "blind"


def _utf16_units(char: str) -> Iterable[int]:
    code = ord(char)
    if code <= 0xFFFF:
        yield code
        return
    code -= 0x10000
    yield 0xD800 + (code >> 10)
    yield 0xDC00 + (code & 0x3FF)


def escape_unicode(text: str) -> str:
    """Escape every UTF-16 code unit >= 0x100 as \\uXXXX; astral characters become surrogate pairs."""
    out = []
    for char in text:
        if ord(char) < 0x100:
            out.append(char)
            continue
        out.extend(f"\\u{unit:04x}" for unit in _utf16_units(char))
    return "".join(out)


def unescape_unicode(text: str) -> str:
    """Inverse of escape_unicode; escaped surrogate pairs are recombined."""
    decoded = _UNICODE_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), text)
    if not _SURROGATE_RE.search(decoded):
        return decoded
    return decoded.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


def has_non_latin1(text: str) -> bool:
    return any(ord(char) > 0xFF for char in text)


def create_encoded_chunk(keyword: str, text: Optional[str], strategy: ChunkEncodingStrategy) -> list[PngTextChunk]:
    """Zero or one chunk: absent text gives no chunk."""
    if text is None:
        return []
    if strategy == ChunkEncodingStrategy.DYNAMIC:
        if has_non_latin1(text):
            return [PngTextChunk.itxt_chunk(keyword, text)]
        return [PngTextChunk.text_chunk(keyword, text)]
    if strategy == ChunkEncodingStrategy.TEXT_UNICODE_ESCAPE:
        return [PngTextChunk.text_chunk(keyword, escape_unicode(text))]
    return [PngTextChunk.text_chunk(keyword, text)]


def strategy_for(encoding: StrategySpec, keyword: str) -> ChunkEncodingStrategy:
    if isinstance(encoding, ChunkEncodingStrategy):
        return encoding
    return encoding.get(keyword) or encoding.get(DEFAULT_KEY) or ChunkEncodingStrategy.DYNAMIC


def create_encoded_chunks(pairs: Iterable[tuple[str, Optional[str]]], encoding: StrategySpec) -> list[PngTextChunk]:
    chunks: list[PngTextChunk] = []
    for keyword, text in pairs:
        chunks.extend(create_encoded_chunk(keyword, text, strategy_for(encoding, keyword)))
    return chunks


_DYNAMIC = ChunkEncodingStrategy.DYNAMIC
_ESCAPE = ChunkEncodingStrategy.TEXT_UNICODE_ESCAPE
_RAW = ChunkEncodingStrategy.TEXT_UTF8_RAW

# What each tool itself writes
STRATEGIES: Mapping[str, StrategySpec] = MappingProxyType(
    {
        SoftwareId.SD_WEBUI.value: _DYNAMIC,
        SoftwareId.SD_NEXT.value: _DYNAMIC,
        SoftwareId.FORGE.value: _DYNAMIC,
        SoftwareId.FORGE_CLASSIC.value: _DYNAMIC,
        SoftwareId.FORGE_NEO.value: _DYNAMIC,
        SoftwareId.REFORGE.value: _DYNAMIC,
        SoftwareId.EASY_REFORGE.value: _DYNAMIC,
        SoftwareId.HF_SPACE.value: _DYNAMIC,
        SoftwareId.FOOOCUS.value: _DYNAMIC,
        SoftwareId.RUINED_FOOOCUS.value: _DYNAMIC,
        SoftwareId.INVOKEAI.value: _DYNAMIC,
        SoftwareId.EASYDIFFUSION.value: _DYNAMIC,
        SoftwareId.COMFYUI.value: _ESCAPE,
        SoftwareId.SWARMUI.value: _ESCAPE,
        SoftwareId.NOVELAI.value: _RAW,
        SoftwareId.CIVITAI.value: _RAW,
        SoftwareId.STABILITY_MATRIX.value: MappingProxyType({"parameters": _RAW, DEFAULT_KEY: _ESCAPE}),
        SoftwareId.TENSORART.value: MappingProxyType({"generation_data": _RAW, DEFAULT_KEY: _ESCAPE}),
        BLIND_KEY: _DYNAMIC,
    }
)


def get_encoding(software: SoftwareId | str) -> StrategySpec:
    key = software.value if isinstance(software, SoftwareId) else str(software)
    return STRATEGIES.get(key, _DYNAMIC)
