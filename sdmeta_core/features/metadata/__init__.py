"""Metadata extraction feature."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .service import parse_raw, read_image

__all__ = ["parse_raw", "read_image", "detect_software"]


def __getattr__(name: str):
    if name in ("parse_raw", "read_image"):
        from .service import parse_raw, read_image

        mapping = {"parse_raw": parse_raw, "read_image": read_image}
        return mapping[name]
    if name == "detect_software":
        from .detect import detect_software as _detect_software

        return _detect_software
    raise AttributeError(name)
