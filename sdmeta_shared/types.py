"""
Shared types, enums, and constants.
"""
from enum import Enum
from typing import Final, Literal

# Container formats handled by the converters
ImageFormat = Literal["png", "jpeg", "webp"]

# Parse boundary statuses
ParseStatus = Literal["empty", "invalid", "unrecognized", "success"]


class ErrorCode(str, Enum):
    """Standardized error codes (string enum)."""

    # Client / validation
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_IMAGE = "INVALID_IMAGE"

    # Parsing
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"  # marker absent, try the next parser
    PARSE_ERROR = "PARSE_ERROR"  # marker present, payload malformed

    # Conversion
    UNSUPPORTED_SOFTWARE = "UNSUPPORTED_SOFTWARE"
    MISSING_RAW_DATA = "MISSING_RAW_DATA"
    INVALID_PARSE_RESULT = "INVALID_PARSE_RESULT"


class SoftwareId(str, Enum):
    """Generation tools recognised by the detector."""

    NOVELAI = "novelai"
    COMFYUI = "comfyui"
    SWARMUI = "swarmui"
    TENSORART = "tensorart"
    STABILITY_MATRIX = "stability-matrix"
    INVOKEAI = "invokeai"
    FORGE = "forge"
    FORGE_CLASSIC = "forge-classic"
    FORGE_NEO = "forge-neo"
    REFORGE = "reforge"
    EASY_REFORGE = "easy-reforge"
    SD_WEBUI = "sd-webui"
    SD_NEXT = "sd-next"
    CIVITAI = "civitai"
    HF_SPACE = "hf-space"
    EASYDIFFUSION = "easydiffusion"
    FOOOCUS = "fooocus"
    RUINED_FOOOCUS = "ruined-fooocus"
    DRAW_THINGS = "draw-things"


class SegmentSource(str, Enum):
    """Location of a text segment inside a JPEG/WebP container."""

    EXIF_USER_COMMENT = "exifUserComment"
    EXIF_IMAGE_DESCRIPTION = "exifImageDescription"
    EXIF_MAKE = "exifMake"
    EXIF_SOFTWARE = "exifSoftware"
    EXIF_DOCUMENT_NAME = "exifDocumentName"
    JPEG_COM = "jpegCom"


class ChunkEncodingStrategy(str, Enum):
    """How text becomes PNG chunk bytes."""

    DYNAMIC = "dynamic"  # tEXt when Latin-1 only, else iTXt
    TEXT_UNICODE_ESCAPE = "text-unicode-escape"  # tEXt, \uXXXX above 0xFF
    TEXT_UTF8_RAW = "text-utf8-raw"  # tEXt carrying raw UTF-8


# Tools that write A1111-style "parameters" text
A1111_FAMILY: Final[frozenset[SoftwareId]] = frozenset(
    {
        SoftwareId.SD_WEBUI,
        SoftwareId.SD_NEXT,
        SoftwareId.FORGE,
        SoftwareId.FORGE_CLASSIC,
        SoftwareId.FORGE_NEO,
        SoftwareId.REFORGE,
        SoftwareId.EASY_REFORGE,
    }
)


def coerce_software(value: "SoftwareId | str | None") -> SoftwareId | None:
    """Map a software id string to the enum; unknown values become None."""
    if value is None:
        return None
    if isinstance(value, SoftwareId):
        return value
    try:
        return SoftwareId(str(value))
    except ValueError:
        return None
