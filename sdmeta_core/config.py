"""
Configuration for sd-metadata.

Every knob is read from the environment once, at import time.
"""
import logging
import os

from .utils import env_bool

logger = logging.getLogger(__name__)


def _env_raw(*names: str, default: str | None = None) -> str | None:
    for name in names:
        if not name:
            continue
        val = os.getenv(name)
        if val is not None and str(val).strip() != "":
            return str(val).strip()
    return default


def _env_int(default: int, *names: str, min_value: int | None = None, max_value: int | None = None) -> int:
    raw = _env_raw(*names)
    if raw is None:
        return default
    try:
        value = int(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid integer for %s=%r, using default=%s", names[0] if names else "<unknown>", raw, default)
        return default
    if min_value is not None and value < min_value:
        logger.warning("Value too small for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, min_value)
        value = min_value
    if max_value is not None and value > max_value:
        logger.warning("Value too large for %s=%s, clamped to %s", names[0] if names else "<unknown>", value, max_value)
        value = max_value
    return value


def _env_bool(default: bool, *names: str) -> bool:
    for name in names:
        if name and name in os.environ:
            return env_bool(name, default)
    return default


# Reference hops followed by the node-graph text extractor (the only cycle guard)
TEXT_MAX_DEPTH = _env_int(10, "SDMETA_TEXT_MAX_DEPTH", min_value=1, max_value=64)

# JSON payloads above this size are treated as unparseable
MAX_JSON_SIZE = _env_int(10 * 1024 * 1024, "SDMETA_MAX_JSON_SIZE", min_value=1024)

# Fill missing width/height from the pixel size when reading image files
DIMENSION_FALLBACK = _env_bool(True, "SDMETA_DIMENSION_FALLBACK")
