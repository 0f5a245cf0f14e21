"""
Logging utilities with consistent formatting and emoji indicators.
"""
import json
import logging
import os
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Final

# Emoji indicators for log levels
EMOJI_MAP: Final[dict[str, str]] = {
    "DEBUG": "🔍",
    "INFO": "ℹ️",
    "WARNING": "⚠️",
    "ERROR": "❌",
    "CRITICAL": "🔥",
}

# Global logger prefix
PREFIX: Final[str] = "🖼️ sdmeta"

# Image currently being read, attached to every record emitted meanwhile
source_var: ContextVar[str] = ContextVar("source", default="")


class SourceFilter(logging.Filter):
    """Inject `source` from `source_var` into each log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.source = source_var.get("")
        return True


class EmojiFormatter(logging.Formatter):
    """Custom formatter that adds emoji based on log level."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a single line with a prefix and emoji."""
        emoji = EMOJI_MAP.get(record.levelname, "🖼️")

        # Format: 🖼️ sdmeta [🔍] features.detect [image.png]: message
        src = str(getattr(record, "source", "") or "").strip()
        src_part = f" [{src}]" if src else ""
        log_format = f"{PREFIX} [{emoji}] %(name)s{src_part}: %(message)s"
        formatter = logging.Formatter(log_format)
        return formatter.format(record)


def _env_level() -> int | None:
    raw = os.getenv("SDMETA_LOG_LEVEL", "").strip().upper()
    if not raw:
        return None
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else None


def get_logger(name: str, level: int | None = None) -> logging.Logger:
    """
    Get a logger with the sdmeta prefix and emoji indicators.

    Args:
        name: Logger name (usually __name__)
        level: Optional logging level (DEBUG, INFO, WARNING, ERROR)

    Returns:
        Configured logger instance with emoji formatting
    """
    # Clean name (drop the package prefix)
    if name.startswith("__main__"):
        name = "main"
    elif "." in name:
        parts = name.split(".")
        if "features" in parts:
            idx = parts.index("features")
            name = ".".join(parts[idx:])
        elif parts[0].startswith("sdmeta_"):
            name = ".".join(parts[1:]) or parts[0]

    logger = logging.getLogger(f"sdmeta.{name}")
    if not any(isinstance(f, SourceFilter) for f in logger.filters):
        logger.addFilter(SourceFilter())

    if level is None:
        level = _env_level()
    if level is not None:
        logger.setLevel(level)
    elif not logger.handlers:
        logger.setLevel(logging.INFO)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(EmojiFormatter())
        logger.addHandler(handler)

        # Prevent propagation to avoid duplicate logs
        logger.propagate = False

    return logger


def log_structured(logger: logging.Logger, level: int, message: str, **context: Any) -> None:
    """Emit a structured JSON log entry with contextual fields."""
    if not logger.isEnabledFor(level):
        return
    payload = {
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "context": context,
    }
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))
