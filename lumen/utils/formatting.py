"""Human-readable rendering for model metadata."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def format_bytes(size: Optional[int]) -> str:
    """Format a byte count with binary units, e.g. ``4.11 GB``."""
    if size is None:
        return ""
    if size < 1024:
        return f"{size} Bytes"
    value = float(size)
    index = 0
    while value >= 1024 and index < len(_SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    return f"{value:.2f} {_SIZE_UNITS[index]}"


def format_date(value: Optional[datetime]) -> str:
    """Format a timestamp as ``YYYY-MM-DD``."""
    if value is None:
        return ""
    return value.strftime("%Y-%m-%d")


def parse_timestamp(raw: object) -> Optional[datetime]:
    """Parse an RFC 3339 timestamp as sent by local runtimes.

    Ollama emits nanosecond precision (``2024-05-01T10:11:12.123456789-07:00``),
    which ``datetime.fromisoformat`` rejects, so the fraction is cut to
    microseconds first. Unparseable values yield None.
    """
    if not isinstance(raw, str) or not raw.strip():
        return None
    text = raw.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    if "." in text:
        head, _, rest = text.partition(".")
        digits = ""
        for char in rest:
            if not char.isdigit():
                break
            digits += char
        suffix = rest[len(digits):]
        text = f"{head}.{digits[:6].ljust(6, '0')}{suffix}" if digits else f"{head}{suffix}"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None
