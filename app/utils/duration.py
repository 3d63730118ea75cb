"""
Duration helpers

Chapter durations are entered by hand as integer seconds, "M:SS" or "H:MM:SS".
"""
import math
from typing import Any


def _parse_part(part: str):
    try:
        return float(part)
    except ValueError:
        return None


def normalize_duration(raw: Any) -> int:
    """
    Convert a free-form duration into whole seconds

    Args:
        raw: None, a number, or a colon separated string

    Returns:
        Non-negative integer seconds; unparseable input yields 0
    """
    if raw is None or isinstance(raw, bool):
        return 0

    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            return 0
        return max(int(raw), 0)

    text = str(raw).strip()
    if not text:
        return 0

    parts = [_parse_part(p.strip()) for p in text.split(":")]
    if any(p is None for p in parts):
        return 0

    if len(parts) == 1:
        total = parts[0]
    elif len(parts) == 2:
        total = parts[0] * 60 + parts[1]
    elif len(parts) == 3:
        total = parts[0] * 3600 + parts[1] * 60 + parts[2]
    else:
        return 0

    # "nan" and "inf" parse as floats
    if not math.isfinite(total):
        return 0

    return max(int(total), 0)


def format_seconds(seconds: int) -> str:
    """Format seconds as HH:MM:SS"""
    if not seconds or seconds <= 0:
        return "00:00:00"

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
