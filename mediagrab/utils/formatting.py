import math
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")
UNKNOWN = "Unknown"

Number = Union[int, float]


def _finite(value: Number) -> bool:
    return not isinstance(value, float) or math.isfinite(value)


def format_size(size_bytes: Optional[Number]) -> str:
    """Human-readable size using 1024-based units, e.g. 1536 -> '1.5 KB'"""
    if size_bytes is None or not _finite(size_bytes) or size_bytes < 0:
        return UNKNOWN
    if size_bytes == 0:
        return "0 Bytes"

    value = Decimal(str(size_bytes))
    unit = 0
    while value >= 1024 and unit < len(SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    text = f"{rounded:f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {SIZE_UNITS[unit]}"


def format_duration(seconds: Optional[Number]) -> str:
    """M:SS, or H:MM:SS once the duration reaches an hour"""
    if not seconds or not _finite(seconds) or seconds <= 0:
        return "0:00"

    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
