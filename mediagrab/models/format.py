import math
from enum import Enum
from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Values yt-dlp uses for "no such stream" / "not applicable"
NONE_SENTINELS = frozenset({"", "none", "n/a", "na", "null"})


def is_sentinel(value: Optional[str]) -> bool:
    return value is None or str(value).strip().lower() in NONE_SENTINELS


def lenient_seconds(value: Any) -> Optional[float]:
    """Finite non-negative float, or None for anything else (NaN and inf included)"""
    if value is None or isinstance(value, bool):
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if math.isfinite(seconds) and seconds >= 0 else None


def lenient_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list, tuple, bool)):
        return None
    return str(value).strip()


class FormatClass(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


class RawFormatRecord(BaseModel):
    """One downloadable rendition as reported by yt-dlp.

    Field coercion is lenient: anything unparseable becomes ``None`` so a
    single broken field never rejects the record.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    container: Optional[str] = None
    resolution: Optional[str] = None
    size_bytes: Optional[int] = None
    video_codec: Optional[str] = None
    audio_codec: Optional[str] = None
    note: str = ""
    duration: Optional[float] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v):
        if v is None or isinstance(v, (dict, list, tuple)):
            raise ValueError("format id is required")
        return str(v)

    @field_validator("container", "resolution", "video_codec", "audio_codec", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return lenient_text(v)

    @field_validator("note", mode="before")
    @classmethod
    def coerce_note(cls, v):
        if v is None or isinstance(v, (dict, list, tuple)):
            return ""
        return str(v)

    @field_validator("size_bytes", mode="before")
    @classmethod
    def coerce_size(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            size = int(float(v))
        except (TypeError, ValueError, OverflowError):
            return None
        return size if size >= 0 else None

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        return lenient_seconds(v)


class ClassifiedFormat(RawFormatRecord):
    """A raw record tagged with its class and display strings"""

    format_class: FormatClass
    size_text: str = "Unknown"
    duration_text: str = "Unknown"


class VideoMetadata(BaseModel):
    """What the format source reports for one URL"""

    formats: Any = Field(default_factory=list)
    title: Optional[str] = None
    thumbnail: Optional[str] = None
    duration: Optional[float] = None
    webpage_url: Optional[str] = None

    @field_validator("title", "thumbnail", "webpage_url", mode="before")
    @classmethod
    def coerce_text(cls, v):
        return lenient_text(v) or None

    @field_validator("duration", mode="before")
    @classmethod
    def coerce_duration(cls, v):
        return lenient_seconds(v)


class Catalog(BaseModel):
    """Partitioned, ranked, display-ready formats for one URL"""

    model_config = ConfigDict(frozen=True)

    url: Optional[str] = None
    title: str = "Unknown"
    thumbnail: Optional[str] = None
    platform: str = "Unknown Platform"
    duration: Optional[float] = None
    duration_text: str = "0:00"
    video: Tuple[ClassifiedFormat, ...] = ()
    audio: Tuple[ClassifiedFormat, ...] = ()
    best_video: Optional[ClassifiedFormat] = None
    best_audio: Optional[ClassifiedFormat] = None

    @property
    def formats(self) -> Tuple[ClassifiedFormat, ...]:
        return self.video + self.audio

    def get(self, format_id: str) -> Optional[ClassifiedFormat]:
        for fmt in self.formats:
            if fmt.id == format_id:
                return fmt
        return None
