import re
from typing import Iterable, List, NamedTuple, Optional, Sequence, TypeVar

from mediagrab.config.settings import config
from mediagrab.models.format import FormatClass, RawFormatRecord, is_sentinel
from mediagrab.utils.formatting import format_size

R = TypeVar("R", bound=RawFormatRecord)

_LEADING_INT = re.compile(r"\s*(\d+)")

# Sort key for anything we cannot parse; real values are >= 0
UNRANKED = -1


class BestFormats(NamedTuple):
    best_video: Optional[RawFormatRecord]
    best_audio: Optional[RawFormatRecord]


def classify(record: RawFormatRecord) -> FormatClass:
    """Video if the record carries a video codec, audio otherwise.

    Only ``video_codec`` decides: muted video is still video, and records
    with neither codec (storyboards, metadata tracks) land in audio.
    """
    if is_sentinel(record.video_codec):
        return FormatClass.AUDIO
    return FormatClass.VIDEO


def _leading_int(text: Optional[str]) -> int:
    if not text:
        return UNRANKED
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else UNRANKED


def video_width(record: RawFormatRecord) -> int:
    """Width from '<w>x<h>'; UNRANKED when missing or unparseable"""
    if is_sentinel(record.resolution):
        return UNRANKED
    return _leading_int(record.resolution.split("x", 1)[0])


def audio_size_key(record: RawFormatRecord, legacy: bool = False) -> int:
    if record.size_bytes is None:
        return UNRANKED
    if legacy:
        # Leading number of the display string only, units ignored
        return _leading_int(format_size(record.size_bytes))
    return record.size_bytes


def rank_video(records: Iterable[R]) -> List[R]:
    # sorted() is stable with reverse=True, equal widths keep input order
    return sorted(records, key=video_width, reverse=True)


def rank_audio(records: Iterable[R], legacy: Optional[bool] = None) -> List[R]:
    if legacy is None:
        legacy = config.catalog.legacy_audio_ranking
    return sorted(records, key=lambda r: audio_size_key(r, legacy), reverse=True)


def partition(records: Iterable[R]) -> tuple:
    video: List[R] = []
    audio: List[R] = []
    for record in records:
        (video if classify(record) is FormatClass.VIDEO else audio).append(record)
    return video, audio


def pick_best(records: Sequence[R], legacy: Optional[bool] = None) -> BestFormats:
    """Top-ranked video and audio record, or None for an empty class"""
    video, audio = partition(records)
    ranked_video = rank_video(video)
    ranked_audio = rank_audio(audio, legacy=legacy)
    return BestFormats(
        best_video=ranked_video[0] if ranked_video else None,
        best_audio=ranked_audio[0] if ranked_audio else None,
    )


class FormatDecision:
    """Turn a user choice into a yt-dlp format selector"""

    @staticmethod
    def decide(format_id: Optional[str] = None) -> str:
        if format_id:
            # Fall back to the default if the id vanished since the catalog was built
            return f"{format_id}/{config.ytdlp.default_format}"
        return config.ytdlp.default_format
