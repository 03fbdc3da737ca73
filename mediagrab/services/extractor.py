import asyncio
import json
import logging
import os
from typing import Any, Dict, Optional, Protocol

from mediagrab.config.settings import config
from mediagrab.core.errors import InvalidUpstreamData, UpstreamErrorKind, UpstreamUnavailable
from mediagrab.models.format import VideoMetadata
from mediagrab.services.format import FormatDecision
from mediagrab.services.ytdlp import CompletedProcess, SubprocessExecutor, YTDLPCommandBuilder
from mediagrab.utils.locale import safe_url_for_log

logger = logging.getLogger(__name__)

STDERR_MAX_CHARS = 200

# Lower-cased fragments of yt-dlp error output meaning "nothing to fetch here"
NOT_FOUND_MARKERS = (
    "unsupported url",
    "video unavailable",
    "this video is unavailable",
    "http error 404",
    "does not exist",
    "not found",
    "private video",
    "has been removed",
    "no video formats found",
)


class FormatSource(Protocol):
    """What the catalog service needs from the extraction tool"""

    async def fetch_raw_formats(self, url: str) -> VideoMetadata:
        ...

    async def perform_download(self, url: str, format_id: Optional[str] = None) -> str:
        ...


def classify_failure(stderr: str) -> UpstreamErrorKind:
    lowered = stderr.lower()
    if any(marker in lowered for marker in NOT_FOUND_MARKERS):
        return UpstreamErrorKind.NOT_FOUND
    if "timed out" in lowered:
        return UpstreamErrorKind.TIMEOUT
    return UpstreamErrorKind.UPSTREAM_FAILURE


def record_from_ytdlp(fmt: Dict[str, Any], duration: Optional[float] = None) -> Dict[str, Any]:
    """Map one yt-dlp format dict onto RawFormatRecord fields"""
    resolution = fmt.get("resolution")
    if not resolution and fmt.get("width") and fmt.get("height"):
        resolution = f"{fmt['width']}x{fmt['height']}"

    size = fmt.get("filesize")
    if size is None:
        size = fmt.get("filesize_approx")

    return {
        "id": fmt.get("format_id"),
        "container": fmt.get("ext"),
        "resolution": resolution,
        "size_bytes": size,
        "video_codec": fmt.get("vcodec"),
        "audio_codec": fmt.get("acodec"),
        "note": fmt.get("format_note") or "",
        "duration": fmt.get("duration") or duration,
    }


def _raise_for_process(result: CompletedProcess) -> None:
    if result.returncode == 0:
        return
    error_msg = result.stderr.decode(errors="ignore").strip()
    kind = classify_failure(error_msg)
    raise UpstreamUnavailable(kind, error_msg[:STDERR_MAX_CHARS] or "yt-dlp failed")


class YtDlpFormatSource:
    """FormatSource backed by the yt-dlp executable"""

    async def fetch_raw_formats(self, url: str) -> VideoMetadata:
        cmd = YTDLPCommandBuilder.build_info_command(url)
        logger.info(f"Fetching formats for {safe_url_for_log(url)}")

        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.download.info_timeout)
        except asyncio.TimeoutError:
            raise UpstreamUnavailable(UpstreamErrorKind.TIMEOUT, "yt-dlp timeout")
        except OSError as e:
            raise UpstreamUnavailable(UpstreamErrorKind.UPSTREAM_FAILURE, f"Cannot run yt-dlp: {str(e)}")

        _raise_for_process(result)

        stdout = result.stdout.decode(errors="ignore").strip()
        if not stdout:
            # Filtered out (e.g. live stream) or nothing extractable
            raise UpstreamUnavailable(UpstreamErrorKind.NOT_FOUND, "No media found")

        try:
            info = json.loads(stdout.splitlines()[0])
        except json.JSONDecodeError:
            raise UpstreamUnavailable(UpstreamErrorKind.UPSTREAM_FAILURE, "Failed to parse yt-dlp output")

        if not isinstance(info, dict):
            raise InvalidUpstreamData("yt-dlp info is not an object")

        duration = info.get("duration")
        formats = info.get("formats")
        if formats is None:
            # Single-format extractors put the format fields on the info itself
            formats = [info] if info.get("format_id") else []
        if not isinstance(formats, list):
            raise InvalidUpstreamData("yt-dlp formats is not a list")

        return VideoMetadata(
            formats=[record_from_ytdlp(f, duration) if isinstance(f, dict) else f for f in formats],
            title=info.get("title"),
            thumbnail=info.get("thumbnail"),
            duration=duration,
            webpage_url=info.get("webpage_url"),
        )

    async def perform_download(self, url: str, format_id: Optional[str] = None) -> str:
        output_dir = config.download.output_dir
        os.makedirs(output_dir, exist_ok=True)

        format_str = FormatDecision.decide(format_id)
        template = os.path.join(output_dir, config.download.output_template)
        cmd = YTDLPCommandBuilder.build_download_command(url, format_str, template)
        logger.info(f"Downloading {safe_url_for_log(url)} with format {format_str}")

        try:
            result = await SubprocessExecutor.run(cmd, timeout=config.download.timeout_seconds)
        except asyncio.TimeoutError:
            raise UpstreamUnavailable(UpstreamErrorKind.TIMEOUT, "yt-dlp download timeout")
        except OSError as e:
            raise UpstreamUnavailable(UpstreamErrorKind.UPSTREAM_FAILURE, f"Cannot run yt-dlp: {str(e)}")

        _raise_for_process(result)

        lines = [line.strip() for line in result.stdout.decode(errors="ignore").splitlines() if line.strip()]
        if not lines:
            raise UpstreamUnavailable(
                UpstreamErrorKind.UPSTREAM_FAILURE, "yt-dlp did not report an output file"
            )

        return lines[-1]
