"""Error taxonomy shared by the services and the HTTP layer.

Services raise these; ``mediagrab.main`` maps them to HTTP responses and the
selection session maps them to user-facing messages.
"""
from enum import Enum
from typing import Any, Dict


class InvalidInputReason(str, Enum):
    EMPTY = "empty"
    MALFORMED = "malformed"
    UNSUPPORTED = "unsupported"


class UpstreamErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    TIMEOUT = "timeout"
    UPSTREAM_FAILURE = "upstream_failure"


class MediaGrabError(Exception):
    """Base exception for all mediagrab errors"""

    code = "error"
    message_key = "error.internal"
    status_code = 500

    def __init__(self, message: str = "", **params: Any):
        super().__init__(message or self.code)
        self.params: Dict[str, Any] = params


class InvalidInput(MediaGrabError):
    """URL is empty, malformed, or not on a supported platform"""

    status_code = 400

    def __init__(self, reason: InvalidInputReason, message: str = "", **params: Any):
        super().__init__(message or f"Invalid input: {reason.value}", **params)
        self.reason = reason

    @property
    def code(self) -> str:
        return f"invalid_input.{self.reason.value}"

    @property
    def message_key(self) -> str:
        return f"error.invalid_input.{self.reason.value}"


class UpstreamUnavailable(MediaGrabError):
    """yt-dlp failed, timed out, or produced output we could not decode"""

    _status_codes = {
        UpstreamErrorKind.NOT_FOUND: 404,
        UpstreamErrorKind.TIMEOUT: 504,
        UpstreamErrorKind.UPSTREAM_FAILURE: 502,
    }

    def __init__(self, kind: UpstreamErrorKind, message: str = "", **params: Any):
        super().__init__(message or f"Upstream unavailable: {kind.value}", **params)
        self.kind = kind

    @property
    def code(self) -> str:
        return f"upstream.{self.kind.value}"

    @property
    def message_key(self) -> str:
        return f"error.upstream.{self.kind.value}"

    @property
    def status_code(self) -> int:
        return self._status_codes[self.kind]


class InvalidUpstreamData(MediaGrabError):
    """yt-dlp succeeded but its format list is structurally broken"""

    code = "invalid_upstream_data"
    message_key = "error.invalid_upstream_data"
    status_code = 502


class DownloadNotFound(MediaGrabError):
    """Requested file is not (or no longer) in the download directory"""

    code = "file_not_found"
    message_key = "error.file_not_found"
    status_code = 404
