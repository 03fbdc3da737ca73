from .errors import (
    DownloadNotFound,
    InvalidInput,
    InvalidInputReason,
    InvalidUpstreamData,
    MediaGrabError,
    UpstreamErrorKind,
    UpstreamUnavailable,
)

__all__ = [
    "DownloadNotFound",
    "InvalidInput",
    "InvalidInputReason",
    "InvalidUpstreamData",
    "MediaGrabError",
    "UpstreamErrorKind",
    "UpstreamUnavailable",
]
