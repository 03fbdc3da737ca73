from enum import Enum, auto
from typing import Optional, Tuple
from urllib.parse import urlparse

from mediagrab.core.errors import InvalidInput, InvalidInputReason

SUPPORTED_DOMAINS: Tuple[str, ...] = (
    "youtube.com",
    "youtu.be",
    "instagram.com",
    "facebook.com",
    "fb.com",
    "tiktok.com",
    "twitter.com",
    "x.com",
    "vimeo.com",
    "dailymotion.com",
)

# Checked in order, first hit wins
PLATFORM_NAMES: Tuple[Tuple[str, str], ...] = (
    ("youtube.com", "YouTube"),
    ("youtu.be", "YouTube"),
    ("instagram.com", "Instagram"),
    ("facebook.com", "Facebook"),
    ("fb.com", "Facebook"),
    ("tiktok.com", "TikTok"),
    ("twitter.com", "Twitter"),
    ("x.com", "Twitter"),
    ("vimeo.com", "Vimeo"),
    ("dailymotion.com", "Dailymotion"),
)

UNKNOWN_PLATFORM = "Unknown Platform"


class UrlValidationResult(Enum):
    """URL validation result without throwing exceptions"""
    OK = auto()
    EMPTY = auto()
    INVALID = auto()
    UNSUPPORTED = auto()


def get_domain(url: str) -> Optional[str]:
    """Lower-cased host without a leading 'www.', or None"""
    try:
        hostname = urlparse(url.strip()).hostname
    except ValueError:
        return None
    if not hostname:
        return None
    hostname = hostname.lower().rstrip(".")
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def _matches(domain: str, supported: str) -> bool:
    return domain == supported or domain.endswith("." + supported)


def get_platform_name(url: str) -> str:
    domain = get_domain(url)
    if domain:
        for supported, name in PLATFORM_NAMES:
            if _matches(domain, supported):
                return name
    return UNKNOWN_PLATFORM


class SecurityValidator:
    """
    Validate user-supplied URLs before anything reaches yt-dlp.
    Only http(s) URLs on a supported platform pass.
    """

    @staticmethod
    def validate_url(url: Optional[str]) -> UrlValidationResult:
        if url is None or not url.strip():
            return UrlValidationResult.EMPTY

        try:
            parsed = urlparse(url.strip())
        except ValueError:
            return UrlValidationResult.INVALID

        if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
            return UrlValidationResult.INVALID

        domain = get_domain(url)
        if not domain:
            return UrlValidationResult.INVALID

        if not any(_matches(domain, supported) for supported in SUPPORTED_DOMAINS):
            return UrlValidationResult.UNSUPPORTED

        return UrlValidationResult.OK

    @staticmethod
    def ensure_valid(url: Optional[str]) -> str:
        """Return the stripped URL or raise InvalidInput"""
        result = SecurityValidator.validate_url(url)

        if result == UrlValidationResult.EMPTY:
            raise InvalidInput(InvalidInputReason.EMPTY, "URL is required")
        if result == UrlValidationResult.INVALID:
            raise InvalidInput(InvalidInputReason.MALFORMED, "Invalid URL format")
        if result == UrlValidationResult.UNSUPPORTED:
            raise InvalidInput(
                InvalidInputReason.UNSUPPORTED,
                "This platform is not supported",
                domain=get_domain(url),
            )

        return url.strip()
