from .filename import resolve_in_directory, sanitize_filename
from .formatting import format_duration, format_size
from .hash import cache_key, hash_stable

__all__ = ["cache_key", "format_duration", "format_size", "hash_stable", "resolve_in_directory", "sanitize_filename"]
