import os
import re
import unicodedata
from typing import Optional

WINDOWS_RESERVED = {
    'CON', 'PRN', 'AUX', 'NUL',
    'COM1', 'COM2', 'COM3', 'COM4', 'COM5', 'COM6', 'COM7', 'COM8', 'COM9',
    'LPT1', 'LPT2', 'LPT3', 'LPT4', 'LPT5', 'LPT6', 'LPT7', 'LPT8', 'LPT9'
}


def sanitize_filename(name: str, max_length: int = 255) -> str:
    """Sanitize filename for cross-platform compatibility"""
    name = unicodedata.normalize("NFKC", name)
    name = re.sub(r'[\\/:*?"<>|\x00-\x1f]', '_', name)

    stem = name.split(".", 1)[0]
    if stem.upper() in WINDOWS_RESERVED:
        name = f"_{name}"

    return name[:max_length].strip()


def resolve_in_directory(directory: str, filename: str) -> Optional[str]:
    """Absolute path of filename inside directory, or None if it escapes it"""
    if not filename or filename in (".", "..") or os.path.basename(filename) != filename:
        return None

    root = os.path.realpath(directory)
    path = os.path.realpath(os.path.join(root, filename))
    if os.path.dirname(path) != root:
        return None
    return path
