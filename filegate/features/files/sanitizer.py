"""
Filename and directory sanitization.

Pure functions, no I/O. Untrusted names either come back clean or as None.
"""

import re

MAX_FILENAME_LENGTH = 255

VALID_DIRECTORIES = frozenset({"inbound", "outbound"})

_PATH_SEPARATORS = re.compile(r"[\\/]")
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def is_valid_directory(directory: str | None) -> bool:
    """Directory tag must be exactly "inbound" or "outbound"."""
    return directory in VALID_DIRECTORIES


def sanitize_filename(raw_name: str | None) -> str | None:
    """
    Sanitize an untrusted file name.

    - keeps only the last path segment (both / and \\ separate segments)
    - replaces every char outside [A-Za-z0-9._-] with "_"
    - truncates to 255 characters
    - rejects names that are empty, blank, or only dots and underscores

    Returns:
        The clean name, or None when the name is rejected
    """
    if not isinstance(raw_name, str) or not raw_name.strip():
        return None

    name = _PATH_SEPARATORS.split(raw_name)[-1]
    if not name.strip():
        return None

    name = _UNSAFE_CHARS.sub("_", name)[:MAX_FILENAME_LENGTH]

    # Guards against "...", "___" and friends
    if not name.replace(".", "").replace("_", ""):
        return None

    return name


def file_extension(name: str) -> str:
    """Lowercased extension including the dot ("" when there is none)."""
    index = name.rfind(".")
    if index == -1:
        return ""
    return name[index:].lower()
