"""Filename keys extracted from media URLs."""
from typing import Any

NO_FILE_LABEL = "(no file)"


def _path_part(url: str) -> str:
    return url.split("?", 1)[0]


def extract_filename(url: Any) -> str:
    """Return the lowercased last path segment of ``url`` without its query string."""
    if not isinstance(url, str) or not url:
        return ""
    path = _path_part(url)
    return path[path.rfind("/") + 1:].lower()


def strip_extension(filename: str) -> str:
    """Drop the extension, unless the only dot is the leading one (``.env``)."""
    if not filename:
        return ""
    last_dot = filename.rfind(".")
    return filename[:last_dot] if last_dot > 0 else filename


def base_name_from_url(url: Any) -> str:
    return strip_extension(extract_filename(url))


def short_filename(url: Any) -> str:
    """Display name for a URL: last path segment with its original casing."""
    if not isinstance(url, str) or not url:
        return NO_FILE_LABEL
    path = _path_part(url)
    name = path[path.rfind("/") + 1:]
    return name or NO_FILE_LABEL
