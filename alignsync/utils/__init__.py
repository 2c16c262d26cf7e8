from .filenames import (
    base_name_from_url,
    extract_filename,
    short_filename,
    strip_extension,
)
from .fuzzy import clean_key, fuzzy_equals, tokenize_name

__all__ = [
    "base_name_from_url",
    "extract_filename",
    "short_filename",
    "strip_extension",
    "clean_key",
    "fuzzy_equals",
    "tokenize_name",
]
