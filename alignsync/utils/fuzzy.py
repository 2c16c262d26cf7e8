"""Permissive name comparison for asset/task cross references."""
import re
from typing import Any, List, Optional

from alignsync.config import FuzzyThresholds

_NON_ALNUM = re.compile(r"[^a-z0-9]+")

DEFAULT_THRESHOLDS = FuzzyThresholds()


def clean_key(value: Any) -> str:
    """Lowercase ``value`` and drop everything that is not an ASCII letter or digit."""
    if not isinstance(value, str):
        return ""
    return _NON_ALNUM.sub("", value.lower())


def tokenize_name(value: Any) -> List[str]:
    """Split on runs of non-alphanumerics; repeated tokens are kept once, in order."""
    if not isinstance(value, str):
        return []
    tokens: List[str] = []
    for token in _NON_ALNUM.split(value.lower()):
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def fuzzy_equals(a: Any, b: Any, thresholds: Optional[FuzzyThresholds] = None) -> bool:
    """
    Decide whether two extension-less names refer to the same media.

    Favours false positives: equal or contained cleaned keys match, as do
    names sharing enough tokens or sharing their first token.
    """
    limits = thresholds or DEFAULT_THRESHOLDS
    if not a or not b:
        return False

    ca = clean_key(a)
    cb = clean_key(b)
    if not ca or not cb:
        return False
    if ca == cb:
        return True
    if ca in cb or cb in ca:
        return True

    tokens_a = tokenize_name(a)
    tokens_b = tokenize_name(b)
    if not tokens_a or not tokens_b:
        return False

    shared = [token for token in tokens_b if token in tokens_a]
    if len(shared) >= limits.min_shared:
        return True
    if tokens_a[0] == tokens_b[0] and len(shared) >= limits.min_shared_with_first:
        return True
    return False
