"""String helpers used for fuzzy entity matching."""

from __future__ import annotations

import re

_NON_WORD = re.compile(r"[^\w\s]")


def normalize(text: str) -> str:
    """Lowercase, trim and strip punctuation."""
    return _NON_WORD.sub("", text.lower().strip())


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between ``a`` and ``b`` (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity_ratio(a: str, b: str) -> float:
    """Return ``1 - distance / max(len)``; two empty strings are identical."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1 - levenshtein_distance(a, b) / longest

