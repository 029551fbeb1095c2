"""
String-level helpers for keyword matching.

Edit distance is the optimal string alignment variant of Damerau-Levenshtein:
insertions, deletions, substitutions and adjacent transpositions all cost 1.
"""

import re
from typing import List

_TOKEN_SPLIT = re.compile(r"\W+")

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "is", "are", "was", "it", "i", "you",
    "的", "了", "在", "是", "我", "有", "和", "就", "不", "人", "都", "一", "一个",
})


def normalize(text: str, case_sensitive: bool = False) -> str:
    """Case-fold unless matching is case sensitive"""
    return text if case_sensitive else text.casefold()


def find_positions(text: str, keyword: str, case_sensitive: bool = False) -> List[int]:
    """All (possibly overlapping) start offsets of keyword in text"""
    if not keyword:
        return []
    haystack = normalize(text, case_sensitive)
    needle = normalize(keyword, case_sensitive)

    positions = []
    pos = haystack.find(needle)
    while pos != -1:
        positions.append(pos)
        pos = haystack.find(needle, pos + 1)
    return positions


def edit_distance(a: str, b: str) -> int:
    """Damerau-Levenshtein distance (optimal string alignment)"""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Three rolling rows: i-2, i-1, i
    two_back: List[int] = []
    prev = list(range(len(b) + 1))
    for i in range(1, len(a) + 1):
        curr = [i] + [0] * len(b)
        for j in range(1, len(b) + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            curr[j] = min(
                prev[j] + 1,         # deletion
                curr[j - 1] + 1,     # insertion
                prev[j - 1] + cost,  # substitution
            )
            if (
                i > 1 and j > 1
                and a[i - 1] == b[j - 2]
                and a[i - 2] == b[j - 1]
            ):
                curr[j] = min(curr[j], two_back[j - 2] + 1)  # transposition
        two_back, prev = prev, curr
    return prev[len(b)]


def similarity(a: str, b: str) -> float:
    """1 - distance / longest length, in [0, 1]"""
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a, b) / longest


def tokenize(text: str, min_length: int = 2) -> List[str]:
    """Lower-cased word tokens without stop words"""
    words = _TOKEN_SPLIT.split(text.casefold())
    return [w for w in words if len(w) >= min_length and w not in STOP_WORDS]
