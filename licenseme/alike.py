"""Text similarity — edit-distance based comparison of license texts."""

from __future__ import annotations

from Levenshtein import distance as levenshtein


def similarity(a: str, b: str) -> float:
    """Similarity of two texts as a percentage in [0, 100]."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 100.0
    return (1.0 - levenshtein(a, b) / longest) * 100.0


def max_similarity(a: str, b: str) -> float:
    """Upper bound of similarity() from the text lengths alone."""
    longest = max(len(a), len(b))
    if longest == 0:
        return 100.0
    return min(len(a), len(b)) / longest * 100.0


def is_alike(target: str, comparison: str, min_percent: float) -> bool:
    """True when target and comparison are at least min_percent similar."""
    if max_similarity(target, comparison) < min_percent:
        return False
    return similarity(target, comparison) >= min_percent
