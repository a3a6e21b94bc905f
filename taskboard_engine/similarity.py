"""Title similarity and near-duplicate detection."""

from __future__ import annotations

from typing import Callable, Iterable

import numpy as np

DUPLICATE_THRESHOLD = 0.7


def normalize_title(value: str | None) -> str:
    return (value or "").strip().lower()


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance between two strings, one numpy row per character of ``a``."""

    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    codes = np.fromiter((ord(ch) for ch in b), dtype=np.int64, count=len(b))
    offsets = np.arange(len(b) + 1, dtype=np.int64)
    previous = offsets.copy()

    for row, ch in enumerate(a, start=1):
        substitution = (codes != ord(ch)).astype(np.int64)
        current = np.empty_like(previous)
        current[0] = row
        current[1:] = np.minimum(previous[:-1] + substitution, previous[1:] + 1)
        # Insertions chain left to right: current[j] = min_k<=j(current[k] + j - k).
        previous = np.minimum.accumulate(current - offsets) + offsets

    return int(previous[-1])


def similarity(a: str | None, b: str | None) -> float:
    """Return 1 - distance / longest length over trimmed, lower-cased strings."""

    left = normalize_title(a)
    right = normalize_title(b)
    longest = max(len(left), len(right))
    if longest == 0:
        return 1.0
    return 1.0 - levenshtein_distance(left, right) / longest


def find_duplicates(
    candidate,
    existing: Iterable,
    threshold: float = DUPLICATE_THRESHOLD,
    scorer: Callable[[str, str], float] | None = None,
) -> list[str]:
    """Ids of ``existing`` items whose title is at least ``threshold`` similar to the candidate's.

    The candidate itself is skipped; ids come back in the order of ``existing``.
    """

    scorer = scorer or similarity
    matches = []
    for item in existing:
        if item.id == candidate.id:
            continue
        if scorer(candidate.title, item.title) >= threshold:
            matches.append(item.id)
    return matches
