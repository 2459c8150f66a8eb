"""Keyword-overlap scoring and top-K selection for generated candidates.

Scores are computed once per batch and persisted; nothing here touches I/O.
"""

from __future__ import annotations

import math
import re
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")

SCORE_FLOOR = 0.05
MIN_TOP_K = 1
MAX_TOP_K = 5
DEFAULT_TOP_K = 3

_NON_WORD = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str | None) -> set[str]:
    """Lowercase, replace punctuation with spaces, split on whitespace."""
    if not text:
        return set()
    return set(_NON_WORD.sub(" ", text.lower()).split())


def keyword_score(
    intended: str | None,
    label: str | None = None,
    description: str | None = None,
    provider_summary: str | None = None,
) -> float:
    """Fraction of intended tokens found in the candidate's text.

    Never below SCORE_FLOOR, so every candidate keeps a usable score even
    when the provider returned nothing descriptive.
    """
    wanted = tokenize(intended)
    if not wanted:
        return SCORE_FLOOR
    found = tokenize(label) | tokenize(description) | tokenize(provider_summary)
    return max(len(wanted & found) / len(wanted), SCORE_FLOOR)


def clamp_top_k(value: float | int | None, default: int = DEFAULT_TOP_K) -> int:
    if value is None:
        return default
    try:
        k = math.floor(float(value))
    except (TypeError, ValueError, OverflowError):
        return default
    return max(MIN_TOP_K, min(MAX_TOP_K, k))


def select_top_k(
    items: Sequence[T],
    k: float | int | None,
    key: Callable[[T], float],
) -> list[int]:
    """Indices of the K highest-scoring items.

    ``sorted`` is stable, so equal scores keep their original order.
    """
    count = clamp_top_k(k)
    ranked = sorted(range(len(items)), key=lambda i: key(items[i]), reverse=True)
    return ranked[:count]
