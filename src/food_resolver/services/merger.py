"""Deduplication and ranking of resolved foods."""

import re
from collections.abc import Iterable

from food_resolver.domain.food import ResolvedFood

_NON_WORD = re.compile(r"[\W_]+", re.UNICODE)


def normalize_name(value: str | None) -> str | None:
    """Case-fold and collapse punctuation/whitespace; empty becomes None."""
    if value is None:
        return None
    collapsed = _NON_WORD.sub(" ", value.casefold()).strip()
    return collapsed or None


def dedup_key(food: ResolvedFood) -> tuple[str | None, str | None]:
    """Return the identity used to detect duplicate foods."""
    return normalize_name(food.name), normalize_name(food.brand)


def _rank_key(indexed: tuple[int, ResolvedFood]) -> tuple[float, int, int]:
    index, food = indexed
    return -food.confidence, food.source.priority, index


def merge(
    results: Iterable[ResolvedFood], limit: int | None = None
) -> list[ResolvedFood]:
    """Return distinct foods ordered by confidence, then provider priority."""
    ranked = sorted(enumerate(results), key=_rank_key)
    seen: set[tuple[str | None, str | None]] = set()
    merged: list[ResolvedFood] = []
    for _, food in ranked:
        key = dedup_key(food)
        if key in seen:
            continue
        seen.add(key)
        merged.append(food)
        if limit is not None and len(merged) >= limit:
            break
    return merged
