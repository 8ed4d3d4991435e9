"""Helpers for splitting batched lookups under store query limits."""

from collections.abc import Iterable
from typing import TypeVar

T = TypeVar("T")


def unique_chunks(items: Iterable[T], size: int) -> list[list[T]]:
    """Drop falsy and duplicate items (keeping first-seen order), then split into chunks.

    Args:
        items: Values to look up (e.g. document IDs).
        size: Maximum chunk length (e.g. Firestore's 30-value "in" cap).

    Returns:
        List of chunks, empty when there is nothing to look up.
    """
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    unique = list(dict.fromkeys(item for item in items if item))
    return [unique[i : i + size] for i in range(0, len(unique), size)]
