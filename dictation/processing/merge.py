"""
Slice merger: partial texts keyed by slice index -> one continuous text.

Slices are transcribed independently and may come back in any order, or not at all.
Ordering is by numeric index only, never by arrival; missing indices are gaps and
are skipped. The same function backs the client's live display and the server's
completion step so both agree on the merged text.
"""
from __future__ import annotations

from typing import Any, Mapping


def _coerce_index(key: Any) -> int | None:
    """Slice index as int; None for keys that are not integral numbers (e.g. "abc", "1.5", 2.5)."""
    if isinstance(key, bool):
        return None
    if isinstance(key, int):
        return key
    if isinstance(key, float):
        return int(key) if key.is_integer() else None
    try:
        return int(str(key).strip())
    except ValueError:
        return None


def merge_partials(partials: Mapping[Any, str | None] | None) -> str:
    """
    Join partial texts in ascending index order with single spaces.
    Text is trimmed; empty fragments are dropped. Pure and idempotent.
    """
    if not partials:
        return ""

    indexed: list[tuple[int, str, str]] = []
    for key, text in partials.items():
        index = _coerce_index(key)
        if index is None:
            continue
        # str(key) breaks ties between keys like 1 and "01" so the result never depends on dict order
        indexed.append((index, str(key), (text or "").strip()))
    indexed.sort(key=lambda item: (item[0], item[1]))

    return " ".join(text for _, _, text in indexed if text)
