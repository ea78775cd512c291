"""
Dictionary applier: user-defined phrase -> replacement substitution.

Matching is case-insensitive and whole-word: the escaped phrase must not touch a
word character on either side, so "AI" never matches inside "MAIL" and "C++" still
matches on its own but not inside "C++x". Entries apply in order, each
one to the text produced by the entries before it. A replacement that contains a
later entry's phrase is therefore rewritten again by that later entry.
"""
from __future__ import annotations

import re
from typing import Any, Iterable, Mapping


def entry_fields(entry: Any) -> tuple[str, str]:
    """(phrase, replacement) from a mapping, a DictionaryEntry or a pydantic schema."""
    if isinstance(entry, Mapping):
        return str(entry.get("phrase") or ""), str(entry.get("replacement") or "")
    return str(getattr(entry, "phrase", "") or ""), str(getattr(entry, "replacement", "") or "")


def phrase_pattern(phrase: str) -> re.Pattern[str]:
    """Whole-word, case-insensitive pattern for a literal phrase."""
    return re.compile(rf"(?<!\w){re.escape(phrase)}(?!\w)", re.IGNORECASE)


def apply_dictionary(text: str, entries: Iterable[Any] | None) -> str:
    """Apply every entry in sequence. No entries -> text unchanged."""
    if not text or not entries:
        return text
    result = text
    for entry in entries:
        phrase, replacement = entry_fields(entry)
        if not phrase.strip():
            continue
        # Callable replacement: inserted literally, no backslash or group expansion
        result = phrase_pattern(phrase).sub(lambda _m, r=replacement: r, result)
    return result
