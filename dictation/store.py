"""
In-memory store for access tokens, transcriptions, slices and dictionary entries.

Stands in for the persistence collaborator. One instance per process, reached through
get_store(); everything runs on the server's event loop so no locking is done.
"""
from __future__ import annotations

import time
import uuid

from dictation.models import DictionaryEntry, Slice, Transcription


def generate_id() -> str:
    """Generate a new record id (UUID hex, 12 chars)."""
    return uuid.uuid4().hex[:12]


class MemoryStore:
    def __init__(self) -> None:
        self._tokens: dict[str, str] = {}
        self._transcriptions: dict[str, Transcription] = {}
        # transcription_id -> {slice_index -> Slice}
        self._slices: dict[str, dict[int, Slice]] = {}
        # entry_id -> DictionaryEntry; dict keeps insertion order
        self._dictionary: dict[str, DictionaryEntry] = {}

    # --- identity ---

    def register_token(self, token: str, user_id: str) -> None:
        """Called by the identity collaborator once it has issued a token."""
        self._tokens[token] = user_id

    def user_for_token(self, token: str) -> str | None:
        return self._tokens.get(token)

    # --- transcriptions ---

    def create_transcription(self, user_id: str) -> Transcription:
        t = Transcription(id=generate_id(), user_id=user_id)
        self._transcriptions[t.id] = t
        self._slices[t.id] = {}
        return t

    def get_transcription(self, transcription_id: str) -> Transcription | None:
        return self._transcriptions.get(transcription_id)

    def list_transcriptions(self, user_id: str) -> list[Transcription]:
        """Caller's transcriptions, newest first."""
        owned = [t for t in self._transcriptions.values() if t.user_id == user_id]
        return sorted(owned, key=lambda t: t.created_at, reverse=True)

    def finish_transcription(self, transcription_id: str, final_text: str) -> Transcription:
        """Store final text and mark done. Raises KeyError for unknown id."""
        t = self._transcriptions[transcription_id]
        t.final_text = final_text
        t.status = "done"
        t.updated_at = time.time()
        return t

    def delete_transcription(self, transcription_id: str) -> bool:
        """Remove transcription and its slices. Return True if it existed."""
        self._slices.pop(transcription_id, None)
        return self._transcriptions.pop(transcription_id, None) is not None

    # --- slices ---

    def add_slice(self, transcription_id: str, index: int, text: str) -> Slice:
        """Store one slice result. A resubmitted index replaces the earlier result."""
        s = Slice(transcription_id=transcription_id, index=index, text=text or "")
        self._slices.setdefault(transcription_id, {})[index] = s
        return s

    def list_slices(self, transcription_id: str) -> list[Slice]:
        return list(self._slices.get(transcription_id, {}).values())

    def partials(self, transcription_id: str) -> dict[int, str]:
        """Partial map for the merger: slice index -> text."""
        return {s.index: s.text for s in self.list_slices(transcription_id)}

    # --- dictionary ---

    def list_dictionary(self, user_id: str) -> list[DictionaryEntry]:
        """User's entries in insertion order."""
        return [e for e in self._dictionary.values() if e.user_id == user_id]

    def get_dictionary_entry(self, entry_id: str) -> DictionaryEntry | None:
        return self._dictionary.get(entry_id)

    def add_dictionary_entry(self, user_id: str, phrase: str, replacement: str) -> DictionaryEntry:
        entry = DictionaryEntry(id=generate_id(), user_id=user_id, phrase=phrase, replacement=replacement)
        self._dictionary[entry.id] = entry
        return entry

    def update_dictionary_entry(self, entry_id: str, phrase: str, replacement: str) -> DictionaryEntry:
        """Update in place; position in the user's list is unchanged. Raises KeyError for unknown id."""
        entry = self._dictionary[entry_id]
        entry.phrase = phrase
        entry.replacement = replacement
        return entry

    def delete_dictionary_entry(self, entry_id: str) -> bool:
        return self._dictionary.pop(entry_id, None) is not None


_store: MemoryStore | None = None


def get_store() -> MemoryStore:
    """Process-wide store, created on first use."""
    global _store
    if _store is None:
        _store = MemoryStore()
    return _store


def reset_store() -> MemoryStore:
    """Replace the process-wide store with an empty one (tests, dev reloads)."""
    global _store
    _store = MemoryStore()
    return _store
