"""
Slice transcription and completion.

- Slice: transcribe one audio slice, create the transcription lazily on the first
  successful slice, store the partial text under its index.
- Complete: load stored partials, merge by index, apply the user's dictionary,
  format with the LLM (best-effort), store the final text and mark done.
"""
from __future__ import annotations

import logging

from dictation.models import Slice, Transcription
from dictation.processing.formatter import PolishFn, format_text
from dictation.processing.merge import merge_partials
from dictation.store import MemoryStore
from dictation.stt.base import SpeechToText

logger = logging.getLogger(__name__)


class TranscriptionAccessError(Exception):
    """Transcription does not exist or belongs to another user."""


def get_owned_transcription(store: MemoryStore, user_id: str, transcription_id: str) -> Transcription:
    """Return the transcription if user_id owns it; raise TranscriptionAccessError otherwise."""
    t = store.get_transcription(transcription_id)
    if t is None or t.user_id != user_id:
        raise TranscriptionAccessError(transcription_id)
    return t


async def transcribe_slice(
    store: MemoryStore,
    stt: SpeechToText,
    user_id: str,
    audio: bytes,
    index: int,
    transcription_id: str | None = None,
    filename: str = "slice.wav",
) -> tuple[Transcription, Slice]:
    """
    Transcribe and store one slice. Ownership is checked before the provider is called.
    Raises TranscriptionAccessError, SpeechProviderError (nothing stored in that case).
    """
    transcription = None
    if transcription_id:
        transcription = get_owned_transcription(store, user_id, transcription_id)

    text = await stt.transcribe(audio, filename)

    if transcription is None:
        transcription = store.create_transcription(user_id)
        logger.info("Transcription %s created for user %s", transcription.id, user_id)
    stored = store.add_slice(transcription.id, index, text)
    logger.info("Slice %s of %s transcribed (%d chars)", index, transcription.id, len(stored.text))
    return transcription, stored


async def complete_transcription(
    store: MemoryStore,
    user_id: str,
    transcription_id: str,
    polish: PolishFn | None = None,
) -> Transcription:
    """
    Merge, substitute, format and persist. A transcription already done is returned
    unchanged, so status moves processing -> done only once.
    """
    transcription = get_owned_transcription(store, user_id, transcription_id)
    if transcription.status == "done":
        return transcription

    merged = merge_partials(store.partials(transcription_id))
    entries = store.list_dictionary(user_id)
    formatted = await format_text(merged, entries, polish=polish)

    logger.info(
        "Transcription %s completed: %d slices, %d dictionary entries, %d chars",
        transcription_id,
        len(store.list_slices(transcription_id)),
        len(entries),
        len(formatted or ""),
    )
    return store.finish_transcription(transcription_id, formatted or "")
