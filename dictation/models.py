"""
Domain records kept by the store.

Slice text is empty until the provider answers and is never changed afterwards.
A Transcription moves processing -> done exactly once, when completion succeeds.
"""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Literal

TranscriptionStatus = Literal["processing", "done"]


@dataclass
class Slice:
    """One transcribed audio slice, keyed by its index within a transcription."""

    transcription_id: str
    index: int
    text: str = ""
    created_at: float = field(default_factory=time.time)


@dataclass
class DictionaryEntry:
    """User-defined phrase -> replacement, matched case-insensitively on whole words."""

    id: str
    user_id: str
    phrase: str
    replacement: str
    created_at: float = field(default_factory=time.time)


@dataclass
class Transcription:
    id: str
    user_id: str
    status: TranscriptionStatus = "processing"
    final_text: str | None = None
    created_at: float = field(default_factory=time.time)
    updated_at: float = field(default_factory=time.time)
