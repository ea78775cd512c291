"""
SpeechToText: abstract interface for slice transcription providers.

One call per slice; the slice is a complete audio file (e.g. WAV or WebM), not raw PCM.
Provider failures surface as SpeechProviderError with a machine-readable code so the
route can tell quota and credential problems apart from everything else.
"""
from __future__ import annotations

from abc import ABC, abstractmethod

QUOTA_EXCEEDED = "insufficient_quota"
INVALID_API_KEY = "invalid_api_key"
TRANSCRIPTION_FAILED = "transcription_failed"


class SpeechProviderError(Exception):
    """Transcription provider failure: code is one of the constants above."""

    def __init__(self, code: str, message: str, status_code: int = 500) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def error_for_status(status_code: int, detail: str = "") -> SpeechProviderError:
    """Map provider HTTP status to a typed error (429 quota, 401/403 credentials, rest generic)."""
    if status_code == 429:
        return SpeechProviderError(
            QUOTA_EXCEEDED,
            "Speech provider quota exceeded. Check your plan and usage limits.",
            status_code=429,
        )
    if status_code in (401, 403):
        return SpeechProviderError(
            INVALID_API_KEY,
            "Invalid speech provider credentials. Check CLOUDFLARE_API_TOKEN.",
            status_code=401,
        )
    return SpeechProviderError(
        TRANSCRIPTION_FAILED,
        f"Failed to transcribe audio ({status_code}). {detail}".strip(),
        status_code=500,
    )


class SpeechToText(ABC):
    """Transcribe one slice of audio. Async; must not block the event loop."""

    @abstractmethod
    async def transcribe(self, audio: bytes, filename: str = "slice.wav") -> str:
        """Return the slice's text (trimmed, possibly empty). Raises SpeechProviderError."""
        ...
