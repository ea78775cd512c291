"""STT: swappable slice transcription providers."""
from .base import (
    INVALID_API_KEY,
    QUOTA_EXCEEDED,
    TRANSCRIPTION_FAILED,
    SpeechProviderError,
    SpeechToText,
    error_for_status,
)
from .cloudflare import CloudflareWhisperSTT

__all__ = [
    "INVALID_API_KEY",
    "QUOTA_EXCEEDED",
    "TRANSCRIPTION_FAILED",
    "SpeechProviderError",
    "SpeechToText",
    "error_for_status",
    "CloudflareWhisperSTT",
]
