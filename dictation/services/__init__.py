"""Application services: slice transcription and completion."""
from dictation.services.transcription_service import (
    TranscriptionAccessError,
    complete_transcription,
    get_owned_transcription,
    transcribe_slice,
)

__all__ = [
    "TranscriptionAccessError",
    "complete_transcription",
    "get_owned_transcription",
    "transcribe_slice",
]
