"""Pydantic schemas for API request/response."""
from dictation.schemas.dictionary import (
    DictionaryEntryIn,
    DictionaryEntryOut,
    DictionaryEntryResponse,
    DictionaryListResponse,
    OkResponse,
)
from dictation.schemas.transcription import (
    CompleteRequest,
    CompleteResponse,
    ErrorResponse,
    SliceResponse,
    TranscriptionCreated,
    TranscriptionListResponse,
    TranscriptionOut,
)

__all__ = [
    "CompleteRequest",
    "CompleteResponse",
    "DictionaryEntryIn",
    "DictionaryEntryOut",
    "DictionaryEntryResponse",
    "DictionaryListResponse",
    "ErrorResponse",
    "OkResponse",
    "SliceResponse",
    "TranscriptionCreated",
    "TranscriptionListResponse",
    "TranscriptionOut",
]
