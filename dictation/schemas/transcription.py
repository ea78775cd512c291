"""
Schemas for the slice transcription and completion API.

Wire names are camelCase (transcriptionId, finalText) to match the recording client;
Python attribute names are snake_case.
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class SliceResponse(BaseModel):
    """Response body for POST /api/transcribe-slice."""

    transcription_id: str = Field(..., alias="transcriptionId", description="Created on the first slice, reused after")
    index: int = Field(..., ge=0, description="Slice index as sent by the client")
    text: str = Field("", description="Partial text for this slice (may be empty)")

    class Config:
        populate_by_name = True


class CompleteRequest(BaseModel):
    """Request body for POST /api/transcription/complete."""

    transcription_id: str | None = Field(None, alias="transcriptionId")

    class Config:
        populate_by_name = True


class CompleteResponse(BaseModel):
    """Response body for POST /api/transcription/complete."""

    ok: bool = True
    final_text: str = Field("", alias="finalText", description="Merged, dictionary-substituted, formatted text")

    class Config:
        populate_by_name = True


class TranscriptionOut(BaseModel):
    id: str
    status: str = Field(..., description="processing | done")
    final_text: str | None = Field(None, alias="finalText")
    created_at: float = Field(..., alias="createdAt")
    updated_at: float = Field(..., alias="updatedAt")

    class Config:
        populate_by_name = True


class TranscriptionCreated(BaseModel):
    """Response body for POST /api/transcriptions."""

    transcription_id: str = Field(..., alias="transcriptionId")
    status: str = "processing"

    class Config:
        populate_by_name = True


class TranscriptionListResponse(BaseModel):
    transcriptions: list[TranscriptionOut] = Field(default_factory=list, description="Newest first")


class ErrorResponse(BaseModel):
    """Provider failure body: human message plus machine-readable code."""

    error: str
    code: str | None = None
