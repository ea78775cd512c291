"""Schemas for the personal dictionary API (phrase -> replacement)."""
from __future__ import annotations

from pydantic import BaseModel, Field


class DictionaryEntryIn(BaseModel):
    """Create/update body. Both fields are required; missing ones are answered with 400."""

    phrase: str | None = Field(None, description="Phrase to match (case-insensitive, whole word)")
    replacement: str | None = Field(None, description="Exact text written instead")


class DictionaryEntryOut(BaseModel):
    id: str
    phrase: str
    replacement: str
    created_at: float = Field(..., alias="createdAt")

    class Config:
        populate_by_name = True


class DictionaryEntryResponse(BaseModel):
    entry: DictionaryEntryOut


class DictionaryListResponse(BaseModel):
    entries: list[DictionaryEntryOut] = Field(default_factory=list, description="Insertion order")


class OkResponse(BaseModel):
    ok: bool = True
