"""
FastAPI app: sliced dictation backend.

Client records audio, cuts it into fixed-duration slices and POSTs each one to
/api/transcribe-slice (multipart: audio, sliceIndex, transcriptionId). When recording
stops and every slice has returned, the client calls /api/transcription/complete:
stored partials are merged by index, the user's dictionary is applied and the text is
formatted by an LLM. The personal dictionary and past transcriptions have CRUD routes.
A client may open the transcription first (POST /api/transcriptions) so every slice
carries its id. Error bodies are {"error": ...} with an optional "code".
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from dictation.auth import get_current_user
from dictation.config import get_settings, parse_dev_tokens
from dictation.logging_config import configure_logging
from dictation.models import DictionaryEntry, Transcription
from dictation.processing.formatter import PolishFn
from dictation.schemas import (
    CompleteRequest,
    CompleteResponse,
    DictionaryEntryIn,
    DictionaryEntryOut,
    DictionaryEntryResponse,
    DictionaryListResponse,
    OkResponse,
    SliceResponse,
    TranscriptionCreated,
    TranscriptionListResponse,
    TranscriptionOut,
)
from dictation.services.transcription_service import (
    TranscriptionAccessError,
    complete_transcription,
    get_owned_transcription,
    transcribe_slice,
)
from dictation.store import MemoryStore, get_store
from dictation.stt.base import SpeechProviderError, SpeechToText
from dictation.stt.cloudflare import CloudflareWhisperSTT

logger = logging.getLogger(__name__)


def get_stt() -> SpeechToText:
    """Slice transcription provider (overridable dependency)."""
    return CloudflareWhisperSTT()


def get_polish() -> PolishFn | None:
    """Formatting call; None = configured Workers AI model (overridable dependency)."""
    return None


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    settings = get_settings()
    store = get_store()
    for token, user_id in parse_dev_tokens(settings.DEV_API_TOKENS).items():
        store.register_token(token, user_id)
    yield


app = FastAPI(
    title="Sliced Dictation",
    description="Slice transcription, ordered merge, personal dictionary and LLM formatting",
    lifespan=lifespan,
)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Every error body is {"error": message} (plus "code" for provider failures)."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"error": "Invalid request"})


def _transcription_out(t: Transcription) -> TranscriptionOut:
    return TranscriptionOut(
        id=t.id,
        status=t.status,
        final_text=t.final_text,
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _entry_out(e: DictionaryEntry) -> DictionaryEntryOut:
    return DictionaryEntryOut(id=e.id, phrase=e.phrase, replacement=e.replacement, created_at=e.created_at)


def _parse_slice_index(raw: str | None) -> int:
    """sliceIndex form field; absent means 0. Non-integer or negative -> 400."""
    if raw is None or not raw.strip():
        return 0
    try:
        index = int(raw.strip())
    except ValueError:
        raise HTTPException(status_code=400, detail="sliceIndex must be an integer")
    if index < 0:
        raise HTTPException(status_code=400, detail="sliceIndex must be non-negative")
    return index


def _owned_entry(store: MemoryStore, user_id: str, entry_id: str) -> DictionaryEntry:
    entry = store.get_dictionary_entry(entry_id)
    if entry is None or entry.user_id != user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return entry


def _require_entry_fields(body: DictionaryEntryIn) -> tuple[str, str]:
    phrase = (body.phrase or "").strip()
    replacement = (body.replacement or "").strip()
    if not phrase or not replacement:
        raise HTTPException(status_code=400, detail="Missing fields")
    return phrase, replacement


@app.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@app.post("/api/transcribe-slice", response_model=SliceResponse, response_model_by_alias=True)
async def transcribe_slice_route(
    audio: UploadFile | None = File(None),
    sliceIndex: str | None = Form(None),
    transcriptionId: str | None = Form(None),
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
    stt: SpeechToText = Depends(get_stt),
):
    """
    Transcribe one slice. Without transcriptionId a new transcription is created
    and its id returned for the following slices.
    Provider errors: 429 {code: insufficient_quota}, 401 {code: invalid_api_key}, 500 otherwise.
    """
    if audio is None:
        raise HTTPException(status_code=400, detail="No audio")
    index = _parse_slice_index(sliceIndex)
    data = await audio.read()
    if not data:
        raise HTTPException(status_code=400, detail="No audio")

    try:
        transcription, stored = await transcribe_slice(
            store,
            stt,
            user_id,
            data,
            index,
            transcription_id=(transcriptionId or "").strip() or None,
            filename=audio.filename or f"slice-{index}.wav",
        )
    except TranscriptionAccessError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    except SpeechProviderError as e:
        logger.warning("Transcribe slice %s failed: %s (%s)", index, e.message, e.code)
        return JSONResponse(status_code=e.status_code, content={"error": e.message, "code": e.code})
    except Exception as e:
        logger.exception("Transcribe slice error: %s", e)
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to transcribe audio. Please try again."},
        )

    return SliceResponse(transcription_id=transcription.id, index=stored.index, text=stored.text)


@app.post("/api/transcription/complete", response_model=CompleteResponse, response_model_by_alias=True)
async def complete_route(
    request: CompleteRequest,
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
    polish: PolishFn | None = Depends(get_polish),
) -> CompleteResponse:
    """Merge stored slices, apply dictionary, format, persist final text."""
    transcription_id = (request.transcription_id or "").strip()
    if not transcription_id:
        raise HTTPException(status_code=400, detail="Missing transcriptionId")
    try:
        transcription = await complete_transcription(store, user_id, transcription_id, polish=polish)
    except TranscriptionAccessError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    except Exception as e:
        logger.exception("Complete transcription error: %s", e)
        raise HTTPException(status_code=500, detail="Internal server error")
    return CompleteResponse(ok=True, final_text=transcription.final_text or "")


@app.post("/api/transcriptions", status_code=201, response_model=TranscriptionCreated, response_model_by_alias=True)
async def create_transcription(
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> TranscriptionCreated:
    """Open an empty transcription up front so every slice of a recording can be sent with its id."""
    transcription = store.create_transcription(user_id)
    logger.info("Transcription %s opened for user %s", transcription.id, user_id)
    return TranscriptionCreated(transcription_id=transcription.id, status=transcription.status)


@app.get("/api/transcriptions", response_model=TranscriptionListResponse, response_model_by_alias=True)
async def list_transcriptions(
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> TranscriptionListResponse:
    return TranscriptionListResponse(
        transcriptions=[_transcription_out(t) for t in store.list_transcriptions(user_id)]
    )


@app.delete("/api/transcriptions/{transcription_id}", response_model=OkResponse)
async def delete_transcription(
    transcription_id: str,
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> OkResponse:
    try:
        get_owned_transcription(store, user_id, transcription_id)
    except TranscriptionAccessError:
        raise HTTPException(status_code=401, detail="Unauthorized")
    store.delete_transcription(transcription_id)
    return OkResponse()


@app.get("/api/dictionary", response_model=DictionaryListResponse, response_model_by_alias=True)
async def list_dictionary(
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> DictionaryListResponse:
    return DictionaryListResponse(entries=[_entry_out(e) for e in store.list_dictionary(user_id)])


@app.post("/api/dictionary", response_model=DictionaryEntryResponse, response_model_by_alias=True)
async def create_dictionary_entry(
    body: DictionaryEntryIn,
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> DictionaryEntryResponse:
    phrase, replacement = _require_entry_fields(body)
    entry = store.add_dictionary_entry(user_id, phrase, replacement)
    return DictionaryEntryResponse(entry=_entry_out(entry))


@app.patch("/api/dictionary/{entry_id}", response_model=DictionaryEntryResponse, response_model_by_alias=True)
async def update_dictionary_entry(
    entry_id: str,
    body: DictionaryEntryIn,
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> DictionaryEntryResponse:
    phrase, replacement = _require_entry_fields(body)
    _owned_entry(store, user_id, entry_id)
    entry = store.update_dictionary_entry(entry_id, phrase, replacement)
    return DictionaryEntryResponse(entry=_entry_out(entry))


@app.delete("/api/dictionary/{entry_id}", response_model=OkResponse)
async def delete_dictionary_entry(
    entry_id: str,
    user_id: str = Depends(get_current_user),
    store: MemoryStore = Depends(get_store),
) -> OkResponse:
    _owned_entry(store, user_id, entry_id)
    store.delete_dictionary_entry(entry_id)
    return OkResponse()
