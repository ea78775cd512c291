"""
Client side of the slice API: submit one slice, request completion.

HttpSliceApi talks to the FastAPI service with httpx. Non-2xx answers become
SliceApiError carrying the server's machine-readable code (insufficient_quota,
invalid_api_key, ...) so the caller can show an actionable message.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from dictation.config import get_settings

logger = logging.getLogger(__name__)


@dataclass
class SliceResult:
    transcription_id: str
    index: int
    text: str


class SliceApiError(Exception):
    def __init__(self, message: str, code: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code


class SliceApi(ABC):
    @abstractmethod
    async def create_transcription(self) -> str:
        """Open an empty transcription for a new recording; returns its id."""
        ...

    @abstractmethod
    async def submit_slice(self, audio: bytes, index: int, transcription_id: str | None = None) -> SliceResult:
        """Transcribe one slice; without transcription_id the server creates one."""
        ...

    @abstractmethod
    async def complete(self, transcription_id: str) -> str:
        """Merge + format on the server; returns the final text."""
        ...

    @abstractmethod
    async def discard(self, transcription_id: str) -> None:
        """Delete a transcription that ended up with no text."""
        ...


def _error_from_response(resp: httpx.Response) -> SliceApiError:
    code = None
    message = f"HTTP {resp.status_code}"
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        code = body.get("code")
        message = str(body.get("error") or message)
    return SliceApiError(message, code=code, status_code=resp.status_code)


class HttpSliceApi(SliceApi):
    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.CLIENT_BASE_URL,
            headers=headers,
            timeout=timeout or settings.CLIENT_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def create_transcription(self) -> str:
        resp = await self._client.post("/api/transcriptions")
        if not resp.is_success:
            raise _error_from_response(resp)
        return resp.json()["transcriptionId"]

    async def submit_slice(self, audio: bytes, index: int, transcription_id: str | None = None) -> SliceResult:
        data = {"sliceIndex": str(index)}
        if transcription_id:
            data["transcriptionId"] = transcription_id
        files = {"audio": (f"slice-{index}.wav", audio, "audio/wav")}
        resp = await self._client.post("/api/transcribe-slice", data=data, files=files)
        if resp.status_code != 200:
            raise _error_from_response(resp)
        body = resp.json()
        return SliceResult(
            transcription_id=body["transcriptionId"],
            index=int(body.get("index", index)),
            text=body.get("text") or "",
        )

    async def complete(self, transcription_id: str) -> str:
        resp = await self._client.post(
            "/api/transcription/complete",
            json={"transcriptionId": transcription_id},
        )
        if resp.status_code != 200:
            raise _error_from_response(resp)
        return resp.json().get("finalText") or ""

    async def discard(self, transcription_id: str) -> None:
        resp = await self._client.delete(f"/api/transcriptions/{transcription_id}")
        if not resp.is_success:
            raise _error_from_response(resp)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "HttpSliceApi":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
