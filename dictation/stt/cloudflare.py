"""
CloudflareWhisperSTT: Whisper via Cloudflare Workers AI.

Sends the slice's encoded audio bytes as-is; the model decodes the container itself.
"""
from __future__ import annotations

import logging

import httpx

from dictation.config import Settings, get_settings
from dictation.stt.base import (
    INVALID_API_KEY,
    TRANSCRIPTION_FAILED,
    SpeechProviderError,
    SpeechToText,
    error_for_status,
)

logger = logging.getLogger(__name__)


def _extract_text(data: dict) -> str:
    result = data.get("result", data)
    if isinstance(result, dict):
        text = result.get("text", result.get("transcript", ""))
    elif isinstance(result, str):
        text = result
    else:
        text = ""
    return (text or "").strip()


class CloudflareWhisperSTT(SpeechToText):
    """Remote Whisper via Cloudflare Workers AI. One HTTP call per slice."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    async def transcribe(self, audio: bytes, filename: str = "slice.wav") -> str:
        account_id = (self._settings.CLOUDFLARE_ACCOUNT_ID or "").strip()
        token = (self._settings.CLOUDFLARE_API_TOKEN or "").strip()
        if not account_id or not token:
            raise SpeechProviderError(
                INVALID_API_KEY,
                "CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are required for transcription",
                status_code=401,
            )

        url = f"https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{self._settings.STT_CF_MODEL}"
        headers = {"Authorization": f"Bearer {token}"}
        body = {"audio": list(audio)}

        try:
            async with httpx.AsyncClient(
                timeout=self._settings.STT_TIMEOUT_SECONDS,
                transport=self._transport,
            ) as client:
                resp = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as e:
            logger.warning("Transcription request for %s failed: %s", filename, e)
            raise SpeechProviderError(TRANSCRIPTION_FAILED, "Speech provider unreachable") from e

        if resp.status_code != 200:
            logger.warning("Transcription of %s returned %s", filename, resp.status_code)
            raise error_for_status(resp.status_code, resp.text[:200])

        text = _extract_text(resp.json())
        logger.debug("Transcribed %s (%d bytes): %d chars", filename, len(audio), len(text))
        return text
