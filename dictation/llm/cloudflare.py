"""
CloudflareChatClient: text generation via Cloudflare Workers AI.

Used by the formatter for the punctuation/capitalization pass. Workers AI REST API,
same account credentials as slice transcription.
"""
from __future__ import annotations

import logging

import httpx

from dictation.config import Settings, get_settings

logger = logging.getLogger(__name__)


class ChatProviderError(Exception):
    """Workers AI answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_quota(self) -> bool:
        return self.status_code == 429


def _get_cloudflare_auth(settings: Settings) -> tuple[str, str]:
    """Return (account_id, token) for Workers AI."""
    account_id = (settings.CLOUDFLARE_ACCOUNT_ID or "").strip()
    token = (settings.CLOUDFLARE_API_TOKEN or "").strip()
    return account_id, token


def _extract_response_text(data: dict) -> str:
    # Workers AI returns { "result": { "response": "..." } } or direct { "response": "..." }
    result = data.get("result", data)
    if isinstance(result, dict):
        content = result.get("response", "") or ""
    elif isinstance(result, str):
        content = result
    else:
        content = ""
    return (content or "").strip()


class CloudflareChatClient:
    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._transport = transport

    async def complete(
        self,
        messages: list[dict[str, str]],
        *,
        temperature: float = 0.0,
        max_tokens: int | None = None,
    ) -> str:
        """
        Send chat messages, return the assistant text (trimmed, may be empty).
        Raises ValueError if credentials are missing, ChatProviderError on HTTP errors.
        """
        account_id, token = _get_cloudflare_auth(self._settings)
        if not account_id or not token:
            raise ValueError("CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are required for formatting")

        model = self._settings.FORMAT_CF_MODEL
        url = f"https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"
        payload = {
            "messages": messages,
            "max_tokens": max_tokens or self._settings.FORMAT_MAX_TOKENS,
            "temperature": temperature,
        }
        logger.debug("LLM request to Cloudflare: model=%s, messages=%s", model, len(messages))

        async with httpx.AsyncClient(
            timeout=self._settings.FORMAT_TIMEOUT_SECONDS,
            transport=self._transport,
        ) as client:
            resp = await client.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
            )
        if resp.status_code >= 400:
            raise ChatProviderError(
                f"Workers AI returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return _extract_response_text(resp.json())
