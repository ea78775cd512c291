"""
Text formatter: dictionary substitution, then an LLM pass for punctuation,
capitalization and spacing.

The LLM pass is best-effort. Whatever goes wrong with it (quota, auth, timeout,
empty answer) the caller gets the dictionary-substituted text back, so completing
a transcription never fails because of formatting.
"""
from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterable

from dictation.config import get_settings
from dictation.llm.cloudflare import ChatProviderError, CloudflareChatClient
from dictation.processing.dictionary import entry_fields, apply_dictionary

logger = logging.getLogger(__name__)

# (system_prompt, user_prompt) -> formatted text
PolishFn = Callable[[str, str], Awaitable[str]]

_SYSTEM_PROMPT = """You are a careful text formatter. Your job is to:
1. Add proper punctuation (periods, commas, question marks, exclamation marks)
2. Fix capitalization (start of sentences, proper nouns)
3. Add appropriate spacing
4. Fix obvious grammar errors
5. Apply dictionary replacements exactly as specified

CRITICAL RULES:
- Do NOT change the meaning or content
- Do NOT add new information
- Do NOT remove information
- Do NOT rewrite sentences - only format them
- Preserve all technical terms, names, and specific words
- Output ONLY the formatted text, no explanations or comments"""


def build_system_prompt() -> str:
    return _SYSTEM_PROMPT


def build_user_prompt(text: str, entries: Iterable[Any] | None) -> str:
    """Formatting request; dictionary entries are restated as exact replacement rules."""
    rules = []
    for entry in entries or []:
        phrase, replacement = entry_fields(entry)
        if phrase.strip():
            rules.append(f'- "{phrase}" should always be written as "{replacement}"')
    dict_instruction = ""
    if rules:
        dict_instruction = (
            "\n\nIMPORTANT: Apply these exact word/phrase replacements (case-insensitive):\n"
            + "\n".join(rules)
            + "\n"
        )
    return (
        "Format the following transcribed text with proper punctuation, capitalization, and spacing."
        f"{dict_instruction}\n\nText to format:\n{text}\n\nReturn only the formatted text:"
    )


def _default_polish() -> PolishFn | None:
    """Workers AI polish with temperature 0; None when formatting is disabled."""
    settings = get_settings()
    if not settings.FORMAT_ENABLED:
        return None
    client = CloudflareChatClient(settings)

    async def polish(system_prompt: str, user_prompt: str) -> str:
        return await client.complete(
            [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            temperature=0.0,
            max_tokens=settings.FORMAT_MAX_TOKENS,
        )

    return polish


async def format_text(
    merged_text: str,
    entries: Iterable[Any] | None = None,
    polish: PolishFn | None = None,
) -> str:
    """
    Format merged transcript text. Empty/whitespace-only input is returned as is,
    without calling the model. On any polish failure returns the dictionary-substituted text.
    """
    if not merged_text or not merged_text.strip():
        return merged_text

    entries = list(entries or [])
    processed = apply_dictionary(merged_text, entries)

    if polish is None:
        polish = _default_polish()
        if polish is None:
            return processed

    try:
        formatted = await polish(build_system_prompt(), build_user_prompt(processed, entries))
    except ChatProviderError as e:
        if e.is_quota:
            logger.warning("Formatting quota exceeded; returning text without LLM formatting")
        else:
            logger.warning("Formatting failed: %s", e)
        return processed
    except Exception as e:
        logger.warning("Formatting failed: %s", e)
        return processed

    formatted = (formatted or "").strip()
    if not formatted:
        logger.warning("Formatting returned empty response; keeping dictionary-substituted text")
        return processed
    return formatted
