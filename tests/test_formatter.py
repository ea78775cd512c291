from unittest.mock import AsyncMock, patch

import pytest

from dictation.llm.cloudflare import ChatProviderError
from dictation.processing.dictionary import apply_dictionary
from dictation.processing.formatter import build_system_prompt, build_user_prompt, format_text

ENTRIES = [{"phrase": "AI", "replacement": "artificial intelligence"}]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
async def test_blank_input_is_returned_without_model_call(text):
    polish = AsyncMock(return_value="should not be used")
    assert await format_text(text, ENTRIES, polish=polish) == text
    polish.assert_not_called()


@pytest.mark.asyncio
async def test_polished_text_is_returned_trimmed():
    polish = AsyncMock(return_value="  I love artificial intelligence.  \n")
    assert await format_text("i love AI", ENTRIES, polish=polish) == "I love artificial intelligence."


@pytest.mark.asyncio
async def test_model_receives_dictionary_substituted_text_and_rules():
    polish = AsyncMock(return_value="ok")
    await format_text("i love AI and mail", ENTRIES, polish=polish)
    system_prompt, user_prompt = polish.call_args.args
    assert system_prompt == build_system_prompt()
    assert "Text to format:\ni love artificial intelligence and mail" in user_prompt
    assert '- "AI" should always be written as "artificial intelligence"' in user_prompt


@pytest.mark.asyncio
async def test_failure_falls_back_to_dictionary_text():
    text = "i love AI and mail"
    polish = AsyncMock(side_effect=RuntimeError("boom"))
    assert await format_text(text, ENTRIES, polish=polish) == apply_dictionary(text, ENTRIES)


@pytest.mark.asyncio
async def test_quota_error_falls_back_to_dictionary_text():
    text = "ship AI today"
    polish = AsyncMock(side_effect=ChatProviderError("rate limited", status_code=429))
    assert await format_text(text, ENTRIES, polish=polish) == "ship artificial intelligence today"


@pytest.mark.asyncio
async def test_empty_model_answer_falls_back():
    polish = AsyncMock(return_value="   ")
    assert await format_text("hello AI", ENTRIES, polish=polish) == "hello artificial intelligence"


def test_system_prompt_lists_allowed_and_forbidden_transformations():
    prompt = build_system_prompt()
    for allowed in ("punctuation", "capitalization", "spacing", "grammar", "dictionary replacements"):
        assert allowed in prompt
    assert prompt.count("- Do NOT") == 4
    assert "Preserve all technical terms" in prompt
    assert "Output ONLY the formatted text" in prompt


def test_user_prompt_without_entries_has_no_rules():
    prompt = build_user_prompt("hello", [])
    assert "IMPORTANT" not in prompt
    assert prompt.endswith("Text to format:\nhello\n\nReturn only the formatted text:")


@pytest.mark.asyncio
async def test_default_polish_uses_zero_temperature():
    complete = AsyncMock(return_value="Hello world.")
    with patch("dictation.processing.formatter.CloudflareChatClient") as client_cls:
        client_cls.return_value.complete = complete
        assert await format_text("hello world") == "Hello world."
    assert complete.call_args.kwargs["temperature"] == 0.0
    assert complete.call_args.kwargs["max_tokens"] > 0


@pytest.mark.asyncio
async def test_missing_credentials_fall_back(monkeypatch):
    monkeypatch.setenv("CLOUDFLARE_ACCOUNT_ID", "")
    monkeypatch.setenv("CLOUDFLARE_API_TOKEN", "")
    monkeypatch.setenv("FORMAT_ENABLED", "true")
    assert await format_text("hello AI", ENTRIES) == "hello artificial intelligence"


@pytest.mark.asyncio
async def test_formatting_disabled_skips_model(monkeypatch):
    monkeypatch.setenv("FORMAT_ENABLED", "false")
    with patch("dictation.processing.formatter.CloudflareChatClient") as client_cls:
        assert await format_text("hello AI", ENTRIES) == "hello artificial intelligence"
    client_cls.assert_not_called()
