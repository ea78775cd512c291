"""LLM: chat completion used for transcript formatting."""
from .cloudflare import ChatProviderError, CloudflareChatClient

__all__ = ["ChatProviderError", "CloudflareChatClient"]
