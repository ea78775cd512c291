"""Application configuration. Loads from env vars."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings. Override via environment variables."""

    # Cloudflare Workers AI: slice transcription (Whisper) and formatting (LLM)
    CLOUDFLARE_ACCOUNT_ID: str = ""
    CLOUDFLARE_API_TOKEN: str = ""

    # Speech-to-text for each slice
    STT_CF_MODEL: str = "@cf/openai/whisper"
    STT_TIMEOUT_SECONDS: float = 30.0

    # Formatting: punctuation/capitalization pass after dictionary substitution.
    # When false, completion returns the dictionary-substituted text only.
    FORMAT_ENABLED: bool = True
    FORMAT_CF_MODEL: str = "@cf/meta/llama-3.1-8b-instruct"
    FORMAT_MAX_TOKENS: int = 2000
    FORMAT_TIMEOUT_SECONDS: float = 60.0

    # Recording client: one slice every SLICE_MS; PCM 16-bit mono
    SLICE_MS: int = 5000
    SAMPLE_RATE: int = 16000
    SAMPLE_WIDTH: int = 2  # 16-bit
    CHANNELS: int = 1
    CLIENT_BASE_URL: str = "http://localhost:8000"
    CLIENT_TIMEOUT_SECONDS: float = 60.0

    # Access tokens for local use, "token:user_id" pairs, comma-separated.
    # Real tokens are registered by the identity service.
    DEV_API_TOKENS: str = ""

    # Logging: level (DEBUG, INFO, WARNING, ERROR); file path, empty = console only
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = ""

    class Config:
        env_file = ".env"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()


def parse_dev_tokens(raw: str) -> dict[str, str]:
    """Parse DEV_API_TOKENS ("tok1:user1,tok2:user2") into {token: user_id}. Malformed pairs are skipped."""
    tokens: dict[str, str] = {}
    for pair in (raw or "").split(","):
        token, sep, user_id = pair.strip().partition(":")
        if not sep or not token.strip() or not user_id.strip():
            continue
        tokens[token.strip()] = user_id.strip()
    return tokens
