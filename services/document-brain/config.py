"""Environment-based configuration for the document brain (extraction pipeline)."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Document brain settings, loaded from environment variables."""

    # Server
    PORT: int = 8092
    LOG_LEVEL: str = "INFO"

    # Generation service (OpenAI-compatible chat completions endpoint)
    GENERATION_API_URL: str = "https://api.openai.com/v1"
    GENERATION_API_KEY: str = ""
    GENERATION_MODEL: str = "gpt-4o-mini"
    GENERATION_TEMPERATURE: float = 0.1
    GENERATION_MAX_TOKENS: int = 2000

    # Generation timeouts and retry (429/503/connection errors only)
    GENERATION_TIMEOUT_SECONDS: int = 120
    GENERATION_CONNECT_TIMEOUT: int = 10
    GENERATION_RETRY_ATTEMPTS: int = 2
    GENERATION_RETRY_DELAY: float = 2.0
    GENERATION_RETRY_BACKOFF: float = 2.0

    # Document download
    FETCH_TIMEOUT_SECONDS: int = 60
    FETCH_CONNECT_TIMEOUT: int = 10
    MAX_DOWNLOAD_BYTES: int = 25 * 1024 * 1024

    # External store (empty URL = persistence disabled, local dev default)
    STORE_URL: str = ""
    STORE_SERVICE_KEY: str = ""
    STORE_TABLE: str = "project_documents"
    STORE_BUCKET: str = "documents"
    STORE_TIMEOUT_SECONDS: int = 30

    # Text budget (approx. 4 characters per token)
    TOKEN_BUDGET: int = 30_000

    # Confidence gate
    ACCEPT_CONFIDENCE: float = 0.4
    LARGE_DOC_CONFIDENCE: float = 0.6
    LARGE_DOC_CHARS: int = 500_000
    TWO_PASS_CHARS: int = 300_000
    CLASSIFY_EXCERPT_CHARS: int = 50_000
    FAILED_EXTRACTION_MAX_CONFIDENCE: float = 0.2

    model_config = {"env_prefix": "", "case_sensitive": True}


settings = Settings()
