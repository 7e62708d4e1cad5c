"""HTTP client for the schema-constrained generation service.

Talks to an OpenAI-compatible ``/chat/completions`` endpoint. Uses httpx with
bounded timeouts and tenacity for retry with exponential backoff on 429/503
and connection errors. Any other failure surfaces as ``GenerationError``.
"""

import logging
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config import Settings
from errors import GenerationError, GenerationUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = (429, 503)


class GenerationClient:
    """HTTP client for the generation service with retry and backoff."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        model: str,
        *,
        temperature: float = 0.1,
        max_tokens: int = 2000,
        timeout: int = 120,
        connect_timeout: int = 10,
        retry_attempts: int = 2,
        retry_delay: float = 2.0,
        retry_backoff: float = 2.0,
    ):
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._retry_attempts = max(1, retry_attempts)
        self._retry_delay = retry_delay
        self._retry_backoff = retry_backoff

        self._client = httpx.Client(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(
                connect=float(connect_timeout),
                read=float(timeout),
                write=30.0,
                pool=30.0,
            ),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "GenerationClient":
        return cls(
            base_url=settings.GENERATION_API_URL,
            api_key=settings.GENERATION_API_KEY,
            model=settings.GENERATION_MODEL,
            temperature=settings.GENERATION_TEMPERATURE,
            max_tokens=settings.GENERATION_MAX_TOKENS,
            timeout=settings.GENERATION_TIMEOUT_SECONDS,
            connect_timeout=settings.GENERATION_CONNECT_TIMEOUT,
            retry_attempts=settings.GENERATION_RETRY_ATTEMPTS,
            retry_delay=settings.GENERATION_RETRY_DELAY,
            retry_backoff=settings.GENERATION_RETRY_BACKOFF,
        )

    def close(self):
        self._client.close()

    def complete(self, messages: list[dict[str, str]], json_schema: dict[str, Any]) -> str:
        """Request a completion constrained to ``json_schema``.

        Returns the raw message content ("" if the service sent none).
        Raises GenerationUnavailable (retried, then surfaced) or GenerationError.
        """
        payload = {
            "model": self._model,
            "messages": messages,
            "response_format": {"type": "json_schema", "json_schema": json_schema},
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        return self._complete_with_retry(payload)

    def _complete_with_retry(self, payload: dict) -> str:
        """Retry wrapper, configured from the constructor arguments."""

        @retry(
            retry=retry_if_exception_type(GenerationUnavailable),
            stop=stop_after_attempt(self._retry_attempts),
            wait=wait_exponential(
                multiplier=self._retry_delay,
                exp_base=self._retry_backoff,
                max=60,
            ),
            reraise=True,
            before_sleep=lambda state: logger.warning(
                "Generation service unavailable, retrying in %.1fs (attempt %d/%d)",
                state.next_action.sleep,  # type: ignore[union-attr]
                state.attempt_number,
                self._retry_attempts,
            ),
        )
        def _do_complete() -> str:
            return self._send_completion(payload)

        return _do_complete()

    def _send_completion(self, payload: dict) -> str:
        """Send a single completion request."""
        try:
            resp = self._client.post("/chat/completions", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.warning("Generation service connection failed: %s", e)
            raise GenerationUnavailable(f"Cannot connect to generation service: {e}") from e
        except httpx.ReadTimeout as e:
            logger.warning("Generation service read timeout: %s", e)
            raise GenerationUnavailable(f"Generation service read timeout: {e}") from e
        except httpx.HTTPError as e:
            logger.error("Generation service HTTP error: %s", e)
            raise GenerationError(f"Generation service HTTP error: {e}") from e

        if resp.status_code in RETRYABLE_STATUS:
            detail = _error_detail(resp)
            logger.warning("Generation service returned %d: %s", resp.status_code, detail)
            raise GenerationUnavailable(detail, status_code=resp.status_code)

        if resp.status_code != 200:
            detail = _error_detail(resp)
            logger.error("Generation service error %d: %s", resp.status_code, detail)
            raise GenerationError(detail, status_code=resp.status_code)

        try:
            data = resp.json()
        except ValueError as e:
            raise GenerationError(f"Generation service sent a non-JSON body: {e}") from e

        usage = data.get("usage") or {}
        logger.info(
            "Generation completed: prompt_tokens=%s completion_tokens=%s",
            usage.get("prompt_tokens"), usage.get("completion_tokens"),
        )

        choices = data.get("choices") or []
        if not choices:
            return ""
        message = choices[0].get("message") or {}
        return message.get("content") or ""


def _error_detail(resp: httpx.Response) -> str:
    """Best-effort error message from an OpenAI-style error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500] or f"HTTP {resp.status_code}"
    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    if isinstance(body, dict) and body.get("detail"):
        return str(body["detail"])
    return f"HTTP {resp.status_code}"
