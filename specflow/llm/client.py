import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import httpx

from specflow.api.v1.metrics import COMPLETION_RETRIES
from specflow.domain.errors import CompletionError, ConfigurationError, RateLimitExceededError
from specflow.domain.retry import backoff_delays

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]

RATE_LIMIT_STATUS = "RESOURCE_EXHAUSTED"


class RetryingCompletionClient:
    """
    Calls the Gemini ``generateContent`` endpoint with a rendered prompt.

    Rate-limit responses (HTTP 429 / RESOURCE_EXHAUSTED) are retried with
    exponential backoff; ``max_attempts`` counts every call, the first one
    included. Any other failure is raised immediately as CompletionError.
    One request is in flight at a time per ``complete()`` call, and the
    backoff only suspends the calling task.
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.0-flash-exp",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 120.0,
        max_attempts: int = 5,
        initial_delay: float = 5.0,
        multiplier: float = 2.0,
        sleep: Sleep = asyncio.sleep,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.multiplier = multiplier
        self._sleep = sleep
        self._owns_client = http_client is None
        self.client = http_client or httpx.AsyncClient(timeout=timeout)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def complete(self, prompt: str) -> str:
        if not self.api_key:
            raise ConfigurationError("GEMINI_API_KEY is not configured")

        delays = backoff_delays(self.max_attempts, self.initial_delay, self.multiplier)
        attempt = 0
        while True:
            attempt += 1
            response = await self._post(prompt)
            if not _is_rate_limited(response):
                return _parse_response(response)

            delay = next(delays, None)
            if delay is None:
                logger.error("Completion rate limited on attempt %s/%s, giving up", attempt, self.max_attempts)
                raise RateLimitExceededError(attempt)

            COMPLETION_RETRIES.inc()
            logger.warning(
                "Completion rate limited on attempt %s/%s, retrying in %.1fs",
                attempt, self.max_attempts, delay,
            )
            await self._sleep(delay)

    async def _post(self, prompt: str) -> httpx.Response:
        body = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        try:
            return await self.client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self.api_key},
            )
        except httpx.HTTPError as e:
            logger.error("Completion request to %s failed: %s", self.model, e)
            raise CompletionError(f"Completion request failed: {e}") from e

    async def close(self):
        if self._owns_client:
            await self.client.aclose()


def _error_payload(response: httpx.Response) -> dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        return {}
    if isinstance(data, list) and data:
        data = data[0]
    if not isinstance(data, dict):
        return {}
    error = data.get("error")
    return error if isinstance(error, dict) else {}


def _is_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    if response.is_success:
        return False
    return _error_payload(response).get("status") == RATE_LIMIT_STATUS


def _parse_response(response: httpx.Response) -> str:
    if not response.is_success:
        message = _error_payload(response).get("message") or response.text or response.reason_phrase
        raise CompletionError(
            f"Completion endpoint returned {response.status_code}: {message}",
            status_code=response.status_code,
        )

    try:
        data = response.json()
    except ValueError as e:
        raise CompletionError("Completion endpoint returned invalid JSON") from e

    candidates = data.get("candidates") or []
    if not candidates:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise CompletionError(f"Prompt was blocked: {block_reason}")
        raise CompletionError("Completion response contained no candidates")

    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(part.get("text", "") for part in parts)
    if not text:
        reason = candidates[0].get("finishReason", "unknown")
        raise CompletionError(f"Completion response contained no text (finishReason={reason})")
    return text
