"""Generative-model client (OpenAI chat completions over httpx)."""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from ..config import Settings, get_settings
from .prompts import PromptPayload
from .transport import post_with_retry, redact_key, retry_after_seconds

logger = logging.getLogger(__name__)


class ModelServiceError(Exception):
    """The generative model could not be reached or refused the request."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ModelRateLimitError(ModelServiceError):
    """Rate limit still in force after all retries."""

    def __init__(self, message: str, retry_after_seconds: Optional[float] = None, body: Optional[str] = None):
        super().__init__(message, status_code=429, body=body)
        self.retry_after_seconds = retry_after_seconds


class GenerativeModelClient:
    """Sends one prompt payload and returns the model's raw text."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.settings.openai_api_key)

    def build_request(self, payload: PromptPayload) -> Dict[str, Any]:
        return {
            "model": self.settings.openai_model,
            "messages": payload.to_messages(),
            "temperature": payload.temperature,
            "max_tokens": payload.max_tokens,
            "response_format": {"type": "json_object"},
        }

    async def complete(self, payload: PromptPayload) -> str:
        """
        Run one chat completion.

        Returns:
            Raw message content ("" when the response carries none)

        Raises:
            ModelRateLimitError: Still rate limited after retries
            ModelServiceError: Missing key, HTTP error or transport failure
        """
        if not self.configured:
            raise ModelServiceError("OPENAI_API_KEY is not configured", status_code=503)

        url = f"{self.settings.openai_base_url.rstrip('/')}/chat/completions"
        headers = {"Authorization": f"Bearer {self.settings.openai_api_key}"}
        start = time.time()

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.openai_timeout_seconds, transport=self.transport
            ) as client:
                resp = await post_with_retry(
                    client,
                    url,
                    json_payload=self.build_request(payload),
                    headers=headers,
                    max_retries=self.settings.openai_max_retries,
                    max_backoff=self.settings.openai_max_backoff_seconds,
                )
        except httpx.HTTPError as e:
            message = redact_key(f"Model request failed: {type(e).__name__}: {e}")
            logger.error(message)
            raise ModelServiceError(message) from e

        body = redact_key(resp.text)[:2000]
        if resp.status_code == 429:
            logger.error("Model rate limit persisted after retries")
            raise ModelRateLimitError(
                "Model rate limit exceeded",
                retry_after_seconds=retry_after_seconds(resp),
                body=body,
            )
        if resp.status_code >= 400:
            logger.error(f"Model request failed: {resp.status_code}")
            raise ModelServiceError(
                f"Model request failed with status {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise ModelServiceError("Model returned a non-JSON envelope", status_code=resp.status_code, body=body) from e

        choices = data.get("choices") or []
        message = choices[0].get("message") if choices and isinstance(choices[0], dict) else None
        content = (message or {}).get("content") or ""

        usage = data.get("usage") or {}
        logger.info(
            f"Model call completed in {(time.time() - start) * 1000:.0f}ms "
            f"(tokens={usage.get('total_tokens', 'n/a')}, chars={len(content)})"
        )
        return content
