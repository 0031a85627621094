"""Shared HTTP helpers for the external vision and model services."""

import asyncio
import base64
import random
import re
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


RETRYABLE_STATUS = (429, 503)
MIN_RETRY_WAIT_SECONDS = 0.5

# Indirection so tests can skip real waits
_sleep = asyncio.sleep


def b64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def redact_key(s: str) -> str:
    """
    Redact API keys in URLs or text so they never reach logs or responses.

    Covers ``key=...`` query parameters, bearer tokens and ``sk-`` secrets.
    """
    if not s:
        return s
    s = re.sub(r"(key=)([^&\s]+)", r"\1REDACTED", s)
    s = re.sub(r"(Bearer\s+)(\S+)", r"\1REDACTED", s)
    return re.sub(r"\bsk-[A-Za-z0-9_\-]{8,}", "sk-REDACTED", s)


def retry_after_seconds(resp: httpx.Response) -> Optional[float]:
    """Retry-After header as seconds, when present and numeric."""
    value = resp.headers.get("retry-after")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


async def sleep_for_retry(resp: httpx.Response, attempt: int, max_backoff: float) -> None:
    """
    Respect Retry-After header when present; otherwise exponential backoff with jitter.
    """
    wait = retry_after_seconds(resp)
    if wait is not None:
        wait = max(MIN_RETRY_WAIT_SECONDS, min(wait, max_backoff))
    else:
        wait = min(max_backoff, 2 ** attempt) + random.uniform(0.0, 0.5)
    logger.info(f"Upstream returned {resp.status_code}; retrying in {wait:.1f}s (attempt {attempt + 1})")
    await _sleep(wait)


async def post_with_retry(
    client: httpx.AsyncClient,
    url: str,
    *,
    json_payload: Dict[str, Any],
    params: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    max_retries: int = 3,
    max_backoff: float = 60.0,
) -> httpx.Response:
    """
    POST with retries for 429/503.

    Returns the last response; callers decide what a final 429/503 means.
    """
    resp: Optional[httpx.Response] = None
    for attempt in range(max_retries + 1):
        resp = await client.post(url, params=params, json=json_payload, headers=headers)
        if resp.status_code in RETRYABLE_STATUS and attempt < max_retries:
            await sleep_for_retry(resp, attempt, max_backoff)
            continue
        return resp
    return resp  # type: ignore[return-value]
