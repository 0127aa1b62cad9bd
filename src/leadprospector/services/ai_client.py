"""
Groq-backed generation client used by search, streaming and drafting.

Three call shapes:
  - generate_with_search(prompt) → full text     (web-search model, one shot)
  - generate_stream(prompt)      → text deltas   (web-search model, streamed)
  - generate_structured(prompt, schema) → model  (drafting model, JSON mode)

Every Groq / network failure is translated into the AIClientError family so
callers only ever deal with three cases: rate limited, transport failure,
malformed response.
"""
from __future__ import annotations

import json
import logging
import re
from typing import AsyncIterator, Optional, TypeVar

import httpx
from groq import APIConnectionError, APIError, APIStatusError, AsyncGroq, RateLimitError
from pydantic import BaseModel, ValidationError

from leadprospector.config import Settings, get_settings

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_RE = re.compile(r"```(?:json)?")

# "Please try again in 7.66s" / "try again in 1m2.5s" / "try again in 250ms"
_RETRY_TEXT_RE = re.compile(
    r"try again in\s+(?:(?P<min>\d+)m(?!s))?\s*(?:(?P<sec>\d+(?:\.\d+)?)s|(?P<ms>\d+(?:\.\d+)?)ms)?",
    re.IGNORECASE,
)

_QUOTA_MARKERS = ("rate limit", "quota", "resource_exhausted", "too many requests")


class AIClientError(Exception):
    """Base class for failures surfaced by the generation backend."""


class RateLimitedError(AIClientError):
    """Raised when the backend rejects a request for rate-limit or quota reasons."""

    def __init__(self, message: str, retry_after: Optional[float] = None):
        super().__init__(message)
        self.retry_after = retry_after


class TransportError(AIClientError):
    """Raised on connection drops, timeouts and non-quota API errors."""


class MalformedResponseError(AIClientError):
    """Raised when the backend answers with something we cannot use."""


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class AIClient:
    def __init__(self, groq_client: Optional[AsyncGroq] = None, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._client = groq_client

    @property
    def client(self) -> AsyncGroq:
        if self._client is None:
            self._client = AsyncGroq(api_key=self._settings.groq_api_key)
        return self._client

    async def generate_with_search(self, prompt: str) -> str:
        """Single-shot request against the web-search model."""
        try:
            response = await self.client.chat.completions.create(
                model=self._settings.groq_search_model,
                messages=[{"role": "user", "content": prompt}],
            )
        except Exception as e:
            raise _translate(e) from e

        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def generate_stream(self, prompt: str) -> AsyncIterator[str]:
        """
        Yield text fragments as the web-search model produces them.

        The HTTP response is closed when the stream ends, fails, or the
        consumer closes this generator early.
        """
        try:
            stream = await self.client.chat.completions.create(
                model=self._settings.groq_search_model,
                messages=[{"role": "user", "content": prompt}],
                stream=True,
            )
        except Exception as e:
            raise _translate(e) from e

        try:
            async for chunk in stream:
                if not chunk.choices:
                    continue
                text = chunk.choices[0].delta.content
                if text:
                    yield text
        except AIClientError:
            raise
        except Exception as e:
            raise _translate(e) from e
        finally:
            await stream.close()

    async def generate_structured(self, prompt: str, schema: type[ModelT]) -> ModelT:
        """
        JSON-mode request validated against `schema`.

        Raises:
            MalformedResponseError: Empty output, non-JSON, or schema mismatch.
        """
        schema_json = json.dumps(schema.model_json_schema(), indent=2)
        try:
            response = await self.client.chat.completions.create(
                model=self._settings.groq_model,
                max_tokens=1024,
                temperature=0.7,
                response_format={"type": "json_object"},
                messages=[
                    {
                        "role": "system",
                        "content": (
                            "Respond with a single JSON object matching this JSON schema. "
                            "No prose, no markdown.\n" + schema_json
                        ),
                    },
                    {"role": "user", "content": prompt},
                ],
            )
        except Exception as e:
            raise _translate(e) from e

        raw = response.choices[0].message.content if response.choices else None
        raw = strip_code_fences(raw or "")
        if not raw:
            raise MalformedResponseError("Model returned an empty response")

        try:
            return schema.model_validate_json(raw)
        except ValidationError as e:
            raise MalformedResponseError(f"Model returned unusable JSON: {raw[:200]!r}") from e


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove ```json / ``` markers the model sometimes wraps JSON in."""
    return _FENCE_RE.sub("", text).strip()


def parse_retry_after(message: str) -> Optional[float]:
    """Best-effort seconds-to-wait from a human-readable rate-limit message."""
    match = _RETRY_TEXT_RE.search(message or "")
    if not match or not any(match.group(g) for g in ("min", "sec", "ms")):
        return None
    seconds = float(match.group("min") or 0) * 60
    if match.group("sec"):
        seconds += float(match.group("sec"))
    if match.group("ms"):
        seconds += float(match.group("ms")) / 1000
    return seconds


def _retry_after_header(response: Optional[httpx.Response]) -> Optional[float]:
    if response is None:
        return None
    value = response.headers.get("retry-after")
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _translate(exc: Exception) -> AIClientError:
    """Map a Groq / httpx exception onto the AIClientError taxonomy."""
    if isinstance(exc, AIClientError):
        return exc

    message = str(exc)

    if isinstance(exc, RateLimitError) or (
        isinstance(exc, APIStatusError) and exc.status_code == 429
    ):
        retry_after = _retry_after_header(exc.response) or parse_retry_after(message)
        logger.warning("Groq rate limit hit (retry_after=%s)", retry_after)
        return RateLimitedError(message, retry_after=retry_after)

    if isinstance(exc, APIConnectionError):
        return TransportError(f"Connection to Groq failed: {message}")

    if isinstance(exc, APIError):
        if any(marker in message.lower() for marker in _QUOTA_MARKERS):
            return RateLimitedError(message, retry_after=parse_retry_after(message))
        return TransportError(f"Groq API error: {message}")

    if isinstance(exc, httpx.HTTPError):
        return TransportError(f"Network error: {message}")

    return TransportError(message)
