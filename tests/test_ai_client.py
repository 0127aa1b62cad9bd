"""
Tests for ai_client.py: error taxonomy, retry-after parsing, fence
stripping, and the three call shapes against a fake Groq client.
"""

from unittest.mock import AsyncMock

import groq
import httpx
import pytest

from conftest import FakeGroqStream, completion, fake_groq
from leadprospector.models.draft import GeneratedEmail
from leadprospector.services.ai_client import (
    AIClient,
    MalformedResponseError,
    RateLimitedError,
    TransportError,
    _translate,
    parse_retry_after,
    strip_code_fences,
)

_REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def _status_error(cls, status, message, headers=None):
    response = httpx.Response(status, headers=headers or {}, request=_REQUEST)
    return cls(message, response=response, body=None)


# ═══════════════════════════════════════════════
# Helpers
# ═══════════════════════════════════════════════

class TestStripCodeFences:
    def test_json_fence(self):
        assert strip_code_fences('```json\n[{"a": 1}]\n```') == '[{"a": 1}]'

    def test_plain_fence(self):
        assert strip_code_fences("```\n{}\n```") == "{}"

    def test_no_fence(self):
        assert strip_code_fences("  []  ") == "[]"


class TestParseRetryAfter:
    @pytest.mark.parametrize("message,expected", [
        ("Rate limit reached. Please try again in 7.66s.", 7.66),
        ("Please try again in 1m2.5s", 62.5),
        ("try again in 250ms", 0.25),
    ])
    def test_parses(self, message, expected):
        assert parse_retry_after(message) == pytest.approx(expected)

    @pytest.mark.parametrize("message", ["Quota exceeded", "", "try again in a bit"])
    def test_no_duration(self, message):
        assert parse_retry_after(message) is None


class TestTranslate:
    def test_rate_limit_error_with_header(self):
        exc = _status_error(groq.RateLimitError, 429, "Rate limit reached", {"retry-after": "30"})
        translated = _translate(exc)
        assert isinstance(translated, RateLimitedError)
        assert translated.retry_after == 30

    def test_rate_limit_falls_back_to_message(self):
        exc = _status_error(groq.RateLimitError, 429, "Please try again in 4s")
        assert _translate(exc).retry_after == pytest.approx(4)

    def test_quota_message_on_other_status(self):
        exc = _status_error(groq.APIStatusError, 403, "Organization quota exceeded")
        assert isinstance(_translate(exc), RateLimitedError)

    def test_server_error_is_transport(self):
        exc = _status_error(groq.InternalServerError, 500, "upstream error")
        assert isinstance(_translate(exc), TransportError)

    def test_connection_error_is_transport(self):
        assert isinstance(_translate(groq.APIConnectionError(request=_REQUEST)), TransportError)

    def test_httpx_error_is_transport(self):
        assert isinstance(_translate(httpx.ReadTimeout("slow")), TransportError)

    def test_already_translated_passes_through(self):
        exc = MalformedResponseError("bad")
        assert _translate(exc) is exc


# ═══════════════════════════════════════════════
# Calls
# ═══════════════════════════════════════════════

class TestGenerateWithSearch:
    @pytest.mark.asyncio
    async def test_returns_text_from_search_model(self, settings):
        create = AsyncMock(return_value=completion("  [1, 2]  "))
        client = AIClient(fake_groq(create), settings=settings)

        assert await client.generate_with_search("find jobs") == "[1, 2]"
        assert create.call_args.kwargs["model"] == settings.groq_search_model

    @pytest.mark.asyncio
    async def test_rate_limit_translated(self, settings):
        create = AsyncMock(side_effect=_status_error(groq.RateLimitError, 429, "slow down"))
        client = AIClient(fake_groq(create), settings=settings)

        with pytest.raises(RateLimitedError):
            await client.generate_with_search("find jobs")


class TestGenerateStream:
    @pytest.mark.asyncio
    async def test_yields_non_empty_deltas(self, settings):
        stream = FakeGroqStream("LOG: a", None, "", "\n{}")
        create = AsyncMock(return_value=stream)
        client = AIClient(fake_groq(create), settings=settings)

        fragments = [f async for f in client.generate_stream("q")]

        assert fragments == ["LOG: a", "\n{}"]
        assert create.call_args.kwargs["stream"] is True
        assert stream.closed

    @pytest.mark.asyncio
    async def test_mid_stream_failure_translated(self, settings):
        stream = FakeGroqStream("LOG: a", groq.APIConnectionError(request=_REQUEST))
        client = AIClient(fake_groq(AsyncMock(return_value=stream)), settings=settings)

        received = []
        with pytest.raises(TransportError):
            async for fragment in client.generate_stream("q"):
                received.append(fragment)
        assert received == ["LOG: a"]
        assert stream.closed

    @pytest.mark.asyncio
    async def test_closing_early_closes_response(self, settings):
        stream = FakeGroqStream("one", "two", "three")
        client = AIClient(fake_groq(AsyncMock(return_value=stream)), settings=settings)

        fragments = client.generate_stream("q")
        assert await anext(fragments) == "one"
        await fragments.aclose()

        assert stream.closed


class TestGenerateStructured:
    @pytest.mark.asyncio
    async def test_parses_schema(self, settings):
        create = AsyncMock(return_value=completion('{"subject": "Hi", "body": "Hello there"}'))
        client = AIClient(fake_groq(create), settings=settings)

        email = await client.generate_structured("write", GeneratedEmail)

        assert email == GeneratedEmail(subject="Hi", body="Hello there")
        kwargs = create.call_args.kwargs
        assert kwargs["model"] == settings.groq_model
        assert kwargs["response_format"] == {"type": "json_object"}

    @pytest.mark.asyncio
    async def test_fenced_json_accepted(self, settings):
        create = AsyncMock(return_value=completion('```json\n{"subject": "S", "body": "B"}\n```'))
        client = AIClient(fake_groq(create), settings=settings)

        assert (await client.generate_structured("write", GeneratedEmail)).subject == "S"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", [None, "", "not json", '{"subject": "only"}'])
    async def test_unusable_response_raises(self, settings, content):
        create = AsyncMock(return_value=completion(content))
        client = AIClient(fake_groq(create), settings=settings)

        with pytest.raises(MalformedResponseError):
            await client.generate_structured("write", GeneratedEmail)
