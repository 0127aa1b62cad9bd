"""
Shared fixtures and fakes.

Provides:
  - Fast Settings (tiny cooldown) for session tests
  - ScriptedFinder: replays canned events per batch in place of the AI backend
  - FakeDraftGenerator: records draft requests, optionally failing some
  - FakeGroqStream: scripted streamed completion that records close()
  - Lead / profile factories
"""
from __future__ import annotations

import asyncio
import inspect
from dataclasses import dataclass, field
from types import SimpleNamespace
from typing import Callable, Sequence

import pytest

from leadprospector.config import Settings
from leadprospector.models.draft import GeneratedEmail
from leadprospector.models.lead import Lead, LogEvent, ResultEvent
from leadprospector.models.profile import UserProfile


def make_lead(email: str, **kw) -> Lead:
    return Lead(email=email, **kw)


def result(email: str, **kw) -> ResultEvent:
    return ResultEvent(data=make_lead(email, **kw))


def log(message: str) -> LogEvent:
    return LogEvent(message=message)


@dataclass
class FinderCall:
    query: str
    strategy: object
    count: int
    location: str
    exclude: list[str]


@dataclass
class ScriptedFinder:
    """
    Stand-in for find_leads_stream.

    Each batch is a list of items: events are yielded, exceptions raised,
    and zero-arg callables invoked (e.g. to stop the session mid-stream).
    Calls beyond the scripted batches yield nothing.
    """

    batches: list[list] = field(default_factory=list)
    calls: list[FinderCall] = field(default_factory=list)

    def __call__(self, query, strategy, count, location, exclude: Sequence[str]):
        index = len(self.calls)
        self.calls.append(FinderCall(query, strategy, count, location, list(exclude)))
        items = self.batches[index] if index < len(self.batches) else []
        return self._stream(items)

    async def _stream(self, items):
        for item in items:
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                item()
                continue
            yield item


class FakeDraftGenerator:
    def __init__(self, fail_for: Sequence[str] = ()):
        self.fail_for = set(fail_for)
        self.calls: list[str] = []

    async def __call__(self, profile: UserProfile, recipient: Lead) -> GeneratedEmail:
        self.calls.append(recipient.email)
        await asyncio.sleep(0)
        if recipient.email in self.fail_for:
            raise RuntimeError("model returned garbage")
        return GeneratedEmail(subject=f"Hello {recipient.name or 'there'}", body=f"Body for {recipient.email}")


def fake_groq(create: Callable) -> SimpleNamespace:
    """Object shaped like AsyncGroq for chat.completions.create."""
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))


def completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def chunk(text: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=text))])


class FakeGroqStream:
    """
    Stand-in for groq's AsyncStream.

    Text items become delta chunks, exceptions are raised and zero-arg
    callables are invoked (and awaited when they return an awaitable).
    Records whether close() was awaited.
    """

    def __init__(self, *items):
        self.items = items
        self.closed = False

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for item in self.items:
            await asyncio.sleep(0)
            if isinstance(item, BaseException):
                raise item
            if callable(item):
                outcome = item()
                if inspect.isawaitable(outcome):
                    await outcome
                continue
            yield chunk(item)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        groq_api_key="test-key",
        cooldown_seconds=0.01,
        lead_batch_size=5,
        log_buffer_size=10,
        exclude_limit=3,
    )


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(name="Ada Lovelace", years_experience="5", skills="Dart, Flutter", bio="Mobile dev")

