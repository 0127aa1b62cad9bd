"""
Lead discovery session: single and continuous ("infinity") search.

State machine:

    idle ──start()──▶ searching ──stream ends──▶ idle            (one-shot / stopped)
                          │  ▲
                          │  └──── cooldown ◀─── continuous mode
                          └──── transport error ──▶ idle       (no continuation)

The first batch of a new search clears accumulated leads and logs. Every
following batch is an append batch: it keeps the accumulated leads, rotates a
query modifier so the backend probes a different facet, and passes the latest
name/company slice as an exclusion hint.

Stop is cooperative and checked before each batch, before each event, and
around the cooldown. cancel() additionally cancels the running task so an
in-flight request is abandoned.
"""
from __future__ import annotations

import asyncio
import logging
import math
from collections import deque
from contextlib import aclosing
from enum import Enum
from functools import partial
from typing import AsyncIterator, Callable, Iterator, Optional, Sequence, Union

from leadprospector.config import Settings, get_settings
from leadprospector.models.lead import LogEvent, ResultEvent, SearchStrategy
from leadprospector.services.accumulator import LeadAccumulator
from leadprospector.services.ai_client import AIClient, AIClientError, RateLimitedError
from leadprospector.services.lead_finder import find_leads_stream

logger = logging.getLogger(__name__)

# Rotated through on append batches so successive batches differ
MODIFIERS: tuple[str, ...] = (
    "email contact",
    "hiring manager",
    "technical recruiter",
    "jobs",
    "talent acquisition",
    "engineering lead",
    "careers page",
    "github profile email",
    "linkedin summary email",
)

LeadFinder = Callable[
    [str, SearchStrategy, int, str, Sequence[str]],
    AsyncIterator[Union[LogEvent, ResultEvent]],
]


class SessionState(str, Enum):
    IDLE      = "idle"
    SEARCHING = "searching"
    COOLDOWN  = "cooldown"


class LogBuffer:
    """Ring buffer of operator-facing status lines."""

    def __init__(self, maxlen: int = 10):
        self._entries: deque[str] = deque(maxlen=maxlen)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def entries(self) -> list[str]:
        return list(self._entries)

    @property
    def latest(self) -> Optional[str]:
        return self._entries[-1] if self._entries else None

    def append(self, message: str) -> None:
        self._entries.append(message)
        logger.info("[session] %s", message)

    def reset(self, *messages: str) -> None:
        self._entries.clear()
        for message in messages:
            self.append(message)


def build_batch_query(base_query: str, iteration: int) -> tuple[str, str]:
    """Return (query, modifier) for the append batch with this iteration count."""
    modifier = MODIFIERS[iteration % len(MODIFIERS)]
    return f"{base_query} {modifier}", modifier


class LeadSearchSession:
    def __init__(
        self,
        client: Optional[AIClient] = None,
        *,
        settings: Optional[Settings] = None,
        accumulator: Optional[LeadAccumulator] = None,
        finder: Optional[LeadFinder] = None,
    ):
        self._settings = settings or get_settings()
        if finder is None:
            finder = partial(
                find_leads_stream,
                client=client or AIClient(settings=self._settings),
                settings=self._settings,
            )
        self._finder = finder

        self.accumulator = accumulator or LeadAccumulator()
        self.logs = LogBuffer(self._settings.log_buffer_size)

        self.state = SessionState.IDLE
        self.is_continuous = False
        self.stop_requested = False

        self.base_query = ""
        self.strategy = SearchStrategy.RECRUITERS
        self.location = ""
        self.iteration_count = 0
        self.exclude_list: list[str] = []
        self.last_query: Optional[str] = None
        self.last_error: Optional[AIClientError] = None
        self.batches_completed = 0

        self._task: Optional[asyncio.Task] = None
        self._wake = asyncio.Event()

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── Control ───────────────────────────────────────────────────────────────

    def start(
        self,
        query: str,
        strategy: Union[SearchStrategy, str] = SearchStrategy.RECRUITERS,
        location: str = "",
        *,
        continuous: Optional[bool] = None,
    ) -> asyncio.Task:
        """
        Begin a new search. Clears previous results when the first batch starts.

        Raises:
            ValueError:   If the query is blank.
            RuntimeError: If a search is already running.
        """
        if not query.strip():
            raise ValueError("Search query is empty")
        if self.is_active:
            raise RuntimeError("A search is already running; stop it first")
        self.base_query = query.strip()
        self.strategy = SearchStrategy(strategy)
        self.location = location.strip()
        return self._launch(append=False, continuous=continuous)

    def resume(self, *, continuous: Optional[bool] = None) -> asyncio.Task:
        """Run further append batches on the current session's query and results."""
        if not self.base_query:
            raise RuntimeError("No search to resume; call start() first")
        return self._launch(append=True, continuous=continuous)

    async def wait(self) -> None:
        """Wait for the running search to settle in idle."""
        if self._task is None:
            return
        try:
            await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def run(self, *args, **kwargs) -> None:
        """start() and wait()."""
        self.start(*args, **kwargs)
        await self.wait()

    def stop(self) -> None:
        """Request a stop. Also turns infinity mode off so nothing is rescheduled."""
        self.stop_requested = True
        self.is_continuous = False
        self._wake.set()
        if self.is_active:
            self.logs.append("Stopping search agent...")

    def cancel(self) -> None:
        """stop() and abandon the in-flight request."""
        self.stop()
        if self.is_active:
            self._task.cancel()

    def set_continuous(self, enabled: bool) -> None:
        self.is_continuous = enabled
        if not enabled:
            self._wake.set()

    def copy_selection(self, sink: Callable[[str], None], *, full_details: bool = False) -> str:
        """Write the selected leads to a clipboard-like sink and log it."""
        count = len(self.accumulator.selected)
        if full_details:
            text = self.accumulator.export_full_details()
            self.logs.append(f"Copied details for {count} leads.")
        else:
            text = self.accumulator.export_emails_only()
            self.logs.append(f"Copied {count} emails to clipboard.")
        sink(text)
        return text

    # ── Run loop ──────────────────────────────────────────────────────────────

    def _launch(self, *, append: bool, continuous: Optional[bool]) -> asyncio.Task:
        if self.is_active:
            raise RuntimeError("A search is already running; stop it first")
        if continuous is not None:
            self.is_continuous = continuous
        self.stop_requested = False
        self.last_error = None
        self._wake.clear()
        self.state = SessionState.SEARCHING
        self._task = asyncio.create_task(self._run(append))
        return self._task

    async def _run(self, append: bool) -> None:
        try:
            while not self.stop_requested:
                if not await self._run_batch(append):
                    return
                if self.stop_requested or not self.is_continuous:
                    break
                if not await self._cooldown():
                    break
                append = True
            self.logs.append("Search stopped." if self.stop_requested else "Search complete.")
        except asyncio.CancelledError:
            if self.stop_requested:
                self.logs.append("Search stopped.")
            raise
        finally:
            self.state = SessionState.IDLE

    async def _run_batch(self, append: bool) -> bool:
        """Stream one batch into the accumulator. False when the batch failed."""
        self.state = SessionState.SEARCHING
        query = self.base_query

        if not append:
            self.accumulator.clear()
            self.logs.reset("Initializing Deep Search Agent...")
            self.iteration_count = 0
            self.exclude_list = []
        else:
            self.logs.append("--- Starting next Deep Search batch ---")
            query, modifier = build_batch_query(self.base_query, self.iteration_count)
            self.logs.append(f'Applying search modifier: "{modifier}"')
            self.iteration_count += 1
            self.exclude_list = self.accumulator.recent_exclusions(self._settings.exclude_limit)

        self.last_query = query
        events = self._finder(
            query,
            self.strategy,
            self._settings.lead_batch_size,
            self.location,
            list(self.exclude_list),
        )

        added = 0
        try:
            async with aclosing(events):
                async for event in events:
                    if self.stop_requested:
                        break
                    if isinstance(event, ResultEvent):
                        if self.accumulator.add_result(event.data):
                            added += 1
                    else:
                        self.logs.append(event.message)
        except RateLimitedError as e:
            self.is_continuous = False
            self.last_error = e
            hint = f" Try again in ~{math.ceil(e.retry_after)}s." if e.retry_after else ""
            self.logs.append(f"Rate limit reached, infinity mode disabled.{hint}")
            logger.warning("Lead search rate limited: %s", e)
            return False
        except AIClientError as e:
            self.last_error = e
            self.logs.append("Search interrupted or failed.")
            logger.error("Lead search batch failed: %s", e)
            return False

        self.batches_completed += 1
        logger.info(
            "Batch %d done for %r: %d new lead(s), %d total",
            self.batches_completed, query, added, len(self.accumulator),
        )
        return True

    async def _cooldown(self) -> bool:
        """Wait before the next append batch. True when it should start."""
        if self.stop_requested:
            return False
        self.state = SessionState.COOLDOWN
        self._wake.clear()
        self.logs.append("Analyzing results... Cooldown before next deep dive...")
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self._settings.cooldown_seconds)
        except asyncio.TimeoutError:
            pass
        return self.is_continuous and not self.stop_requested
