"""
Per-recipient draft cache for single and batch drafting.

A draft is generated at most once per recipient email while the coordinator
lives. Concurrent requests for the same recipient share one in-flight task.
A failed generation leaves that recipient's slot empty so it can be retried;
other recipients are unaffected.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import Awaitable, Callable, Optional, Sequence

from leadprospector.agents.email_drafter import ensure_profile, generate_cold_email
from leadprospector.models.draft import GeneratedEmail
from leadprospector.models.lead import Lead
from leadprospector.models.profile import UserProfile
from leadprospector.services.ai_client import AIClient

logger = logging.getLogger(__name__)

DraftGenerator = Callable[[UserProfile, Lead], Awaitable[GeneratedEmail]]


class DraftGenerationError(Exception):
    """Raised when generating the draft for one recipient failed."""

    def __init__(self, recipient: Lead, cause: Exception):
        super().__init__(f"Failed to draft email for {recipient.email}: {cause}")
        self.recipient = recipient
        self.cause = cause


@dataclass
class DraftSlot:
    index: int
    recipient: Lead
    draft: Optional[GeneratedEmail] = None
    error: Optional[str] = None


class DraftCoordinator:
    def __init__(
        self,
        profile: Optional[UserProfile],
        generate: Optional[DraftGenerator] = None,
        *,
        client: Optional[AIClient] = None,
    ):
        self.profile = profile
        self._generate = generate or partial(generate_cold_email, client=client)
        self._cache: dict[str, GeneratedEmail] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self.errors: dict[str, str] = {}

    def cached_draft(self, recipient: Lead) -> Optional[GeneratedEmail]:
        return self._cache.get(recipient.key)

    def is_pending(self, recipient: Lead) -> bool:
        return recipient.key in self._inflight

    async def request_draft(self, recipient: Lead) -> GeneratedEmail:
        """
        Return the cached draft for `recipient`, generating it on first request.

        Raises:
            ProfileIncompleteError: Sender profile has no name (no network call made).
            DraftGenerationError:   Generation failed; the slot stays empty.
        """
        ensure_profile(self.profile)

        key = recipient.key
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._generate_into_cache(recipient))
            self._inflight[key] = task
            task.add_done_callback(lambda _t, k=key: self._inflight.pop(k, None))

        # One caller going away must not cancel generation for the others
        return await asyncio.shield(task)

    async def retry(self, recipient: Lead) -> GeneratedEmail:
        self.errors.pop(recipient.key, None)
        return await self.request_draft(recipient)

    async def open_batch(self, batch: Sequence[Lead]) -> DraftSlot:
        """Start drafting a batch at its first recipient."""
        return await self.navigate(batch, 0, 0)

    async def navigate(self, batch: Sequence[Lead], current_index: int, direction: int) -> DraftSlot:
        """
        Step through `batch` by `direction` (clamped to its bounds).

        The target's draft is generated when it is not cached yet. Failures are
        reported on the returned slot instead of being raised.

        Raises:
            ValueError:             Empty batch.
            ProfileIncompleteError: Sender profile has no name.
        """
        if not batch:
            raise ValueError("Cannot navigate an empty batch")

        step = (direction > 0) - (direction < 0)
        index = min(max(current_index + step, 0), len(batch) - 1)
        recipient = batch[index]

        slot = DraftSlot(index=index, recipient=recipient)
        try:
            slot.draft = await self.request_draft(recipient)
        except DraftGenerationError as e:
            slot.error = str(e)
        return slot

    def clear(self) -> None:
        self._cache.clear()
        self.errors.clear()

    async def _generate_into_cache(self, recipient: Lead) -> GeneratedEmail:
        key = recipient.key
        try:
            draft = await self._generate(self.profile, recipient)
        except Exception as e:
            logger.warning("Draft generation failed for %s: %s", recipient.email, e)
            self.errors[key] = str(e)
            raise DraftGenerationError(recipient, e) from e

        self._cache[key] = draft
        self.errors.pop(key, None)
        return draft
