"""
Line protocol parser for the streamed lead-search response.

The model is asked to answer with one line per item:

    LOG: Searching LinkedIn for Flutter hiring managers...
    {"email": "jane@acme.com", "type": "recruitment", "name": "Jane Doe", ...}

Fragments arrive with arbitrary boundaries, so text is buffered until a
newline completes a line. Each complete line becomes at most one event:

  1. Log marker prefix (LOG:, [LOG], STATUS:)  → LogEvent, marker stripped
  2. {...}                                      → ResultEvent, or dropped if invalid
  3. Anything else                              → LogEvent in lenient mode, else dropped

Malformed lines never raise. Transport failures are re-raised unchanged after
one diagnostic LogEvent.
"""
from __future__ import annotations

import json
import logging
from typing import AsyncIterable, AsyncIterator, Optional, Union

from pydantic import ValidationError

from leadprospector.models.lead import Lead, LogEvent, ResultEvent
from leadprospector.services.ai_client import AIClientError

logger = logging.getLogger(__name__)

LOG_MARKERS = ("LOG:", "[LOG]", "STATUS:")

# Unclassified lines shorter than this are treated as noise
_MIN_NARRATION_LENGTH = 12

Event = Union[LogEvent, ResultEvent]


class StreamParser:
    """Incremental parser. One instance per stream; closed by finish()."""

    def __init__(self, *, lenient: bool = True):
        self.lenient = lenient
        self._buffer = ""
        self._closed = False

    def feed(self, fragment: str) -> list[Event]:
        if self._closed:
            raise RuntimeError("StreamParser is closed; create a new parser per stream")

        self._buffer += fragment
        *lines, self._buffer = self._buffer.split("\n")
        return [event for event in map(self.parse_line, lines) if event is not None]

    def finish(self) -> list[Event]:
        """Flush the trailing partial line and close the parser."""
        if self._closed:
            return []
        self._closed = True
        remainder, self._buffer = self._buffer, ""
        event = self.parse_line(remainder) if remainder.strip() else None
        return [event] if event is not None else []

    def parse_line(self, line: str) -> Optional[Event]:
        trimmed = line.strip()
        if not trimmed:
            return None

        upper = trimmed.upper()
        for marker in LOG_MARKERS:
            if upper.startswith(marker):
                message = trimmed[len(marker):].strip()
                return LogEvent(message=message) if message else None

        if trimmed.startswith("{") and trimmed.endswith("}"):
            return _parse_lead(trimmed)

        if self.lenient and _is_narration(trimmed):
            return LogEvent(message=trimmed)
        return None


async def parse_stream(
    fragments: AsyncIterable[str],
    *,
    lenient: bool = True,
) -> AsyncIterator[Event]:
    """
    Turn an async iterable of text fragments into typed events, lazily.

    Raises:
        AIClientError: Whatever the transport raised, after a final LogEvent.
    """
    parser = StreamParser(lenient=lenient)
    try:
        async for fragment in fragments:
            for event in parser.feed(fragment):
                yield event
    except AIClientError as e:
        logger.warning("Lead stream aborted: %s", e)
        yield LogEvent(message=f"Stream error: {e}")
        raise

    for event in parser.finish():
        yield event


def _parse_lead(line: str) -> Optional[ResultEvent]:
    try:
        data = json.loads(line)
        lead = Lead.model_validate(data)
    except (json.JSONDecodeError, ValidationError) as e:
        logger.debug("Dropping malformed result line %r: %s", line[:120], e)
        return None
    return ResultEvent(data=lead)


def _is_narration(line: str) -> bool:
    if len(line) < _MIN_NARRATION_LENGTH:
        return False
    if line[0] in "{[" or line[-1] in "}],":
        return False
    return any(ch.isalnum() for ch in line)
