"""
Streaming lead search: one batch of the discovery session.

Builds the search prompt for a query/strategy/location, sends it to the
web-search model in streaming mode, and hands the fragments to the line
protocol parser. The exclusion list is only a hint to the model; dedup is
done by the accumulator.
"""
from __future__ import annotations

from contextlib import aclosing
from typing import AsyncIterator, Optional, Sequence, Union

from leadprospector.config import Settings, get_settings
from leadprospector.models.lead import LogEvent, ResultEvent, SearchStrategy
from leadprospector.services.ai_client import AIClient
from leadprospector.services.stream_parser import parse_stream

# ---------------------------------------------------------------------------
# Strategy → search focus
# ---------------------------------------------------------------------------

_STRATEGY_FOCUS: dict[SearchStrategy, str] = {
    SearchStrategy.RECRUITERS: (
        "recruiters, talent acquisition partners and hiring coordinators"
    ),
    SearchStrategy.DECISION_MAKERS: (
        "engineering managers, team leads, CTOs and founders who make hiring decisions"
    ),
    SearchStrategy.ACTIVE_HIRING: (
        "companies with open roles right now and the people posting those roles"
    ),
}

_PROMPT_TEMPLATE = """\
Find ~{count} professional contacts related to: "{query}" in "{location}".
Focus: {focus}.

Use web search. While you work, report progress on its own line as:
LOG: <short status message>

Report every contact you find as one JSON object on a single line:
{{"email": "string", "type": "recruitment" | "personal" | "general", "name": "string", "role": "string", "company": "string", "industry": "string", "snippet": "string (why this contact is relevant)", "source": "string", "sourceUrl": "string"}}

Only report contacts with a real email address. No markdown, no code fences.
{exclude_block}"""


def build_lead_prompt(
    query: str,
    strategy: SearchStrategy = SearchStrategy.RECRUITERS,
    count: int = 10,
    location: str = "",
    exclude: Sequence[str] = (),
) -> str:
    exclude_block = ""
    if exclude:
        exclude_block = (
            "\nAlready found, skip these people and companies:\n"
            + ", ".join(exclude)
            + "\n"
        )
    return _PROMPT_TEMPLATE.format(
        count=count,
        query=query,
        location=location or "Anywhere",
        focus=_STRATEGY_FOCUS[SearchStrategy(strategy)],
        exclude_block=exclude_block,
    )


async def find_leads_stream(
    query: str,
    strategy: SearchStrategy = SearchStrategy.RECRUITERS,
    count: int = 10,
    location: str = "",
    exclude: Sequence[str] = (),
    *,
    client: Optional[AIClient] = None,
    settings: Optional[Settings] = None,
    lenient: Optional[bool] = None,
) -> AsyncIterator[Union[LogEvent, ResultEvent]]:
    """
    Run one streamed search batch and yield log / result events in arrival order.

    The unclassified-line policy comes from `lenient` when given, else from
    `settings.unclassified_lines`.

    Raises:
        AIClientError: Transport or rate-limit failure from the backend.
    """
    settings = settings or get_settings()
    client = client or AIClient(settings=settings)
    if lenient is None:
        lenient = settings.unclassified_lines == "lenient"

    prompt = build_lead_prompt(query, strategy, count, location, exclude)
    fragments = client.generate_stream(prompt)
    async with aclosing(fragments):
        events = parse_stream(fragments, lenient=lenient)
        async with aclosing(events):
            async for event in events:
                yield event
