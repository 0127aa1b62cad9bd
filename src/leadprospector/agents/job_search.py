"""
Search-grounded job listing finder.

Asks the web-search model for a handful of active listings as a raw JSON
array. The model sometimes wraps the array in markdown fences or answers
with prose; anything that does not parse is treated as "no results" rather
than an error. Transport and rate-limit errors still propagate.
"""
from __future__ import annotations

import json
import logging
from typing import Optional

from pydantic import ValidationError

from leadprospector.models.job import JobListing
from leadprospector.services.ai_client import AIClient, strip_code_fences

logger = logging.getLogger(__name__)

_PROMPT_TEMPLATE = """\
Find {count} active job listings for: "{query}".

Return the output strictly as a raw JSON array.
Each object in the array must have these fields:
  - "company": (string) Company name
  - "title": (string) Job title
  - "location": (string) Location
  - "email": (string or null) Contact email if found
  - "snippet": (string) Short description of the role
  - "url": (string or null) Link to the job
  - "fullDescription": (string) Full, detailed job description
  - "sourceSite": (string) The website where the listing was found

Return only the JSON array.
"""


async def search_jobs(
    query: str,
    *,
    count: str = "4-5",
    client: Optional[AIClient] = None,
) -> list[JobListing]:
    """
    Find job listings for `query`.

    Returns:
        Parsed listings; empty when the model's answer is not a JSON array.
        Individual entries that fail validation are skipped.

    Raises:
        AIClientError: Transport or rate-limit failure.
    """
    client = client or AIClient()
    raw = await client.generate_with_search(_PROMPT_TEMPLATE.format(count=count, query=query))
    return parse_job_listings(raw)


def parse_job_listings(raw: str) -> list[JobListing]:
    cleaned = strip_code_fences(raw or "")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        logger.warning("Job search returned non-JSON: %r", cleaned[:200])
        return []

    if not isinstance(data, list):
        logger.warning("Job search returned %s instead of a list", type(data).__name__)
        return []

    listings: list[JobListing] = []
    for item in data:
        try:
            listings.append(JobListing.model_validate(item))
        except ValidationError as e:
            logger.debug("Skipping invalid job listing %r: %s", item, e)
    return listings
