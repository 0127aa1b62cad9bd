"""
Search for job listings and draft an application email for one of them.

Usage:
    python scripts/search_jobs.py "<query>"
    python scripts/search_jobs.py "<query>" --pick 2 --user me@example.com

Examples:
    python scripts/search_jobs.py "Flutter Developer Remote"
    python scripts/search_jobs.py "Senior Android engineer Berlin" --pick 1
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from leadprospector.agents.email_drafter import ProfileIncompleteError, generate_application_email
from leadprospector.agents.job_search import search_jobs
from leadprospector.logger import setup_logger
from leadprospector.services.ai_client import AIClientError, RateLimitedError
from leadprospector.services.mail import mailto_for_draft
from leadprospector.services.storage import ProfileRepository

SEP = "─" * 64


def _section(title: str) -> None:
    print(f"\n{SEP}")
    print(f"  {title}")
    print(SEP)


def _ok(label: str, value: str) -> None:
    print(f"  ✓ {label:<20} {value}")


def _warn(label: str, value: str) -> None:
    print(f"  ⚠ {label:<20} {value}")


def _fail(label: str, value: str) -> None:
    print(f"  ✗ {label:<20} {value}")


async def main(query: str, pick: int | None, user_id: str) -> None:
    setup_logger()

    print(f"\n{'═' * 64}")
    print(f"  Lead Prospector — Job Search")
    print(f"{'═' * 64}")

    # ── STEP 1: Search ───────────────────────────────────────
    _section("STEP 1 — Search Listings")
    t0 = time.perf_counter()
    try:
        listings = await search_jobs(query)
    except RateLimitedError as e:
        _fail("Search", "Rate limited by the AI backend.")
        if e.retry_after:
            _warn("Retry", f"in ~{e.retry_after:.0f}s")
        sys.exit(1)
    except AIClientError as e:
        _fail("Search", f"FAILED: {e}")
        sys.exit(1)
    elapsed = time.perf_counter() - t0

    _ok("Status", f"Complete in {elapsed:.1f}s")
    if not listings:
        _warn("Results", "No listings parsed from the response. Try rephrasing the query.")
        return

    for i, job in enumerate(listings, 1):
        print(f"\n  [{i}] {job.title} — {job.company}")
        print(f"       Location: {job.location or 'n/a'}")
        if job.email:
            print(f"       Contact:  {job.email}")
        if job.url:
            print(f"       URL:      {job.url}")
        if job.snippet:
            print(f"       {job.snippet[:140]}")

    if pick is None:
        return
    if not 1 <= pick <= len(listings):
        _fail("Pick", f"Choose a listing between 1 and {len(listings)}")
        sys.exit(1)

    # ── STEP 2: Draft ────────────────────────────────────────
    _section("STEP 2 — Application Email")
    listing = listings[pick - 1]
    profile = await ProfileRepository.from_settings().get(user_id)
    try:
        draft = await generate_application_email(profile, listing.to_job_details())
    except ProfileIncompleteError as e:
        _fail("Profile", str(e))
        sys.exit(1)
    except AIClientError as e:
        _fail("Draft", f"FAILED: {e}")
        sys.exit(1)

    print(f"\n  Subject: {draft.subject}\n  ---")
    for line in draft.body.splitlines():
        print(f"  {line}")
    if listing.email:
        print(f"\n  {mailto_for_draft(listing.email, draft)}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Search job listings and draft an application email.")
    parser.add_argument("query", help='Job search, e.g. "Flutter Developer Remote"')
    parser.add_argument("--pick", type=int, default=None, help="Listing number to draft an email for")
    parser.add_argument("--user", default="default", help="Profile id used as the sender (default: default)")
    args = parser.parse_args()

    asyncio.run(main(query=args.query, pick=args.pick, user_id=args.user))
