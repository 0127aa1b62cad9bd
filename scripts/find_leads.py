"""
Find hiring contacts with a streamed, search-grounded lead search.

Usage:
    python scripts/find_leads.py "<query>"
    python scripts/find_leads.py "<query>" --strategy decision_makers --location Berlin
    python scripts/find_leads.py "<query>" --infinity --max-batches 5
    python scripts/find_leads.py "<query>" --select-all --export full
    python scripts/find_leads.py "<query>" --select-all --draft --user me@example.com

Examples:
    python scripts/find_leads.py "Flutter Developer Hiring" --strategy active_hiring --location Remote
    python scripts/find_leads.py "Rust backend engineer" --infinity

In --infinity mode a new batch starts after each cooldown until Ctrl-C,
--max-batches, or a rate-limit response from the backend.
"""
from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import time
from pathlib import Path

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from leadprospector.agents.email_drafter import ProfileIncompleteError
from leadprospector.logger import setup_logger
from leadprospector.models.lead import SearchStrategy
from leadprospector.services.drafts import DraftCoordinator
from leadprospector.services.mail import mailto_for_draft
from leadprospector.services.session import LeadSearchSession
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


async def _watch(session: LeadSearchSession, max_batches: int | None) -> None:
    """Print log lines and new leads while the session runs."""
    last_log = None
    shown = 0
    while True:
        active = session.is_active
        latest = session.logs.latest
        if latest and latest != last_log:
            print(f"  … {latest}")
            last_log = latest

        leads = session.accumulator.results
        for lead in leads[shown:]:
            print(f"  + [{lead.type.value:<11}] {lead.email:<36} {lead.name or ''}")
        shown = len(leads)

        if max_batches and session.batches_completed >= max_batches and session.is_continuous:
            print(f"  Reached {max_batches} batch(es), stopping.")
            session.stop()
        if not active:
            break
        await asyncio.sleep(0.25)


async def main(
    query: str,
    strategy: str,
    location: str,
    infinity: bool,
    max_batches: int | None,
    select_all: bool,
    export: str | None,
    draft: bool,
    user_id: str,
) -> None:
    setup_logger()

    print(f"\n{'═' * 64}")
    print(f"  Lead Prospector — Lead Finder")
    print(f"{'═' * 64}")

    # ── STEP 1: Search ───────────────────────────────────────
    _section("STEP 1 — Search")
    _ok("Query", query)
    _ok("Strategy", strategy)
    _ok("Location", location or "Anywhere")
    _ok("Infinity mode", "ON (Ctrl-C to stop)" if infinity else "off")
    print()

    session = LeadSearchSession()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, session.stop)
    except NotImplementedError:
        pass  # Windows: Ctrl-C falls back to KeyboardInterrupt

    t0 = time.perf_counter()
    session.start(query, strategy, location, continuous=infinity)
    await asyncio.gather(session.wait(), _watch(session, max_batches))
    elapsed = time.perf_counter() - t0

    if session.last_error:
        _fail("Status", f"Ended with error after {elapsed:.1f}s")
        _fail("Error", str(session.last_error))
    else:
        _ok("Status", f"Idle after {elapsed:.1f}s, {session.batches_completed} batch(es)")

    leads = session.accumulator.results
    if not leads:
        _warn("Results", "No leads found. Try a broader query or another strategy.")
        return
    _ok("Found", f"{len(leads)} unique lead(s)")

    # ── STEP 2: Select / export ──────────────────────────────
    _section("STEP 2 — Selection")
    if select_all:
        session.accumulator.select_all()
    _ok("Selected", f"{len(session.accumulator.selected)} / {len(leads)}")

    if export:
        print()
        session.copy_selection(print, full_details=(export == "full"))

    # ── STEP 3: Drafts ───────────────────────────────────────
    if not draft:
        return
    _section("STEP 3 — Drafts")
    batch = session.accumulator.selected
    if not batch:
        _warn("Skipped", "Nothing selected. Pass --select-all to draft for every lead.")
        return

    profile = await ProfileRepository.from_settings().get(user_id)
    coordinator = DraftCoordinator(profile)
    try:
        slot = await coordinator.open_batch(batch)
        while True:
            if slot.draft:
                _ok(f"[{slot.index + 1}/{len(batch)}]", slot.recipient.email)
                print(f"\n  Subject: {slot.draft.subject}\n  ---")
                for line in slot.draft.body.splitlines():
                    print(f"  {line}")
                print(f"\n  {mailto_for_draft(slot.recipient.email, slot.draft)[:120]}…\n")
            else:
                _fail(f"[{slot.index + 1}/{len(batch)}]", slot.error or "Draft failed")
            if slot.index == len(batch) - 1:
                break
            slot = await coordinator.navigate(batch, slot.index, +1)
    except ProfileIncompleteError as e:
        _fail("Profile", str(e))
        print("\n  python scripts/edit_profile.py --user <id> --name \"Your Name\"\n")
        sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Stream hiring contacts for a query, optionally forever (infinity mode).",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("query", help='What to search for, e.g. "Flutter Developer Hiring"')
    parser.add_argument(
        "--strategy",
        choices=[s.value for s in SearchStrategy],
        default=SearchStrategy.ACTIVE_HIRING.value,
    )
    parser.add_argument("--location", default="Remote")
    parser.add_argument("--infinity", action="store_true", help="Keep searching in batches until stopped")
    parser.add_argument("--max-batches", type=int, default=None, help="Stop infinity mode after N batches")
    parser.add_argument("--select-all", action="store_true", help="Select every discovered lead")
    parser.add_argument("--export", choices=["emails", "full"], default=None, help="Print the selection")
    parser.add_argument("--draft", action="store_true", help="Draft an email for each selected lead")
    parser.add_argument("--user", default="default", help="Profile id used as the sender (default: default)")
    args = parser.parse_args()

    asyncio.run(main(
        query=args.query,
        strategy=args.strategy,
        location=args.location,
        infinity=args.infinity,
        max_batches=args.max_batches,
        select_all=args.select_all,
        export=args.export,
        draft=args.draft,
        user_id=args.user,
    ))
