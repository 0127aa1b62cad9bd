"""
Show or update the sender profile used for drafting.

Usage:
    python scripts/edit_profile.py --user me@example.com
    python scripts/edit_profile.py --user me@example.com --name "Ada Lovelace" --skills "Dart, Flutter"

The profile is written to the local cache first and then synced to the
remote store when PROFILE_API_URL is configured.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from leadprospector.logger import setup_logger
from leadprospector.models.profile import UserProfile
from leadprospector.services.storage import ProfileRepository, ProfileSyncError

_FIELDS = ("name", "email", "years_experience", "portfolio_url", "skills", "bio", "linkedin_url")


def _ok(label: str, value: str) -> None:
    print(f"  ✓ {label:<20} {value}")


def _warn(label: str, value: str) -> None:
    print(f"  ⚠ {label:<20} {value}")


async def main(user_id: str, updates: dict[str, str]) -> None:
    setup_logger()
    repo = ProfileRepository.from_settings()

    profile = await repo.get(user_id) or UserProfile()

    if updates:
        profile = profile.model_copy(update=updates)
        try:
            await repo.put(user_id, profile)
            _ok("Saved", "local cache + remote store" if repo.remote else "local cache")
        except ProfileSyncError as e:
            _warn("Saved locally", str(e))

    for field in _FIELDS:
        _ok(field, getattr(profile, field) or "—")
    if not profile.is_complete:
        _warn("Incomplete", "Set --name before drafting emails.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show or update the sender profile.")
    parser.add_argument("--user", default="default", help="Profile id (default: default)")
    for field in _FIELDS:
        parser.add_argument(f"--{field.replace('_', '-')}", dest=field, default=None)
    args = parser.parse_args()

    updates = {f: getattr(args, f) for f in _FIELDS if getattr(args, f) is not None}
    asyncio.run(main(user_id=args.user, updates=updates))
