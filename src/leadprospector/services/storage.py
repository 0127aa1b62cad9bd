"""
Sender profile persistence: local JSON cache + optional remote document store.

Local files live at:  <data_dir>/profiles/<sanitized_user_id>.json

Reads try the remote store first and fall back to the local cache when the
remote read fails or finds nothing. Writes always hit the local cache first,
so a failed remote write never loses the user's edit.
"""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from leadprospector.config import get_settings
from leadprospector.models.profile import UserProfile

logger = logging.getLogger(__name__)


class ProfileSyncError(Exception):
    """Raised when the remote store rejects or fails a profile write."""


class LocalProfileCache:
    def __init__(self, data_dir: Optional[Path] = None):
        self.root = Path(data_dir or get_settings().data_dir) / "profiles"

    def path_for(self, user_id: str) -> Path:
        return self.root / f"{_slug(user_id)}.json"

    def load(self, user_id: str) -> Optional[UserProfile]:
        path = self.path_for(user_id)
        if not path.exists():
            return None
        try:
            with open(path, encoding="utf-8") as f:
                return UserProfile.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error("Corrupt local profile %s: %s", path, e)
            return None

    def save(self, user_id: str, profile: UserProfile) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.path_for(user_id)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(profile.model_dump(mode="json", by_alias=True), f, indent=2, ensure_ascii=False)
        return path


class RemoteProfileStore:
    """Minimal REST document store: GET/PUT {base_url}/users/{user_id}."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        *,
        timeout: float = 15,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self._headers,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def get(self, user_id: str) -> Optional[UserProfile]:
        async with self._client() as client:
            resp = await client.get(_document_path(user_id))
        if resp.status_code == 404:
            return None
        resp.raise_for_status()
        return UserProfile.model_validate(resp.json())

    async def put(self, user_id: str, profile: UserProfile) -> None:
        payload = profile.model_dump(mode="json", by_alias=True)
        async with self._client() as client:
            try:
                resp = await client.put(_document_path(user_id), json=payload, params={"merge": "true"})
            except httpx.RequestError as e:
                raise ProfileSyncError(f"Cloud sync failed: {e}") from e

        if resp.status_code in (401, 403):
            raise ProfileSyncError("Cloud sync blocked: the store's access rules rejected the write.")
        if resp.status_code >= 400:
            raise ProfileSyncError(f"Cloud sync failed: HTTP {resp.status_code}")


class ProfileRepository:
    def __init__(self, local: LocalProfileCache, remote: Optional[RemoteProfileStore] = None):
        self.local = local
        self.remote = remote

    @classmethod
    def from_settings(cls) -> "ProfileRepository":
        settings = get_settings()
        remote = None
        if settings.profile_api_url:
            remote = RemoteProfileStore(settings.profile_api_url, settings.profile_api_key)
        return cls(LocalProfileCache(Path(settings.data_dir)), remote)

    async def get(self, user_id: str) -> Optional[UserProfile]:
        profile = None
        if self.remote is not None:
            try:
                profile = await self.remote.get(user_id)
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Remote profile fetch failed, using local cache: %s", e)

        if profile is None:
            profile = self.local.load(user_id)
            if profile is not None:
                logger.info("Loaded profile for %s from local cache", user_id)
        return profile

    async def put(self, user_id: str, profile: UserProfile) -> None:
        """
        Save locally, then sync remotely. A failed local save is logged and
        the remote write still runs.

        Raises:
            ProfileSyncError: Remote write failed; the local copy is already saved.
            OSError:          Local save failed and there is no remote store.
        """
        try:
            self.local.save(user_id, profile)
        except OSError as e:
            if self.remote is None:
                raise
            logger.error("Local profile save failed for %s, syncing remotely anyway: %s", user_id, e)
        if self.remote is not None:
            await self.remote.put(user_id, profile)


def _document_path(user_id: str) -> str:
    return f"/users/{quote(user_id, safe='')}"


def _slug(text: str) -> str:
    """Convert text to a safe filename segment."""
    text = text.lower().strip()
    text = re.sub(r"[^\w\s@.-]", "", text)
    text = re.sub(r"[\s]+", "_", text)
    return text[:80] or "default"
