import asyncio
import os
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

import pytest
from typer.testing import CliRunner

from subsweep.domain.interfaces.channel_api import ChannelApi
from subsweep.domain.models.common import ApiKey, ChannelId, PlaylistId
from subsweep.domain.models.errors import ApiFailure
from subsweep.domain.models.scan import CacheEntry, CredentialCheck, ScanConfig
from subsweep.infrastructure.cache.caching_service import InMemoryCacheStore
from subsweep.infrastructure.config import settings

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)
GOOD_KEY = "good-key"


def channel(n: int) -> ChannelId:
    """A well-formed 24 character channel id."""
    return ChannelId(f"UC{n:022d}")


def playlist_for(channel_id: str) -> PlaylistId:
    return PlaylistId("UU" + channel_id[2:])


class FakeChannelApi(ChannelApi):
    """In-memory ChannelApi recording every call it receives.

    `playlists` maps channel -> uploads playlist; channels missing from it are
    omitted from batch responses. `uploads` maps playlist -> last upload time.
    `batch_failures` maps the index of a batch call to the failure it raises.
    """

    def __init__(
        self,
        playlists: Optional[Dict[ChannelId, Optional[PlaylistId]]] = None,
        uploads: Optional[Dict[PlaylistId, Optional[datetime]]] = None,
        delay: float = 0.0,
    ):
        self.playlists = playlists or {}
        self.uploads = uploads or {}
        self.delay = delay
        self.batch_failures: Dict[int, ApiFailure] = {}
        self.detail_failures: Dict[PlaylistId, ApiFailure] = {}
        self.batch_calls: List[List[ChannelId]] = []
        self.detail_calls: List[PlaylistId] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def resolve_uploads_playlists(self, channel_ids: Sequence[ChannelId], api_key: ApiKey):
        index = len(self.batch_calls)
        self.batch_calls.append(list(channel_ids))
        await asyncio.sleep(0)
        if index in self.batch_failures:
            raise self.batch_failures[index]
        return {cid: self.playlists[cid] for cid in channel_ids if cid in self.playlists}

    async def fetch_latest_upload(self, playlist_id: PlaylistId, api_key: ApiKey):
        self.detail_calls.append(playlist_id)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if playlist_id in self.detail_failures:
                raise self.detail_failures[playlist_id]
            return self.uploads.get(playlist_id)
        finally:
            self.in_flight -= 1

    async def check_api_key(self, api_key: ApiKey) -> CredentialCheck:
        if api_key == GOOD_KEY:
            return CredentialCheck(valid=True)
        return CredentialCheck(valid=False, error="API key not valid. Please pass a valid API key.")

    def add_channel(self, channel_id: ChannelId, days_ago: Optional[int]) -> PlaylistId:
        """Registers a live channel whose last upload was `days_ago` days before NOW."""
        playlist_id = playlist_for(channel_id)
        self.playlists[channel_id] = playlist_id
        self.uploads[playlist_id] = NOW - timedelta(days=days_ago) if days_ago is not None else None
        return playlist_id


@pytest.fixture
def fake_api() -> FakeChannelApi:
    return FakeChannelApi()


@pytest.fixture
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture
def scan_config() -> ScanConfig:
    return ScanConfig(threshold_days=365, cache_ttl_hours=24, concurrency=6, api_key=ApiKey(GOOD_KEY))


@pytest.fixture
def fresh_entry():
    """Factory for cache entries checked `hours_ago` hours before NOW."""
    def _make(channel_id: ChannelId, days_ago: Optional[int], hours_ago: float = 1.0) -> CacheEntry:
        return CacheEntry(
            uploads_playlist_id=playlist_for(channel_id),
            last_upload_at=NOW - timedelta(days=days_ago) if days_ago is not None else None,
            last_checked_at=NOW - timedelta(hours=hours_ago),
        )
    return _make


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keeps tests independent of the developer's config files and environment."""
    monkeypatch.delenv("YOUTUBE_API_KEY", raising=False)
    for name in list(os.environ):
        if name.startswith(settings.ENV_PREFIX):
            monkeypatch.delenv(name, raising=False)
    settings.load_configuration(config_file=tmp_path / "missing.yaml", env_file=tmp_path / "missing.env", force=True)
    settings.clear_test_config()
    yield
    settings.clear_test_config()
