"""Scan Service: the fetch pipeline behind the `scan` command.

Partitions channels by cache freshness, resolves missing uploads playlists
in batches, fetches the latest upload of each remaining channel under a
concurrency limit, and merges everything into one status map.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

# Domain Layer Imports
from subsweep.domain.interfaces.cache import CacheStore
from subsweep.domain.interfaces.channel_api import ChannelApi
from subsweep.domain.models.common import ApiKey, ChannelId, PlaylistId
from subsweep.domain.models.errors import ApiFailure, MissingCredentialError
from subsweep.domain.models.scan import (
    CacheEntry, CredentialCheck, ResultEntry, ScanConfig, ScanStatus, ScanSummary, is_fresh, utcnow
)

# Core / Infrastructure Imports
from subsweep.core.services.batch_resolver import BatchResolution, BatchResolver
from subsweep.infrastructure.resilience.concurrency_limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class ScanService:
    """Orchestrates cache lookup, batch resolution and detail fetches."""

    def __init__(
        self,
        channel_api: ChannelApi,
        cache_store: CacheStore,
        batch_resolver: Optional[BatchResolver] = None,
        clock: Clock = utcnow,
    ):
        """Initializes the ScanService.

        Args:
            channel_api: Remote API used for batch and detail lookups.
            cache_store: Store for per-channel cache entries and scan summaries.
            batch_resolver: Resolver for uploads playlists (built from channel_api if None).
            clock: Returns the current aware datetime; injectable for tests.
        """
        self.channel_api = channel_api
        self.cache_store = cache_store
        self.batch_resolver = batch_resolver or BatchResolver(channel_api)
        self._clock = clock

    async def run_scan(
        self,
        channel_ids: Iterable[str],
        config: ScanConfig,
        bypass_cache: bool = False,
    ) -> Dict[ChannelId, ResultEntry]:
        """Fetches days-since-last-upload for every channel.

        Args:
            channel_ids: Channels to scan. Duplicates collapse to one entry.
            config: Settings snapshot for this run.
            bypass_cache: Treat every cache entry as stale. Cached uploads
                playlists are still reused.

        Returns:
            One ResultEntry per distinct channel id, in input order.

        Raises:
            MissingCredentialError: If no API key is configured. Raised before
                the cache or the network is touched.
        """
        api_key = ApiKey((config.api_key or "").strip())
        if not api_key:
            raise MissingCredentialError()

        ordered: List[ChannelId] = list(dict.fromkeys(ChannelId(c) for c in channel_ids))
        if not ordered:
            return {}

        threshold = config.threshold_days
        now = self._clock()
        cached = await self._read_cache(ordered)

        # 1. Partition by freshness
        results: Dict[ChannelId, ResultEntry] = {}
        to_fetch: List[Tuple[ChannelId, Optional[PlaylistId]]] = []
        for channel_id in ordered:
            entry = cached.get(channel_id)
            if not bypass_cache and is_fresh(entry, config.cache_ttl, now):
                results[channel_id] = ResultEntry.from_upload(entry.last_upload_at, threshold, now)
            else:
                to_fetch.append((channel_id, entry.uploads_playlist_id if entry else None))

        logger.info(
            f"Scanning {len(ordered)} channels: {len(results)} served from cache, {len(to_fetch)} to fetch"
            + (" (cache bypassed)" if bypass_cache else "")
        )

        if to_fetch:
            # 2. Resolve uploads playlists only where none is cached
            needs_playlist = [channel_id for channel_id, playlist_id in to_fetch if not playlist_id]
            resolution = await self.batch_resolver.resolve(needs_playlist, api_key) if needs_playlist else BatchResolution()
            for channel_id, failure in resolution.failures.items():
                results[channel_id] = ResultEntry.failed(failure.kind, failure.message, threshold)

            # 3. Detail fetches, bounded by the limiter
            limiter = ConcurrencyLimiter(config.concurrency)
            detail_tasks = []
            for channel_id, cached_playlist_id in to_fetch:
                if channel_id in results:
                    continue
                playlist_id = cached_playlist_id or resolution.playlists.get(channel_id)
                if not playlist_id:
                    results[channel_id] = ResultEntry(status=ScanStatus.NO_UPLOADS, threshold_days=threshold)
                    continue
                detail_tasks.append(limiter.submit(self._fetch_detail, channel_id, playlist_id, api_key, threshold))

            for channel_id, result in await asyncio.gather(*detail_tasks):
                results[channel_id] = result

        return {channel_id: results[channel_id] for channel_id in ordered}

    async def _fetch_detail(
        self, channel_id: ChannelId, playlist_id: PlaylistId, api_key: ApiKey, threshold: int
    ) -> Tuple[ChannelId, ResultEntry]:
        try:
            last_upload_at = await self.channel_api.fetch_latest_upload(playlist_id, api_key)
        except ApiFailure as e:
            # Cache entry is left untouched so the playlist id survives for the next scan
            logger.warning(f"Detail lookup failed for {channel_id} ({e.kind.value}): {e.message}")
            return channel_id, ResultEntry.failed(e.kind, e.message, threshold)
        except Exception as e:
            logger.error(f"Unexpected error fetching latest upload for {channel_id}: {e}", exc_info=True)
            return channel_id, ResultEntry.failed(ScanStatus.API_ERROR, str(e) or type(e).__name__, threshold)

        now = self._clock()
        await self._write_cache(channel_id, CacheEntry(playlist_id, last_upload_at, now))
        return channel_id, ResultEntry.from_upload(last_upload_at, threshold, now)

    async def _read_cache(self, channel_ids: List[ChannelId]) -> Dict[ChannelId, CacheEntry]:
        try:
            return await self.cache_store.get_many(channel_ids)
        except Exception as e:
            logger.warning(f"Cache read failed, treating all {len(channel_ids)} channels as uncached: {e}")
            return {}

    async def _write_cache(self, channel_id: ChannelId, entry: CacheEntry) -> None:
        try:
            await self.cache_store.set_many({channel_id: entry})
        except Exception as e:
            logger.warning(f"Cache write failed for {channel_id}: {e}")

    # --- Supporting operations ---

    async def validate_credential(self, api_key: Optional[str]) -> CredentialCheck:
        """Checks an API key with one minimal call. Blank keys never hit the network."""
        key = (api_key or "").strip()
        if not key:
            return CredentialCheck(valid=False, error="Enter an API key first.")
        try:
            return await self.channel_api.check_api_key(ApiKey(key))
        except Exception as e:
            logger.error(f"API key check failed unexpectedly: {e}", exc_info=True)
            return CredentialCheck(valid=False, error=str(e) or type(e).__name__)

    async def record_summary(self, results: Mapping[ChannelId, ResultEntry]) -> ScanSummary:
        """Builds and stores the summary of a finished scan."""
        summary = ScanSummary(
            time=self._clock(),
            total=len(results),
            inactive=sum(1 for result in results.values() if result.is_inactive),
        )
        try:
            await self.cache_store.set_summary(summary)
        except Exception as e:
            logger.warning(f"Failed to store scan summary: {e}")
        return summary

    async def last_summary(self) -> Optional[ScanSummary]:
        return await self.cache_store.get_summary()

    async def clear_cache(self) -> int:
        """Removes all cached channel entries and the stored summary."""
        return await self.cache_store.clear()
