"""Concrete implementations of the CacheStore interface.

`InMemoryCacheStore` keeps records in a dict for the life of the process.
`DiskCacheStore` persists them with `diskcache` so they survive between
CLI runs. Records carry their own `last_checked_at`; freshness is decided
by the scan pipeline, so nothing here expires on its own.
"""

import logging
import asyncio
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional

import diskcache as dc

# Domain Layer Imports
from subsweep.domain.interfaces.cache import CacheStore
from subsweep.domain.models.common import CacheKey, CachePrefix, ChannelId
from subsweep.domain.models.scan import CacheEntry, ScanSummary

logger = logging.getLogger(__name__)

ENTRY_PREFIX = CachePrefix("cache.")
SUMMARY_KEY = CacheKey("last_scan_summary")
DEFAULT_CACHE_DIR = Path.home() / ".subsweep" / "cache"


def entry_key(channel_id: ChannelId) -> CacheKey:
    return CacheKey(f"{ENTRY_PREFIX}{channel_id}")


def _decode_entry(key: CacheKey, raw: Any) -> Optional[CacheEntry]:
    try:
        return CacheEntry.from_dict(raw)
    except (KeyError, TypeError, ValueError) as e:
        logger.warning(f"Ignoring unreadable cache record {key}: {e}")
        return None


class InMemoryCacheStore(CacheStore):
    """Dict-backed store; contents are lost when the process exits."""

    def __init__(self):
        self._records: Dict[CacheKey, Dict[str, Any]] = {}
        self._summary: Optional[ScanSummary] = None

    async def get_many(self, channel_ids: Iterable[ChannelId]) -> Dict[ChannelId, CacheEntry]:
        found: Dict[ChannelId, CacheEntry] = {}
        for channel_id in channel_ids:
            key = entry_key(channel_id)
            if key in self._records:
                entry = _decode_entry(key, self._records[key])
                if entry is not None:
                    found[channel_id] = entry
        return found

    async def set_many(self, entries: Mapping[ChannelId, CacheEntry]) -> None:
        for channel_id, entry in entries.items():
            self._records[entry_key(channel_id)] = entry.to_dict()

    async def clear(self) -> int:
        removed = len(self._records)
        self._records.clear()
        self._summary = None
        logger.info(f"Cleared {removed} in-memory cache entries.")
        return removed

    async def get_summary(self) -> Optional[ScanSummary]:
        return self._summary

    async def set_summary(self, summary: ScanSummary) -> None:
        self._summary = summary


class DiskCacheStore(CacheStore):
    """Persistent store on top of diskcache. Calls run in a worker thread."""

    def __init__(self, cache_dir: Path = DEFAULT_CACHE_DIR):
        """Opens (or creates) the cache directory."""
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.disk_cache = dc.Cache(str(self.cache_dir), timeout=1)
        logger.info(f"Initialized disk cache store at: {self.disk_cache.directory}")

    def close(self) -> None:
        self.disk_cache.close()

    # --- Synchronous helpers (executed via asyncio.to_thread) ---

    def _get_many_sync(self, channel_ids: Iterable[ChannelId]) -> Dict[ChannelId, CacheEntry]:
        found: Dict[ChannelId, CacheEntry] = {}
        for channel_id in channel_ids:
            key = entry_key(channel_id)
            raw = self.disk_cache.get(key)
            if raw is None:
                continue
            entry = _decode_entry(key, raw)
            if entry is not None:
                found[channel_id] = entry
        return found

    def _set_many_sync(self, entries: Mapping[ChannelId, CacheEntry]) -> None:
        with self.disk_cache.transact():
            for channel_id, entry in entries.items():
                self.disk_cache.set(entry_key(channel_id), entry.to_dict())

    def _clear_sync(self) -> int:
        keys = [key for key in self.disk_cache.iterkeys() if str(key).startswith(ENTRY_PREFIX)]
        with self.disk_cache.transact():
            for key in keys:
                self.disk_cache.delete(key)
            self.disk_cache.delete(SUMMARY_KEY)
        return len(keys)

    # --- CacheStore Interface Implementation ---

    async def get_many(self, channel_ids: Iterable[ChannelId]) -> Dict[ChannelId, CacheEntry]:
        found = await asyncio.to_thread(self._get_many_sync, list(channel_ids))
        logger.debug(f"Disk cache returned {len(found)} entries")
        return found

    async def set_many(self, entries: Mapping[ChannelId, CacheEntry]) -> None:
        await asyncio.to_thread(self._set_many_sync, dict(entries))
        logger.debug(f"Stored {len(entries)} entries in disk cache")

    async def clear(self) -> int:
        removed = await asyncio.to_thread(self._clear_sync)
        logger.info(f"Cleared {removed} cache entries at: {self.cache_dir}")
        return removed

    async def get_summary(self) -> Optional[ScanSummary]:
        raw = await asyncio.to_thread(self.disk_cache.get, SUMMARY_KEY)
        if raw is None:
            return None
        try:
            return ScanSummary.from_dict(raw)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable scan summary: {e}")
            return None

    async def set_summary(self, summary: ScanSummary) -> None:
        await asyncio.to_thread(self.disk_cache.set, SUMMARY_KEY, summary.to_dict())
