"""Interface for the per-channel cache.

Defines the contract for reading and writing cached channel records in bulk,
clearing them, and keeping the summary of the last scan.
"""

import abc
from typing import Dict, Iterable, Mapping, Optional

# Import relevant domain models
from subsweep.domain.models.common import ChannelId
from subsweep.domain.models.scan import CacheEntry, ScanSummary


class CacheStore(abc.ABC):
    """Abstract Base Class for cache persistence."""

    @abc.abstractmethod
    async def get_many(self, channel_ids: Iterable[ChannelId]) -> Dict[ChannelId, CacheEntry]:
        """Retrieves cached entries for the given channels.

        Args:
            channel_ids: Channels to look up.

        Returns:
            Mapping of channel id to entry. Channels without an entry
            (or with an unreadable one) are omitted.
        """
        pass

    @abc.abstractmethod
    async def set_many(self, entries: Mapping[ChannelId, CacheEntry]) -> None:
        """Stores (overwrites) entries for the given channels.

        Args:
            entries: Mapping of channel id to the entry to store.
        """
        pass

    @abc.abstractmethod
    async def clear(self) -> int:
        """Removes all channel entries and the stored scan summary.

        Returns:
            Number of channel entries removed.
        """
        pass

    @abc.abstractmethod
    async def get_summary(self) -> Optional[ScanSummary]:
        """Returns the summary of the last scan, if any."""
        pass

    @abc.abstractmethod
    async def set_summary(self, summary: ScanSummary) -> None:
        """Stores the summary of the latest scan."""
        pass

    def close(self) -> None:
        """Releases resources held by the store. Stores without any keep this no-op."""
        return None
