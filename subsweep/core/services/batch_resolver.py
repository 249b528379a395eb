"""Batch resolution of uploads playlists.

Groups channel ids into chunks of the largest size the batch endpoint
accepts and resolves each chunk with a single call. A chunk that fails
marks only its own channels as failed.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from subsweep.domain.interfaces.channel_api import ChannelApi, MAX_BATCH_SIZE
from subsweep.domain.models.common import ApiKey, ChannelId, PlaylistId
from subsweep.domain.models.errors import ApiFailure
from subsweep.domain.models.scan import ScanStatus

logger = logging.getLogger(__name__)


@dataclass
class BatchResolution:
    """Outcome of resolving a set of channels.

    `playlists` holds every channel of a successful chunk; the value is None
    when the API omitted the channel or it has no uploads playlist.
    `failures` holds every channel of a failed chunk.
    """
    playlists: Dict[ChannelId, Optional[PlaylistId]] = field(default_factory=dict)
    failures: Dict[ChannelId, ApiFailure] = field(default_factory=dict)

    def merge(self, other: "BatchResolution") -> None:
        self.playlists.update(other.playlists)
        self.failures.update(other.failures)


def chunked(items: Sequence[ChannelId], size: int) -> List[List[ChannelId]]:
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


class BatchResolver:
    """Resolves uploads playlists for channels missing one, one call per chunk."""

    def __init__(self, channel_api: ChannelApi, batch_size: int = MAX_BATCH_SIZE):
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self.channel_api = channel_api
        self.batch_size = batch_size

    async def resolve(self, channel_ids: Sequence[ChannelId], api_key: ApiKey) -> BatchResolution:
        """Resolves all given channels. Every input id ends up in exactly one
        of the two maps of the returned resolution."""
        resolution = BatchResolution()
        chunks = chunked(channel_ids, self.batch_size)
        if not chunks:
            return resolution

        logger.info(f"Resolving uploads playlists for {len(channel_ids)} channels in {len(chunks)} batch call(s)")
        # Chunk count is small, so all batch calls are issued at once
        outcomes = await asyncio.gather(*(self._resolve_chunk(chunk, api_key) for chunk in chunks))
        for outcome in outcomes:
            resolution.merge(outcome)
        return resolution

    async def _resolve_chunk(self, chunk: List[ChannelId], api_key: ApiKey) -> BatchResolution:
        try:
            found = await self.channel_api.resolve_uploads_playlists(chunk, api_key)
        except ApiFailure as e:
            logger.warning(f"Batch of {len(chunk)} channels failed ({e.kind.value}): {e.message}")
            return BatchResolution(failures={channel_id: e for channel_id in chunk})
        except Exception as e:
            logger.error(f"Unexpected error resolving batch of {len(chunk)} channels: {e}", exc_info=True)
            failure = ApiFailure(ScanStatus.API_ERROR, str(e) or type(e).__name__)
            return BatchResolution(failures={channel_id: failure for channel_id in chunk})

        # Channels missing from the response are private or deleted
        playlists = {channel_id: found.get(channel_id) for channel_id in chunk}
        missing = sum(1 for channel_id in chunk if channel_id not in found)
        if missing:
            logger.debug(f"{missing} channel(s) not returned by the batch lookup")
        return BatchResolution(playlists=playlists)
