"""Concrete implementation of the ChannelApi interface for YouTube Data API v3.

Builds channels.list / playlistItems.list requests, sends them through the
RetryingFetcher and translates responses into domain values.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Sequence

from subsweep.domain.interfaces.channel_api import ChannelApi, MAX_BATCH_SIZE
from subsweep.domain.models.common import ApiKey, ChannelId, PlaylistId
from subsweep.domain.models.errors import ApiFailure
from subsweep.domain.models.scan import CredentialCheck, ScanStatus, parse_timestamp
from subsweep.infrastructure.resilience.api_retry import RetryingFetcher

logger = logging.getLogger(__name__)

YT_API_BASE = "https://www.googleapis.com/youtube/v3"

# YouTube's own channel, always public; used to check API keys.
KNOWN_GOOD_CHANNEL_ID = ChannelId("UCBR8-60-B28hp2BmDPdntcQ")


def extract_upload_time(item: Optional[Dict[str, Any]]) -> Optional[datetime]:
    """Publish time of a playlist item.

    Prefers contentDetails.videoPublishedAt (when the video went public) over
    snippet.publishedAt (when it was added to the playlist).
    """
    if not item:
        return None
    content_details = item.get("contentDetails") or {}
    snippet = item.get("snippet") or {}
    raw = content_details.get("videoPublishedAt") or snippet.get("publishedAt")
    return parse_timestamp(raw)


class YouTubeClient(ChannelApi):
    """YouTube Data API v3 implementation of ChannelApi."""

    def __init__(self, fetcher: RetryingFetcher, base_url: str = YT_API_BASE):
        """Initializes the client.

        Args:
            fetcher: Retrying fetcher wrapping the shared HTTP client.
            base_url: API root, overridable for tests.
        """
        self.fetcher = fetcher
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    async def resolve_uploads_playlists(
        self, channel_ids: Sequence[ChannelId], api_key: ApiKey
    ) -> Dict[ChannelId, Optional[PlaylistId]]:
        if len(channel_ids) > MAX_BATCH_SIZE:
            raise ValueError(f"channels.list accepts at most {MAX_BATCH_SIZE} ids, got {len(channel_ids)}")
        data = await self.fetcher.fetch_json(
            self._url("channels"),
            params={"part": "contentDetails", "id": ",".join(channel_ids), "key": api_key},
            endpoint_name="channels.list",
        )

        playlists: Dict[ChannelId, Optional[PlaylistId]] = {}
        for item in data.get("items") or []:
            channel_id = item.get("id")
            if not channel_id:
                continue
            uploads = ((item.get("contentDetails") or {}).get("relatedPlaylists") or {}).get("uploads")
            playlists[ChannelId(channel_id)] = PlaylistId(uploads) if uploads else None
        logger.debug(f"channels.list resolved {len(playlists)}/{len(channel_ids)} channels")
        return playlists

    async def fetch_latest_upload(self, playlist_id: PlaylistId, api_key: ApiKey) -> Optional[datetime]:
        data = await self.fetcher.fetch_json(
            self._url("playlistItems"),
            params={
                "part": "snippet,contentDetails",
                "playlistId": playlist_id,
                "maxResults": 1,
                "key": api_key,
            },
            endpoint_name="playlistItems.list",
        )
        items = data.get("items") or []
        try:
            return extract_upload_time(items[0] if items else None)
        except ValueError as e:
            raise ApiFailure(ScanStatus.API_ERROR, f"Unparseable upload time for playlist {playlist_id}: {e}") from e

    async def check_api_key(self, api_key: ApiKey) -> CredentialCheck:
        try:
            # Single attempt: a 403 for a bad key must not be retried into a different verdict
            await self.fetcher.fetch_json(
                self._url("channels"),
                params={"part": "id", "id": KNOWN_GOOD_CHANNEL_ID, "key": api_key},
                endpoint_name="channels.list",
                max_retries=0,
            )
        except ApiFailure as e:
            return CredentialCheck(valid=False, error=e.message)
        return CredentialCheck(valid=True)
