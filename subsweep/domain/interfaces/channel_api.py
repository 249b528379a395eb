"""Interface for the remote channel API.

Assumes a two-tier API: a batchable lookup that maps channel ids to an
uploads playlist, and a per-playlist lookup of the most recent upload.
Implementations raise `ApiFailure` for calls that fail definitively.
"""

import abc
from datetime import datetime
from typing import Dict, Optional, Sequence

from subsweep.domain.models.common import ApiKey, ChannelId, PlaylistId
from subsweep.domain.models.scan import CredentialCheck

# Largest number of ids the batch endpoint accepts in one call.
MAX_BATCH_SIZE = 50


class ChannelApi(abc.ABC):
    """Abstract Base Class for the remote API used by the scan pipeline."""

    @abc.abstractmethod
    async def resolve_uploads_playlists(
        self, channel_ids: Sequence[ChannelId], api_key: ApiKey
    ) -> Dict[ChannelId, Optional[PlaylistId]]:
        """Resolves the uploads playlist of up to MAX_BATCH_SIZE channels in one call.

        Args:
            channel_ids: Channels to resolve (at most MAX_BATCH_SIZE).
            api_key: Credential for the call.

        Returns:
            Mapping for the channels present in the response. Channels the API
            omits (private or deleted) are absent from the mapping.

        Raises:
            ApiFailure: If the call fails after retries.
        """
        pass

    @abc.abstractmethod
    async def fetch_latest_upload(self, playlist_id: PlaylistId, api_key: ApiKey) -> Optional[datetime]:
        """Fetches the publish time of the most recent item of a playlist.

        Returns:
            The timestamp, or None if the playlist is empty.

        Raises:
            ApiFailure: If the call fails after retries.
        """
        pass

    @abc.abstractmethod
    async def check_api_key(self, api_key: ApiKey) -> CredentialCheck:
        """Makes one minimal call to confirm the key is accepted."""
        pass
