"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), delegates the work
to the ScanService and reports outcomes through the UserInterface.
"""

import logging
import re
from typing import Iterable, List, Optional

# Core Services Imports
from subsweep.core.services.scan_service import ScanService

# Domain Layer Imports
from subsweep.domain.interfaces.user_interface import UserInterface
from subsweep.domain.models.common import ChannelId
from subsweep.domain.models.errors import MissingCredentialError
from subsweep.domain.models.scan import ScanConfig

logger = logging.getLogger(__name__)

CHANNEL_ID_PATTERN = re.compile(r"^UC[0-9A-Za-z_-]{22}$")

MISSING_KEY_MESSAGE = (
    "No YouTube API key configured. Set YOUTUBE_API_KEY or youtube.api_key "
    "in ~/.subsweep/config.yaml."
)


def parse_channel_ids(lines: Iterable[str]) -> List[ChannelId]:
    """Channel ids from text lines; blank lines and '#' comments are skipped."""
    channel_ids = []
    for line in lines:
        value = line.split("#", 1)[0].strip()
        if value:
            channel_ids.append(ChannelId(value))
    return channel_ids


class CommandHandler:
    """Handles incoming commands and delegates to the scan service."""

    def __init__(self, scan_service: ScanService, ui: UserInterface):
        """Initializes the CommandHandler with required services."""
        self.scan_service = scan_service
        self.ui = ui

    async def handle_scan(
        self,
        channel_ids: List[str],
        config: ScanConfig,
        bypass_cache: bool = False,
        inactive_only: bool = False,
        as_json: bool = False,
    ) -> bool:
        """Handles the 'scan' command. Returns False if the scan could not run."""
        logger.info(f"Handling 'scan' command for {len(channel_ids)} channel(s), bypass_cache={bypass_cache}")

        malformed = [cid for cid in channel_ids if not CHANNEL_ID_PATTERN.match(cid)]
        if malformed:
            warning = f"{len(malformed)} id(s) do not look like channel ids: {', '.join(malformed[:5])}"
            # JSON output owns stdout; the warning goes to the stderr log instead
            if as_json:
                logger.warning(warning)
            else:
                self.ui.display_warning(warning)

        try:
            results = await self.scan_service.run_scan(channel_ids, config, bypass_cache=bypass_cache)
        except MissingCredentialError:
            self.ui.display_error(MISSING_KEY_MESSAGE)
            return False

        summary = await self.scan_service.record_summary(results)
        self.ui.display_results(results, inactive_only=inactive_only, as_json=as_json)
        if not as_json:
            self.ui.display_info(
                f"Scanned {summary.total} channel(s); {summary.inactive} inactive for more than "
                f"{config.threshold_days} days."
            )
        return True

    async def handle_validate_key(self, api_key: Optional[str]) -> bool:
        """Handles the 'validate-key' command."""
        logger.info("Handling 'validate-key' command")
        check = await self.scan_service.validate_credential(api_key)
        if check.valid:
            self.ui.display_info("API key is valid.")
        else:
            self.ui.display_error(f"Invalid: {check.error or 'unknown error'}")
        return check.valid

    async def handle_clear_cache(self) -> None:
        """Handles the 'clear-cache' command."""
        logger.info("Handling 'clear-cache' command")
        try:
            cleared = await self.scan_service.clear_cache()
        except Exception as e:
            logger.error(f"Failed to clear cache: {e}", exc_info=True)
            self.ui.display_error(f"Failed to clear cache: {e}")
            return
        self.ui.display_info(f"Cache cleared ({cleared} entries).")

    async def handle_show_summary(self) -> None:
        """Handles the 'summary' command."""
        self.ui.display_summary(await self.scan_service.last_summary())
