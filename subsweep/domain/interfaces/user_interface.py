"""Interface for interacting with the user (output only).

Defines the contract for displaying scan results, summaries, errors,
warnings and information, allowing different UI implementations.
"""

import abc
from typing import Any, Dict, Mapping, Optional

# Import relevant domain models
from subsweep.domain.models.common import ChannelId
from subsweep.domain.models.scan import ResultEntry, ScanSummary


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_results(self, results: Mapping[ChannelId, ResultEntry], **kwargs: Any) -> None:
        """Displays the per-channel results of a scan.

        Args:
            results: Result map as returned by the scan pipeline.
            **kwargs: Additional arguments (e.g., inactive_only, as_json).
        """
        pass

    @abc.abstractmethod
    def display_summary(self, summary: Optional[ScanSummary], **kwargs: Any) -> None:
        """Displays the summary of a scan, or a note that none exists yet."""
        pass

    @abc.abstractmethod
    def display_settings(self, settings: Dict[str, Any], **kwargs: Any) -> None:
        """Displays effective settings. Secrets must already be masked."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user.

        Args:
            warning_message: The warning message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass
