"""Error types raised by the scan pipeline.

`ApiFailure` is a tagged error: it carries the classification used as the
per-channel scan status along with the HTTP status and server message.
"""

from typing import Optional

from subsweep.domain.models.scan import ScanStatus


class SubsweepError(Exception):
    """Base class for all subsweep errors."""


class MissingCredentialError(SubsweepError):
    """Raised before any network call when no API key is configured."""

    def __init__(self, message: str = "MISSING_API_KEY"):
        super().__init__(message)


class ApiFailure(SubsweepError):
    """A YouTube API call that failed definitively (after any retries)."""

    def __init__(self, kind: ScanStatus, message: str, http_status: Optional[int] = None):
        if kind not in (ScanStatus.API_ERROR, ScanStatus.QUOTA_EXCEEDED):
            raise ValueError(f"ApiFailure kind must be an error status, got {kind!r}")
        self.kind = kind
        self.http_status = http_status
        self.message = message
        super().__init__(message)

    @property
    def is_quota(self) -> bool:
        return self.kind is ScanStatus.QUOTA_EXCEEDED

    def __repr__(self) -> str:
        return f"ApiFailure(kind={self.kind.value!r}, http_status={self.http_status!r}, message={self.message!r})"


def classify_failure(http_status: Optional[int], message: Optional[str]) -> ScanStatus:
    """Maps a failed response to a scan status.

    Only a 403 whose message mentions quota counts as quota exhaustion;
    everything else (including a 403 for a bad key) is an api error.
    """
    if http_status == 403 and message and "quota" in message.lower():
        return ScanStatus.QUOTA_EXCEEDED
    return ScanStatus.API_ERROR
