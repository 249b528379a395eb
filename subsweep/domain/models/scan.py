"""Domain models for a subscription scan.

Covers the immutable scan configuration, the per-channel cache record,
the per-channel result handed back to callers and the scan summary.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from subsweep.domain.models.common import ApiKey, PlaylistId

# --- Defaults and bounds ---
DEFAULT_THRESHOLD_DAYS = 365
DEFAULT_CACHE_TTL_HOURS = 24
DEFAULT_CONCURRENCY = 6
MIN_CONCURRENCY = 1
MAX_CONCURRENCY = 20

SECONDS_PER_DAY = 24 * 60 * 60


class ScanStatus(str, Enum):
    """Terminal status of one channel within a scan."""
    OK = "ok"                          # last upload found
    NO_UPLOADS = "no_uploads"          # no public uploads, or channel not returned by the API
    API_ERROR = "api_error"            # transient; safe to retry on a later scan
    QUOTA_EXCEEDED = "quota_exceeded"  # stop scanning until the daily quota resets


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parses an RFC 3339 timestamp as returned by the YouTube API."""
    if not value:
        return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def days_since(timestamp: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole days elapsed since `timestamp`, floored."""
    if timestamp is None:
        return None
    return math.floor((now - timestamp).total_seconds() / SECONDS_PER_DAY)


def _coerce_int(value: Any, default: int) -> int:
    # Non-numeric and zero values fall back to the default, like the options page did
    try:
        number = int(float(value))
    except (TypeError, ValueError):
        return default
    return number or default


@dataclass(frozen=True)
class ScanConfig:
    """Immutable settings snapshot used for one pipeline run."""
    threshold_days: int = DEFAULT_THRESHOLD_DAYS
    cache_ttl_hours: int = DEFAULT_CACHE_TTL_HOURS
    concurrency: int = DEFAULT_CONCURRENCY
    api_key: Optional[ApiKey] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.threshold_days < 1:
            raise ValueError(f"threshold_days must be >= 1, got {self.threshold_days}")
        if self.cache_ttl_hours < 1:
            raise ValueError(f"cache_ttl_hours must be >= 1, got {self.cache_ttl_hours}")
        if not MIN_CONCURRENCY <= self.concurrency <= MAX_CONCURRENCY:
            raise ValueError(
                f"concurrency must be between {MIN_CONCURRENCY} and {MAX_CONCURRENCY}, got {self.concurrency}"
            )

    @classmethod
    def from_raw(
        cls,
        threshold_days: Any = None,
        cache_ttl_hours: Any = None,
        concurrency: Any = None,
        api_key: Any = None,
    ) -> "ScanConfig":
        """Builds a config from unvalidated user values, clamping into range."""
        key = str(api_key).strip() if api_key is not None else ""
        return cls(
            threshold_days=max(1, _coerce_int(threshold_days, DEFAULT_THRESHOLD_DAYS)),
            cache_ttl_hours=max(1, _coerce_int(cache_ttl_hours, DEFAULT_CACHE_TTL_HOURS)),
            concurrency=max(MIN_CONCURRENCY, min(MAX_CONCURRENCY, _coerce_int(concurrency, DEFAULT_CONCURRENCY))),
            api_key=ApiKey(key) if key else None,
        )

    @property
    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self.cache_ttl_hours)


@dataclass
class CacheEntry:
    """What is remembered about a channel between scans."""
    uploads_playlist_id: Optional[PlaylistId]
    last_upload_at: Optional[datetime]
    last_checked_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "uploads_playlist_id": self.uploads_playlist_id,
            "last_upload_at": self.last_upload_at.isoformat() if self.last_upload_at else None,
            "last_checked_at": self.last_checked_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CacheEntry":
        """Rebuilds an entry; raises KeyError/ValueError on malformed records."""
        checked_at = parse_timestamp(data["last_checked_at"])
        if checked_at is None:
            raise ValueError("cache record has no last_checked_at")
        playlist_id = data.get("uploads_playlist_id")
        return cls(
            uploads_playlist_id=PlaylistId(playlist_id) if playlist_id else None,
            last_upload_at=parse_timestamp(data.get("last_upload_at")),
            last_checked_at=checked_at,
        )


def is_fresh(entry: Optional[CacheEntry], ttl: timedelta, now: datetime) -> bool:
    """True when the entry was checked less than `ttl` ago."""
    if entry is None:
        return False
    return now - entry.last_checked_at < ttl


@dataclass
class ResultEntry:
    """Per-channel scan output. `days_ago` is set only when status is OK."""
    status: ScanStatus
    threshold_days: int
    last_upload_at: Optional[datetime] = None
    days_ago: Optional[int] = None
    error: Optional[str] = None

    @property
    def is_inactive(self) -> bool:
        return self.days_ago is not None and self.days_ago > self.threshold_days

    @classmethod
    def from_upload(cls, last_upload_at: Optional[datetime], threshold_days: int, now: datetime) -> "ResultEntry":
        if last_upload_at is None:
            return cls(status=ScanStatus.NO_UPLOADS, threshold_days=threshold_days)
        return cls(
            status=ScanStatus.OK,
            threshold_days=threshold_days,
            last_upload_at=last_upload_at,
            days_ago=days_since(last_upload_at, now),
        )

    @classmethod
    def failed(cls, status: ScanStatus, error: str, threshold_days: int) -> "ResultEntry":
        return cls(status=status, threshold_days=threshold_days, error=error)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status.value,
            "threshold_days": self.threshold_days,
            "last_upload_at": self.last_upload_at.isoformat() if self.last_upload_at else None,
            "days_ago": self.days_ago,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ScanSummary:
    """Totals of the most recent scan, kept for the `summary` command."""
    time: datetime
    total: int
    inactive: int

    def to_dict(self) -> Dict[str, Any]:
        return {"time": self.time.isoformat(), "total": self.total, "inactive": self.inactive}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ScanSummary":
        return cls(time=parse_timestamp(data["time"]), total=int(data["total"]), inactive=int(data["inactive"]))


@dataclass
class CredentialCheck:
    """Outcome of validating an API key."""
    valid: bool
    error: Optional[str] = None
