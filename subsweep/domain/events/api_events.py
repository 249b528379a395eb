"""Domain Events related to API calls and resilience.

Emitted by the retrying fetcher when calls succeed, are retried after a
rate-limit response, or fail definitively.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call succeeds."""
    endpoint: str  # e.g., 'channels', 'playlistItems'
    latency_ms: float
    attempts: int = 1
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call fails definitively (after retries)."""
    endpoint: str
    error_kind: str  # 'api_error' or 'quota_exceeded'
    error_message: str
    http_status: Optional[int] = None
    timestamp: float = field(default_factory=time.time)


@dataclass
class RetryScheduled(DomainEvent):
    """Event triggered when a retry is scheduled after a rate-limit response."""
    endpoint: str
    attempt_number: int
    delay_seconds: float
    http_status: int
    timestamp: float = field(default_factory=time.time)
