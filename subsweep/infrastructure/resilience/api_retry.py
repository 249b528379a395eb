"""Service for executing API calls with automatic retries.

Implements exponential backoff for rate-limit responses (403 and 429).
Any other failure, or running out of retries, is raised as a classified
`ApiFailure` carrying the HTTP status and the server's message.
"""

import logging
import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

# Domain Layer Imports
from subsweep.domain.models.errors import ApiFailure, classify_failure
from subsweep.domain.models.scan import ScanStatus
from subsweep.domain.events.api_events import (
    DomainEvent, ApiCallSucceeded, ApiCallFailed, RetryScheduled
)

logger = logging.getLogger(__name__)

# Fixed retry policy: 1s, 2s, 4s then give up (at most ~7s of sleep per call).
RATE_LIMIT_STATUS_CODES = frozenset({403, 429})
MAX_RETRIES = 3
INITIAL_BACKOFF_S = 1.0
BACKOFF_FACTOR = 2.0

Sleep = Callable[[float], Awaitable[Any]]


def dispatch_event(event: DomainEvent) -> None:
    logger.debug(f"EVENT: {event}")


def extract_error_message(response: httpx.Response) -> str:
    """Returns `error.message` from a Google API error body, or HTTP_<status>."""
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"HTTP_{response.status_code}"


class RetryingFetcher:
    """Performs GET requests returning parsed JSON, retrying on rate limits."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        max_retries: int = MAX_RETRIES,
        initial_backoff_s: float = INITIAL_BACKOFF_S,
        backoff_factor: float = BACKOFF_FACTOR,
        sleep: Optional[Sleep] = None,
    ):
        """Initializes the RetryingFetcher.

        Args:
            client: Shared httpx client used for every request.
            max_retries: Maximum number of retry attempts after the first call.
            initial_backoff_s: Delay in seconds before the first retry.
            backoff_factor: Multiplier applied to the delay after each retry.
            sleep: Coroutine function used to wait between attempts.
        """
        self.client = client
        self.max_retries = max_retries
        self.initial_backoff_s = initial_backoff_s
        self.backoff_factor = backoff_factor
        self._sleep = sleep or asyncio.sleep

        logger.debug(
            f"RetryingFetcher initialized: max_retries={max_retries}, "
            f"initial_backoff={initial_backoff_s}s, factor={backoff_factor}"
        )

    async def fetch_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        endpoint_name: Optional[str] = None,
        max_retries: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Executes a GET request with retries on rate-limit responses.

        Args:
            url: Request URL.
            params: Query parameters (may include the API key; never logged).
            endpoint_name: Name used in logs and events (defaults to the URL path).
            max_retries: Overrides the instance retry budget for this call.

        Returns:
            The decoded JSON body of the successful response.

        Raises:
            ApiFailure: On a non-retryable response, after retries are
                exhausted, on transport errors or on an undecodable body.
        """
        retries = self.max_retries if max_retries is None else max_retries
        effective_endpoint = endpoint_name or httpx.URL(url).path
        current_backoff = self.initial_backoff_s

        for attempt in range(retries + 1):
            start_time = time.perf_counter()
            try:
                response = await self.client.get(url, params=params)
            except httpx.HTTPError as e:
                message = str(e) or type(e).__name__
                logger.error(f"Request to {effective_endpoint} failed on attempt {attempt + 1}: {type(e).__name__}: {message}")
                dispatch_event(ApiCallFailed(endpoint=effective_endpoint, error_kind=ScanStatus.API_ERROR.value, error_message=message))
                raise ApiFailure(ScanStatus.API_ERROR, message) from e
            latency_ms = (time.perf_counter() - start_time) * 1000

            if response.is_success:
                try:
                    data = response.json()
                except ValueError as e:
                    message = f"Invalid JSON response from {effective_endpoint}"
                    logger.error(f"{message}: {e}")
                    dispatch_event(ApiCallFailed(endpoint=effective_endpoint, error_kind=ScanStatus.API_ERROR.value, error_message=message, http_status=response.status_code))
                    raise ApiFailure(ScanStatus.API_ERROR, message, response.status_code) from e
                dispatch_event(ApiCallSucceeded(endpoint=effective_endpoint, latency_ms=latency_ms, attempts=attempt + 1))
                return data

            if response.status_code in RATE_LIMIT_STATUS_CODES and attempt < retries:
                logger.warning(
                    f"Rate limited calling {effective_endpoint} on attempt {attempt + 1}/{retries + 1} "
                    f"(HTTP {response.status_code}). Waiting {current_backoff:.2f}s..."
                )
                dispatch_event(RetryScheduled(endpoint=effective_endpoint, attempt_number=attempt + 1, delay_seconds=current_backoff, http_status=response.status_code))
                await self._sleep(current_backoff)
                current_backoff *= self.backoff_factor
                continue

            message = extract_error_message(response)
            kind = classify_failure(response.status_code, message)
            logger.error(
                f"Call to {effective_endpoint} failed definitively after {attempt + 1} attempt(s): "
                f"HTTP {response.status_code} ({kind.value}): {message}"
            )
            dispatch_event(ApiCallFailed(endpoint=effective_endpoint, error_kind=kind.value, error_message=message, http_status=response.status_code))
            raise ApiFailure(kind, message, response.status_code)

        # Unreachable: the last iteration either returns or raises
        raise ApiFailure(ScanStatus.API_ERROR, f"No attempts made for {effective_endpoint}")
