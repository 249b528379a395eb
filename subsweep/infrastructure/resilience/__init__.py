"""API Resilience Implementations.

Contains the bounded-concurrency task queue and the HTTP fetcher that
retries with exponential backoff on rate-limit responses.
Bounded Context: API Resilience
"""
