"""Cache Store Implementations.

Provides concrete implementations of the CacheStore interface: an
in-memory store and a persistent disk-backed store.
Bounded Context: Cache Management
"""
