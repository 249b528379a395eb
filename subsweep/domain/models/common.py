"""Defines common Value Objects used across different domain contexts.

These objects represent simple values like channel and playlist ids,
ensuring consistency and type safety.
"""

from typing import NewType

# === Core Value Objects ===

# Using NewType for semantic clarity, although they are strings at runtime.
ChannelId = NewType("ChannelId", str)              # YouTube channel id, e.g. 'UC...'
PlaylistId = NewType("PlaylistId", str)            # Uploads playlist id, e.g. 'UU...'
ApiKey = NewType("ApiKey", str)                    # YouTube Data API key

# === Caching Context ===
CacheKey = NewType("CacheKey", str)                # Key of a stored cache record
CachePrefix = NewType("CachePrefix", str)          # Prefix for categorizing cache keys (e.g., 'cache.')
