"""YouTube Data API v3 adapter.

Quota strategy:
  - channels.list      -> 1 unit/call, batched up to 50 ids per request
  - playlistItems.list -> 1 unit/call, one per channel (cannot batch)
  - search.list (100 units each) is intentionally never used
"""
