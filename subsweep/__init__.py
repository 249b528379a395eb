"""subsweep: finds YouTube subscriptions that have gone quiet.

Enriches channel ids with the number of days since their last upload,
fetched from the YouTube Data API with caching, batching and retries.
"""

__version__ = "0.3.0"
