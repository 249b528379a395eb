"""Domain models: scan configuration, cache entries, results and errors."""
