"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (YouTube API, disk cache,
configuration files, console) by implementing the interfaces defined in the
domain layer.
"""
