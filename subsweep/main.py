"""Main entry point for the subsweep application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Dict, List, Optional, TypeVar

import httpx
import typer
from typing_extensions import Annotated

# --- Core Layer ---
from subsweep.core.command_handler import CommandHandler, parse_channel_ids
from subsweep.core.services.scan_service import ScanService

# --- Infrastructure Layer ---
# Config
from subsweep.infrastructure.config.settings import (
    describe_settings, get_api_key, get_cache_dir, get_config, get_request_timeout,
    get_scan_config, load_configuration
)
# UI
from subsweep.infrastructure.cli.display import ConsoleDisplay
# Cache
from subsweep.infrastructure.cache.caching_service import DiskCacheStore
# Resilience
from subsweep.infrastructure.resilience.api_retry import RetryingFetcher
# YouTube
from subsweep.infrastructure.youtube.youtube_client import YouTubeClient
# Monitoring
from subsweep.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, resolve_log_level, setup_logging

logger = logging.getLogger(__name__)

T = TypeVar("T")

# --- Dependency Injection Container (Manual) ---
_dependencies: Dict[str, Any] = {}


def create_dependencies(verbose: bool = False) -> Dict[str, Any]:
    """Creates the long-lived dependencies (config, logging, UI, cache store).

    This acts as the Composition Root. HTTP-bound services are created per
    command in create_command_handler, inside the running event loop.
    """
    load_configuration()

    setup_logging(
        log_level=resolve_log_level(get_config('logging.level'), verbose=verbose),
        log_format=get_config('logging.format', DEFAULT_LOG_FORMAT),
        log_file=get_config('logging.file'),
    )

    _dependencies.clear()
    _dependencies['ui'] = ConsoleDisplay()
    _dependencies['cache_store'] = DiskCacheStore(get_cache_dir())
    logger.debug("Application dependencies initialized.")
    return _dependencies


def create_command_handler(http_client: httpx.AsyncClient) -> CommandHandler:
    """Wires the API client, scan service and command handler around an HTTP client."""
    fetcher = RetryingFetcher(http_client)
    scan_service = ScanService(
        channel_api=YouTubeClient(fetcher),
        cache_store=_dependencies['cache_store'],
    )
    return CommandHandler(scan_service=scan_service, ui=_dependencies['ui'])


# --- Typer App Definition ---
app = typer.Typer(
    name="subsweep",
    help="subsweep: find YouTube subscriptions that stopped uploading.",
    add_completion=False,
)


# --- Helper for Running Async Commands ---
def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Runs an async command from a sync Typer command."""
    try:
        return asyncio.run(coro)
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        _dependencies['ui'].display_error(f"Command execution failed: {e}")
        raise typer.Exit(code=1)


async def _with_handler(action: str, *args: Any, **kwargs: Any) -> Any:
    async with httpx.AsyncClient(timeout=get_request_timeout()) as client:
        handler = create_command_handler(client)
        return await getattr(handler, action)(*args, **kwargs)


# --- CLI Commands ---

@app.command()
def scan(
    channel_ids: Annotated[Optional[List[str]], typer.Argument(help="Channel ids (UC...) to scan.")] = None,
    file: Annotated[Optional[Path], typer.Option(
        "--file", "-f", exists=True, file_okay=True, dir_okay=False, readable=True, resolve_path=True,
        help="File with one channel id per line ('#' starts a comment).")] = None,
    refresh: Annotated[bool, typer.Option("--refresh", "-r", help="Ignore cached results and re-fetch everything.")] = False,
    threshold_days: Annotated[Optional[int], typer.Option(help="Days without uploads before a channel counts as inactive.")] = None,
    cache_ttl_hours: Annotated[Optional[int], typer.Option(help="How long cached results stay fresh.")] = None,
    concurrency: Annotated[Optional[int], typer.Option(help="Parallel detail lookups (1-20).")] = None,
    inactive_only: Annotated[bool, typer.Option("--inactive-only", help="Only show inactive channels.")] = False,
    as_json: Annotated[bool, typer.Option("--json", help="Print results as JSON.")] = False,
):
    """Fetch days since last upload for each channel."""
    ids: List[str] = list(channel_ids or [])
    if file is not None:
        ids.extend(parse_channel_ids(file.read_text(encoding="utf-8").splitlines()))
    if not ids:
        _dependencies['ui'].display_error("No channel ids given. Pass them as arguments or with --file.")
        raise typer.Exit(code=2)

    config = get_scan_config(
        threshold_days=threshold_days,
        cache_ttl_hours=cache_ttl_hours,
        concurrency=concurrency,
    )
    ok = run_async(_with_handler(
        "handle_scan", ids, config, bypass_cache=refresh, inactive_only=inactive_only, as_json=as_json
    ))
    if not ok:
        raise typer.Exit(code=1)


@app.command(name="validate-key")
def validate_key_command(
    api_key: Annotated[Optional[str], typer.Option("--api-key", help="Key to check. Defaults to the configured key.")] = None,
):
    """Check that a YouTube Data API key is accepted."""
    valid = run_async(_with_handler("handle_validate_key", api_key if api_key is not None else get_api_key()))
    if not valid:
        raise typer.Exit(code=1)


@app.command(name="settings")
def settings_command():
    """Show the effective settings."""
    _dependencies['ui'].display_settings(describe_settings())


@app.command(name="summary")
def summary_command():
    """Show totals of the last scan."""
    run_async(_with_handler("handle_show_summary"))


@app.command(name="clear-cache")
def clear_cache_command():
    """Remove all cached channel results."""
    run_async(_with_handler("handle_clear_cache"))


def close_dependencies() -> None:
    """Closes the cache store opened by create_dependencies."""
    cache_store = _dependencies.get('cache_store')
    if cache_store is not None:
        cache_store.close()
        logger.debug("Cache store closed.")


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """Find YouTube subscriptions that stopped uploading."""
    create_dependencies(verbose=verbose)
    # Runs after the command, including when it exits through typer.Exit
    ctx.call_on_close(close_dependencies)


# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()


if __name__ == "__main__":
    cli_entry_point()
