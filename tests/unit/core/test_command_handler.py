import logging

import pytest
from unittest.mock import MagicMock

from subsweep.core.command_handler import MISSING_KEY_MESSAGE, CommandHandler, parse_channel_ids
from subsweep.core.services.scan_service import ScanService
from subsweep.domain.interfaces.user_interface import UserInterface
from subsweep.domain.models.errors import MissingCredentialError
from subsweep.domain.models.scan import CredentialCheck, ResultEntry, ScanStatus, ScanSummary

from conftest import NOW, channel


@pytest.fixture
def mock_scan_service():
    return MagicMock(spec=ScanService)


@pytest.fixture
def mock_ui():
    return MagicMock(spec=UserInterface)


@pytest.fixture
def command_handler(mock_scan_service, mock_ui):
    """Fixture to create CommandHandler with mocked services."""
    return CommandHandler(scan_service=mock_scan_service, ui=mock_ui)


def test_parse_channel_ids_skips_blanks_and_comments():
    lines = ["# my subscriptions", "", f"  {channel(1)}  ", f"{channel(2)} # music", "   "]
    assert parse_channel_ids(lines) == [channel(1), channel(2)]


@pytest.mark.asyncio
async def test_handle_scan(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock, scan_config):
    """Test that a scan records its summary and shows results."""
    results = {channel(1): ResultEntry(status=ScanStatus.OK, threshold_days=365, days_ago=400)}
    mock_scan_service.run_scan.return_value = results
    mock_scan_service.record_summary.return_value = ScanSummary(time=NOW, total=1, inactive=1)

    ok = await command_handler.handle_scan([channel(1)], scan_config, bypass_cache=True, inactive_only=True)

    assert ok is True
    mock_scan_service.run_scan.assert_awaited_once_with([channel(1)], scan_config, bypass_cache=True)
    mock_scan_service.record_summary.assert_awaited_once_with(results)
    mock_ui.display_results.assert_called_once_with(results, inactive_only=True, as_json=False)
    mock_ui.display_info.assert_called_once_with("Scanned 1 channel(s); 1 inactive for more than 365 days.")
    mock_ui.display_warning.assert_not_called()


@pytest.mark.asyncio
async def test_handle_scan_json_skips_info(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock, scan_config):
    mock_scan_service.run_scan.return_value = {}
    mock_scan_service.record_summary.return_value = ScanSummary(time=NOW, total=0, inactive=0)

    await command_handler.handle_scan([channel(1)], scan_config, as_json=True)

    mock_ui.display_results.assert_called_once_with({}, inactive_only=False, as_json=True)
    mock_ui.display_info.assert_not_called()


@pytest.mark.asyncio
async def test_handle_scan_warns_on_malformed_ids(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock, scan_config):
    mock_scan_service.run_scan.return_value = {}
    mock_scan_service.record_summary.return_value = ScanSummary(time=NOW, total=0, inactive=0)

    await command_handler.handle_scan(["not-a-channel", channel(1)], scan_config)

    mock_ui.display_warning.assert_called_once_with("1 id(s) do not look like channel ids: not-a-channel")
    mock_scan_service.run_scan.assert_awaited_once()


@pytest.mark.asyncio
async def test_handle_scan_json_logs_malformed_ids(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock, scan_config, caplog):
    """Test that JSON mode keeps the malformed-id warning out of the UI."""
    mock_scan_service.run_scan.return_value = {}
    mock_scan_service.record_summary.return_value = ScanSummary(time=NOW, total=0, inactive=0)

    with caplog.at_level(logging.WARNING, logger="subsweep.core.command_handler"):
        await command_handler.handle_scan(["not-a-channel", channel(1)], scan_config, as_json=True)

    mock_ui.display_warning.assert_not_called()
    assert "do not look like channel ids: not-a-channel" in caplog.text


@pytest.mark.asyncio
async def test_handle_scan_missing_key(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock, scan_config):
    """Test that a missing key is reported and nothing is recorded."""
    mock_scan_service.run_scan.side_effect = MissingCredentialError()

    ok = await command_handler.handle_scan([channel(1)], scan_config)

    assert ok is False
    mock_ui.display_error.assert_called_once_with(MISSING_KEY_MESSAGE)
    mock_scan_service.record_summary.assert_not_awaited()
    mock_ui.display_results.assert_not_called()


@pytest.mark.asyncio
async def test_handle_validate_key(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock):
    mock_scan_service.validate_credential.return_value = CredentialCheck(valid=True)

    assert await command_handler.handle_validate_key("key") is True
    mock_ui.display_info.assert_called_once_with("API key is valid.")


@pytest.mark.asyncio
async def test_handle_validate_key_invalid(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock):
    mock_scan_service.validate_credential.return_value = CredentialCheck(valid=False, error="API key not valid.")

    assert await command_handler.handle_validate_key("key") is False
    mock_ui.display_error.assert_called_once_with("Invalid: API key not valid.")


@pytest.mark.asyncio
async def test_handle_clear_cache(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock):
    mock_scan_service.clear_cache.return_value = 12

    await command_handler.handle_clear_cache()

    mock_ui.display_info.assert_called_once_with("Cache cleared (12 entries).")


@pytest.mark.asyncio
async def test_handle_clear_cache_error(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock):
    """Test that errors while clearing the cache are displayed."""
    mock_scan_service.clear_cache.side_effect = OSError("database is locked")

    await command_handler.handle_clear_cache()

    mock_ui.display_error.assert_called_once_with("Failed to clear cache: database is locked")


@pytest.mark.asyncio
async def test_handle_show_summary(command_handler: CommandHandler, mock_scan_service: MagicMock, mock_ui: MagicMock):
    summary = ScanSummary(time=NOW, total=5, inactive=2)
    mock_scan_service.last_summary.return_value = summary

    await command_handler.handle_show_summary()

    mock_ui.display_summary.assert_called_once_with(summary)
