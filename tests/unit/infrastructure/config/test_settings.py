from pathlib import Path

import pytest

from subsweep.infrastructure.config import settings


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "youtube:\n"
        "  api_key: yaml-key-123456\n"
        "scan:\n"
        "  threshold_days: 90\n"
        "  concurrency: 50\n"
        "cache:\n"
        "  dir: ~/custom-cache\n",
        encoding="utf-8",
    )
    return path


def _load(config_file, env_file):
    settings.load_configuration(config_file=config_file, env_file=env_file, force=True)


def test_yaml_values_are_flattened(config_file, tmp_path):
    _load(config_file, tmp_path / "missing.env")

    assert settings.get_config("scan.threshold_days") == 90
    assert settings.get_config("scan.cache_ttl_hours", 24) == 24
    assert settings.get_api_key() == "yaml-key-123456"
    assert settings.get_cache_dir() == Path("~/custom-cache").expanduser()


def test_environment_overrides_yaml(config_file, tmp_path, monkeypatch):
    _load(config_file, tmp_path / "missing.env")
    monkeypatch.setenv("SUBSWEEP_SCAN_THRESHOLD_DAYS", "30")

    assert settings.get_config("scan.threshold_days") == 30
    assert settings.env_var_name("scan.threshold_days") == "SUBSWEEP_SCAN_THRESHOLD_DAYS"


def test_dotenv_does_not_override_real_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("YOUTUBE_API_KEY=from-dotenv\nSUBSWEEP_SCAN_CONCURRENCY=3\n", encoding="utf-8")
    monkeypatch.setenv("YOUTUBE_API_KEY", "from-env")
    # Registered so monkeypatch removes what load_dotenv adds
    monkeypatch.setenv("SUBSWEEP_SCAN_CONCURRENCY", "")
    monkeypatch.delenv("SUBSWEEP_SCAN_CONCURRENCY")

    _load(tmp_path / "missing.yaml", env_file)

    assert settings.get_api_key() == "from-env"
    assert settings.get_config("scan.concurrency") == 3


def test_test_config_wins(config_file, tmp_path, monkeypatch):
    _load(config_file, tmp_path / "missing.env")
    monkeypatch.setenv("SUBSWEEP_SCAN_THRESHOLD_DAYS", "30")
    settings.set_config_for_testing({"scan.threshold_days": 7})

    assert settings.get_config("scan.threshold_days") == 7


def test_invalid_yaml_is_ignored(tmp_path):
    broken = tmp_path / "config.yaml"
    broken.write_text("scan: [unclosed\n", encoding="utf-8")

    _load(broken, tmp_path / "missing.env")

    assert settings.get_config("scan.threshold_days") is None


def test_scan_config_clamps_settings_and_prefers_arguments(config_file, tmp_path):
    _load(config_file, tmp_path / "missing.env")

    config = settings.get_scan_config()
    assert (config.threshold_days, config.cache_ttl_hours, config.concurrency) == (90, 24, 20)

    config = settings.get_scan_config(threshold_days=10, concurrency=0, api_key="  ")
    assert config.threshold_days == 10
    assert config.concurrency == 6
    assert config.api_key is None


def test_api_key_environment_beats_yaml(config_file, tmp_path, monkeypatch):
    _load(config_file, tmp_path / "missing.env")
    monkeypatch.setenv("YOUTUBE_API_KEY", "env-key")

    assert settings.get_api_key() == "env-key"

    monkeypatch.setenv("SUBSWEEP_YOUTUBE_API_KEY", "prefixed-key")
    assert settings.get_api_key() == "prefixed-key"


def test_blank_api_key_counts_as_missing(monkeypatch):
    monkeypatch.setenv("YOUTUBE_API_KEY", "   ")
    assert settings.get_api_key() is None


@pytest.mark.parametrize("value, expected", [
    (None, "Not configured"),
    ("", "Not configured"),
    ("short", "*****"),
    ("AIzaSyExampleKey1234", "AIza************1234"),
])
def test_mask_secret(value, expected):
    assert settings.mask_secret(value) == expected


def test_describe_settings_masks_key(config_file, tmp_path):
    _load(config_file, tmp_path / "missing.env")

    described = settings.describe_settings()

    assert described["api_key"] == "yaml*******3456"
    assert described["threshold_days"] == 90
    assert described["concurrency"] == 20
