"""Provides functions for loading and accessing configuration settings.

Supports loading from a YAML configuration file (~/.subsweep/config.yaml),
a .env file and environment variables.

Example config.yaml:

    youtube:
      api_key: AIza...
    scan:
      threshold_days: 365
      cache_ttl_hours: 24
      concurrency: 6
    cache:
      dir: ~/.subsweep/cache
    logging:
      level: WARNING
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

from subsweep.domain.models.scan import ScanConfig
from subsweep.infrastructure.cache.caching_service import DEFAULT_CACHE_DIR

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".subsweep"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "SUBSWEEP_"
API_KEY_ENV_VAR = "YOUTUBE_API_KEY"

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Dict[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('scan.concurrency')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, dict):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None, force: bool = False) -> None:
    """Loads configuration from the YAML file and the .env file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
        force: Reload even if configuration was already loaded.
    """
    global _config, _loaded
    if _loaded and not force:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update(_flatten(yaml_config))
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a mapping.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file; override=False so real environment variables win
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path and load_dotenv(dotenv_path=dotenv_path, override=False):
        logger.info(f"Loaded environment variables from: {dotenv_path}")

    _loaded = True


def env_var_name(key: str) -> str:
    """'scan.threshold_days' -> 'SUBSWEEP_SCAN_THRESHOLD_DAYS'."""
    return ENV_PREFIX + key.upper().replace('.', '_')


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    try:
        return float(value) if '.' in value else int(value)
    except ValueError:
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by dotted key.

    Priority:
    1. Test configuration
    2. Environment variable (SUBSWEEP_ + key upper-cased, dots as underscores)
    3. YAML config
    4. Default value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = env_var_name(key)
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_api_key() -> Optional[str]:
    """Returns the YouTube API key.

    Test overrides and SUBSWEEP_YOUTUBE_API_KEY come first, then
    YOUTUBE_API_KEY, then youtube.api_key from the YAML file.
    """
    if 'youtube.api_key' in _test_config or env_var_name('youtube.api_key') in os.environ:
        key = get_config('youtube.api_key')
    else:
        key = os.getenv(API_KEY_ENV_VAR) or _config.get('youtube.api_key')
    if key is None:
        return None
    return str(key).strip() or None


def get_scan_config(
    threshold_days: Optional[int] = None,
    cache_ttl_hours: Optional[int] = None,
    concurrency: Optional[int] = None,
    api_key: Optional[str] = None,
) -> ScanConfig:
    """Builds a normalised ScanConfig; explicit arguments override settings."""
    return ScanConfig.from_raw(
        threshold_days=threshold_days if threshold_days is not None else get_config('scan.threshold_days'),
        cache_ttl_hours=cache_ttl_hours if cache_ttl_hours is not None else get_config('scan.cache_ttl_hours'),
        concurrency=concurrency if concurrency is not None else get_config('scan.concurrency'),
        api_key=api_key if api_key is not None else get_api_key(),
    )


def get_cache_dir() -> Path:
    return Path(str(get_config('cache.dir', DEFAULT_CACHE_DIR))).expanduser()


def get_request_timeout() -> float:
    """Per-request HTTP timeout in seconds."""
    return float(get_config('http.timeout_seconds', 15.0))


def mask_secret(value: Optional[str]) -> str:
    if not value:
        return "Not configured"
    if len(value) <= 8:
        return "*" * len(value)
    return f"{value[:4]}{'*' * (len(value) - 8)}{value[-4:]}"


def describe_settings() -> Dict[str, Any]:
    """Effective settings for display, with the API key masked."""
    config = get_scan_config()
    return {
        "api_key": mask_secret(config.api_key),
        "threshold_days": config.threshold_days,
        "cache_ttl_hours": config.cache_ttl_hours,
        "concurrency": config.concurrency,
        "cache_dir": str(get_cache_dir()),
    }


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.
    """
    _test_config.update(config_dict)


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
