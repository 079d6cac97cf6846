"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
configuration file (~/.zestislam/config.yaml). Credential material is read
through get_raw_config / get_credential_sources, which never coerce values.
"""

import logging
import os
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from zestislam.domain.models.resilience import RetryPolicy

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".zestislam"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"
ENV_PREFIX = "ZESTISLAM_"

DEFAULT_MAX_NUMBERED_KEYS = 5
PROVIDER_KEY_NAMES = {
    "gemini": "API_KEY",
    "groq": "GROQ_API_KEY",
}

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_loaded = False


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """Flattens nested YAML mappings into dotted keys ('ai.default_provider')."""
    flat: Dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, prefix=f"{dotted}."))
        else:
            flat[dotted] = value
    return flat


def load_configuration(
    config_file: Path = DEFAULT_CONFIG_FILE,
    env_file: Optional[Path] = None,
    force: bool = False,
) -> None:
    """Loads configuration from environment, .env file, and YAML file.

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

    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: real environment variables take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug(".env file not found at or above current directory.")

    _loaded = True
    logger.debug("Configuration loading process completed.")


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def _env_names(key: str) -> list:
    upper = key.upper()
    return [upper, f"{ENV_PREFIX}{upper.replace('.', '_')}"]


def _coerce(value: str) -> Any:
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """Get a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (KEY or ZESTISLAM_KEY with dots as underscores)
    3. YAML config
    4. Default value

    Environment strings are coerced to bool/int/float where they look like one.
    """
    if key in _test_config:
        return _test_config[key]

    for env_key in _env_names(key):
        if env_key in os.environ:
            return _coerce(os.environ[env_key])

    if key in _config:
        return _config[key]

    return default


def get_raw_config(key: str) -> Optional[Any]:
    """Like get_config but without type coercion and without a default.

    Used for credential material, where an all-digit key must stay a string.
    """
    if key in _test_config:
        return _test_config[key]
    for env_key in _env_names(key):
        if env_key in os.environ:
            return os.environ[env_key]
    return _config.get(key)


def get_credential_sources(provider: str, max_numbered: Optional[int] = None) -> "OrderedDict[str, Any]":
    """Collects every configured credential source for a provider, in priority order.

    Returns an ordered mapping of source name to raw value:
    BASE, BASE1 .. BASEN, then the YAML list 'credentials.<provider>.keys'.
    Missing sources are omitted.
    """
    base_name = PROVIDER_KEY_NAMES.get(provider, f"{provider.upper()}_API_KEY")
    count = max_numbered if max_numbered is not None else int(
        get_config('credentials.max_numbered_keys', DEFAULT_MAX_NUMBERED_KEYS)
    )

    sources: "OrderedDict[str, Any]" = OrderedDict()
    for name in [base_name] + [f"{base_name}{i}" for i in range(1, count + 1)]:
        value = get_raw_config(name)
        if value is not None:
            sources[name] = value

    yaml_keys = get_raw_config(f"credentials.{provider}.keys")
    if yaml_keys is not None:
        sources[f"credentials.{provider}.keys"] = yaml_keys
    return sources


def get_default_provider() -> str:
    """Gets the default AI provider."""
    provider = get_config('ai.default_provider', 'gemini')
    return str(provider).lower() if provider is not None else 'gemini'


def get_default_model(provider: Optional[str] = None, fast: bool = False) -> Optional[str]:
    """Gets the configured model for a provider (the 'fast' variant for structured lookups)."""
    selected_provider = provider or get_default_provider()
    suffix = 'fast_model' if fast else 'default_model'
    model = get_config(f'ai.{selected_provider}.{suffix}')
    return str(model) if model is not None else None


def get_retry_policy() -> RetryPolicy:
    """Builds the default RetryPolicy from the 'retry.*' settings."""
    deadline = get_config('retry.deadline_s')
    return RetryPolicy(
        max_attempts=int(get_config('retry.max_attempts', 4)),
        initial_delay_s=float(get_config('retry.initial_delay_s', 1.0)),
        backoff_multiplier=float(get_config('retry.backoff_multiplier', 2.0)),
        deadline_s=float(deadline) if deadline is not None else None,
    )


def get_cache_dir() -> Path:
    configured = get_config('cache.dir')
    return Path(str(configured)).expanduser() if configured else DEFAULT_CONFIG_DIR / "cache"


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Set configuration values that override every other source.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration keys: {sorted(config_dict)}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
