"""Configuration loading for the Druid supervisor provider.

Configuration Priority
---------------------

Settings are resolved in the following priority (highest to lowest):

1. Environment variables (DRUID_ENDPOINT, DRUID_USERNAME, DRUID_PASSWORD,
   DRUID_TIMEOUT_SECONDS)
2. YAML configuration file (``druid:`` section)
3. Built-in defaults

Usage:
    >>> from config import load_config
    >>> config = load_config()
    >>> config.endpoint
    'http://localhost:8888'
"""

from config.config import (
    DEFAULT_CONFIG_FILE,
    ProviderConfig,
    expand_env_vars,
    get_config_value,
    load_config,
    load_yaml,
)

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "ProviderConfig",
    "expand_env_vars",
    "get_config_value",
    "load_config",
    "load_yaml",
]
