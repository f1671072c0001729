"""Provider configuration from YAML file and environment.

Loads the ``druid:`` section of a YAML file (default: config/config.yaml in
src/) and overlays environment variables:

    DRUID_ENDPOINT          Router endpoint with port (e.g. http://localhost:8888)
    DRUID_USERNAME          Basic-auth username (optional)
    DRUID_PASSWORD          Basic-auth password (optional)
    DRUID_TIMEOUT_SECONDS   Per-request timeout in seconds (default: 30)

Environment variables ARE supported using ${VAR_NAME} syntax in YAML files.
"""

import json
import logging
import os
import re
import sys
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

# Configure module logger
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30

# Default config file: config/config.yaml in src/ directory
DEFAULT_CONFIG_FILE = Path(__file__).parent / "config.yaml"


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def get_config_value(env_var: str, yaml_value: Any, default: Any = "") -> Any:
    """Resolve a setting: non-empty env var, then non-empty YAML value, then default."""
    env_value = os.getenv(env_var)
    if env_value:
        return env_value
    if yaml_value not in (None, ""):
        return yaml_value
    return default


@dataclass
class ProviderConfig:
    """Connection settings for the Druid control API.

    Configuration structure:
        druid:
          endpoint: http://router:8888
          username: ${DRUID_USERNAME}
          password: ${DRUID_PASSWORD}
          timeout_seconds: 30
    """

    endpoint: str = ""
    username: str = ""
    password: str = ""
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS

    @property
    def auth_enabled(self) -> bool:
        """Basic auth is attached only when both credentials are set."""
        return bool(self.username and self.password)

    def validate(self) -> None:
        """Validate configuration for correctness and constraints."""
        if not self.endpoint:
            raise ValueError(
                "endpoint is required. Set DRUID_ENDPOINT or druid.endpoint in config."
            )
        if not self.endpoint.startswith(("http://", "https://")):
            raise ValueError(
                f"endpoint must start with http:// or https://, got: {self.endpoint!r}"
            )
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be > 0, got {self.timeout_seconds}")

    def to_safe_dict(self) -> Dict[str, Any]:
        """Settings with the password redacted, for display."""
        data = asdict(self)
        if data["password"]:
            data["password"] = "[REDACTED]"
        return data

    @classmethod
    def from_env(cls) -> "ProviderConfig":
        """Build configuration from environment variables only."""
        return _build_config({})


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ProviderConfig:
    """Load provider configuration from a YAML file plus environment overrides.

    A missing file is not an error: the environment and defaults still apply.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    yaml_data = expand_env_vars(load_yaml(config_path))
    if yaml_data:
        logger.info(
            "Loading configuration from file",
            extra={"config_path": str(config_path)},
        )

    druid = yaml_data.get("druid", {}) or {}

    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        druid = _deep_merge(druid, overrides)

    return _build_config(druid)


def _build_config(druid: Dict[str, Any]) -> ProviderConfig:
    """Resolve each setting (env beats YAML beats default) and validate."""
    try:
        timeout_seconds = int(
            get_config_value(
                "DRUID_TIMEOUT_SECONDS",
                druid.get("timeout_seconds"),
                DEFAULT_TIMEOUT_SECONDS,
            )
        )
    except ValueError as e:
        raise ValueError(f"timeout_seconds must be an integer: {e}") from e

    config = ProviderConfig(
        endpoint=str(get_config_value("DRUID_ENDPOINT", druid.get("endpoint"))).rstrip("/"),
        username=str(get_config_value("DRUID_USERNAME", druid.get("username"))),
        password=str(get_config_value("DRUID_PASSWORD", druid.get("password"))),
        timeout_seconds=timeout_seconds,
    )

    config.validate()

    logger.debug(
        "Configuration loaded",
        extra={
            "endpoint": config.endpoint,
            "timeout_seconds": config.timeout_seconds,
            "auth_enabled": config.auth_enabled,
        },
    )
    return config


def _cli_main() -> int:
    """CLI entry point for config validation and debugging."""
    import argparse

    parser = argparse.ArgumentParser(
        description="Druid provider configuration tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Validate configuration
  python -m config.config --validate

  # Show resolved configuration (password redacted)
  python -m config.config --show

  # Use custom config file
  python -m config.config --config /path/to/config.yaml --validate --json
        """,
    )
    parser.add_argument("--validate", action="store_true", help="Validate configuration")
    parser.add_argument("--show", action="store_true", help="Display resolved configuration")
    parser.add_argument("--config", type=Path, help="Path to config.yaml file")
    parser.add_argument("--json", action="store_true", help="Output in JSON format")

    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")

    if not args.validate and not args.show:
        parser.print_help()
        return 0

    try:
        config = load_config(config_path=args.config)
    except ValueError as e:
        if args.json:
            print(json.dumps({"error": str(e)}))
        else:
            print(f"✗ Validation error: {e}", file=sys.stderr)
        return 1

    output: Dict[str, Any] = {}
    if args.validate:
        if args.json:
            output["validation"] = {"passed": True, "errors": []}
        else:
            print("✓ Configuration validation passed")
    if args.show:
        if args.json:
            output["config"] = config.to_safe_dict()
        else:
            print(yaml.dump(config.to_safe_dict(), default_flow_style=False, sort_keys=False))
    if args.json:
        print(json.dumps(output, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(_cli_main())
