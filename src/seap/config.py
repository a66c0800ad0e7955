"""
Client configuration.

Settings come from an optional YAML file and are then overridden by
environment variables, so a deployment can point the CLI at a different
backend without editing files.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

from .errors import ConfigError


DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_APP_BASE_URL = "http://localhost:3000"
DEFAULT_SESSION_FILE = Path.home() / ".seap_session"
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "seap" / "config.yaml"

# Environment variable -> config field
ENV_OVERRIDES = {
    "SEAP_API_URL": "api_url",
    "SEAP_APP_BASE_URL": "app_base_url",
    "SEAP_SESSION_FILE": "session_file",
    "SEAP_TIMEOUT": "timeout",
    "SEAP_LOG_LEVEL": "log_level",
}

LOG_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


class ClientConfig(BaseModel):
    """
    Settings for talking to a SEAP backend.

    Attributes:
        api_url: Backend base URL (scheme + host + port)
        app_base_url: Frontend base URL, used to build simulation links
        session_file: Where the session (token + user) is persisted
        timeout: Total request timeout in seconds
        logout_on_unauthorized: Drop the stored session when the backend
            rejects the stored credential with 401
        log_level: loguru level for the CLI sink
    """

    api_url: str = DEFAULT_API_URL
    app_base_url: str = DEFAULT_APP_BASE_URL
    session_file: Path = DEFAULT_SESSION_FILE
    timeout: float = Field(default=10.0, gt=0)
    logout_on_unauthorized: bool = True
    log_level: str = "INFO"

    @field_validator("api_url", "app_base_url")
    @classmethod
    def _strip_url(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return value

    @field_validator("session_file")
    @classmethod
    def _expand_path(cls, value: Path) -> Path:
        return Path(value).expanduser()

    @field_validator("log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level

    def simulation_link(self, tracking_token: str) -> str:
        """Public link a recipient follows for a campaign."""
        return f"{self.app_base_url}/simulate/{tracking_token}"


def _read_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    # Accept both a flat file and one nested under a "seap" key
    if isinstance(data.get("seap"), dict):
        data = data["seap"]
    return data


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None,
) -> ClientConfig:
    """
    Build the client configuration.

    Precedence (lowest to highest): defaults, YAML file, environment,
    explicit overrides (e.g. CLI flags).

    Args:
        path: YAML file to read. When None, the default location is used
            if it exists.
        overrides: Values that win over everything else; None values are ignored
        environ: Environment mapping (default: os.environ)

    Returns:
        Validated ClientConfig

    Raises:
        ConfigError: If the file is unreadable or a value is invalid
    """
    if environ is None:
        environ = dict(os.environ)

    data: Dict[str, Any] = {}

    if path is not None:
        data.update(_read_yaml(Path(path).expanduser()))
        logger.debug(f"Loaded config file {path}")
    elif DEFAULT_CONFIG_FILE.exists():
        data.update(_read_yaml(DEFAULT_CONFIG_FILE))
        logger.debug(f"Loaded config file {DEFAULT_CONFIG_FILE}")

    for env_name, field in ENV_OVERRIDES.items():
        if environ.get(env_name):
            data[field] = environ[env_name]

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return ClientConfig(**data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
