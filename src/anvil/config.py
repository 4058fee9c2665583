"""
Configuration management.

Connection parameters for the Anvil API live in a single Configuration
value that is passed to each Client. A process-wide default instance is
kept here for convenience; library code never requires it.

Key invariants:
- environment is always one of Environment.DEVELOPMENT / PRODUCTION
- an explicitly assigned api_key / webhook_token wins over the environment
  variable, and the environment variable is re-read on every lookup
"""

import copy
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

API_KEY_ENV = "ANVIL_API_KEY"
WEBHOOK_TOKEN_ENV = "ANVIL_WEBHOOK_TOKEN"
ENVIRONMENT_ENV = "ANVIL_ENV"

DEFAULT_BASE_URL = "https://app.useanvil.com/api/v1"
DEFAULT_GRAPHQL_URL = "https://graphql.useanvil.com/"

MISSING_API_KEY_MESSAGE = """No API key configured. Set your API key using one of these methods:

1. Configure the process default:
   anvil.configure(api_key="your_api_key_here")

2. Environment variable:
   export ANVIL_API_KEY="your_api_key_here"

3. Pass it to the client directly:
   anvil.Client(api_key="your_api_key_here")

Get your API keys at: https://app.useanvil.com/organizations/settings/api"""


class Environment(str, Enum):
    """Runtime mode. Development enables wire-level debug logging."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


def coerce_environment(value: Any) -> Environment:
    """Coerce a string or Environment into an Environment.

    Raises:
        ConfigurationError: If the value names no known environment
    """
    if isinstance(value, Environment):
        return value
    try:
        return Environment(str(value).strip().lower())
    except ValueError:
        choices = ", ".join(e.value for e in Environment)
        raise ConfigurationError(
            f"Invalid environment: {value!r}. Must be one of: {choices}"
        ) from None


def default_environment() -> Environment:
    """Environment from ANVIL_ENV, production otherwise."""
    raw = os.environ.get(ENVIRONMENT_ENV)
    if not raw:
        return Environment.PRODUCTION
    try:
        return coerce_environment(raw)
    except ConfigurationError:
        logger.warning(f"Ignoring invalid {ENVIRONMENT_ENV}={raw!r}, using production")
        return Environment.PRODUCTION


@dataclass
class Configuration:
    """Anvil connection settings.

    api_key and webhook_token hold explicitly assigned values only; use
    get_api_key() / get_webhook_token() to read them with the environment
    fallback applied.
    """

    api_key: str | None = None
    environment: Environment = field(default_factory=default_environment)
    base_url: str = DEFAULT_BASE_URL
    graphql_url: str = DEFAULT_GRAPHQL_URL
    # Read timeout (seconds)
    timeout: float = 120
    # Connection open timeout (seconds)
    open_timeout: float = 30
    webhook_token: str | None = None
    # Rate limiter policy
    max_retries: int = 3
    retry_base_delay: float = 1.0
    # Set by load_config: ANVIL_API_KEY / ANVIL_WEBHOOK_TOKEN beat file values at read time
    prefer_environment: bool = field(default=False, repr=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if name == "environment":
            value = coerce_environment(value)
        super().__setattr__(name, value)

    def get_api_key(self) -> str | None:
        """Explicit API key, or ANVIL_API_KEY."""
        return self._lookup(self.api_key, API_KEY_ENV)

    def get_webhook_token(self) -> str | None:
        """Explicit webhook token, or ANVIL_WEBHOOK_TOKEN (re-read on every call)."""
        return self._lookup(self.webhook_token, WEBHOOK_TOKEN_ENV)

    def _lookup(self, value: str | None, env_var: str) -> str | None:
        env_value = os.environ.get(env_var)
        if self.prefer_environment:
            return env_value or value or None
        return value or env_value or None

    def is_development(self) -> bool:
        return self.environment is Environment.DEVELOPMENT

    def is_production(self) -> bool:
        return self.environment is Environment.PRODUCTION

    def copy(self) -> "Configuration":
        """Independent duplicate, safe to mutate."""
        return copy.copy(self)

    def validation_errors(self) -> list[str]:
        """Validate configuration completeness.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.get_api_key():
            errors.append(MISSING_API_KEY_MESSAGE)
        if not self.base_url:
            errors.append("base_url is required")
        if not self.graphql_url:
            errors.append("graphql_url is required")
        if self.timeout <= 0 or self.open_timeout <= 0:
            errors.append("timeout and open_timeout must be positive")
        if self.max_retries < 0:
            errors.append("max_retries must be >= 0")

        return errors

    def validate(self) -> None:
        """Raise ConfigurationError unless the configuration is usable."""
        errors = self.validation_errors()
        if errors:
            raise ConfigurationError("\n\n".join(errors))


_default_configuration = Configuration()


def get_configuration() -> Configuration:
    """The process-default configuration."""
    return _default_configuration


def configure(**settings: Any) -> Configuration:
    """Update the process-default configuration in place.

    Example:
        anvil.configure(api_key="...", environment="development")
    """
    known = {f.name for f in fields(Configuration)}
    unknown = [name for name in settings if name not in known]
    if unknown:
        raise ConfigurationError(f"Unknown configuration setting: {unknown[0]}")

    # Stage on a copy; the default changes only once every value is accepted
    staged = _default_configuration.copy()
    for name, value in settings.items():
        setattr(staged, name, value)

    for name in settings:
        setattr(_default_configuration, name, getattr(staged, name))
    return _default_configuration


def reset_configuration() -> Configuration:
    """Replace the process default with a fresh Configuration."""
    global _default_configuration
    _default_configuration = Configuration()
    return _default_configuration


def load_config(config_path: Path) -> Configuration:
    """
    Load configuration from a YAML file.

    Environment variables override file values:
    - ANVIL_API_KEY
    - ANVIL_ENV (development/production)
    - ANVIL_WEBHOOK_TOKEN
    - ANVIL_BASE_URL
    - ANVIL_GRAPHQL_URL
    - ANVIL_TIMEOUT (read timeout in seconds)

    A missing file yields the defaults plus any environment overrides.
    """
    config_path = Path(config_path)
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {config_path} must contain a mapping")

    # Credentials keep only file values; the environment is consulted on every read
    config = Configuration(
        api_key=data.get("api_key"),
        environment=os.environ.get(ENVIRONMENT_ENV) or data.get("environment") or default_environment(),
        base_url=os.environ.get("ANVIL_BASE_URL", data.get("base_url", DEFAULT_BASE_URL)),
        graphql_url=os.environ.get("ANVIL_GRAPHQL_URL", data.get("graphql_url", DEFAULT_GRAPHQL_URL)),
        timeout=float(os.environ.get("ANVIL_TIMEOUT", data.get("timeout", 120))),
        open_timeout=float(data.get("open_timeout", 30)),
        webhook_token=data.get("webhook_token"),
        max_retries=int(data.get("max_retries", 3)),
        retry_base_delay=float(data.get("retry_base_delay", 1.0)),
        prefer_environment=True,
    )
    logger.debug(f"Loaded Anvil configuration from {config_path} ({config.environment.value})")
    return config
