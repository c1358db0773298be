"""
Configuration for the identity client.

Settings come from explicit arguments, environment variables or the
``identity:`` section of a YAML settings file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError

DEFAULT_STORAGE_DIR = Path.home() / ".baas_identity"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class IdentityConfig:
    """Configuration for the identity client.

    Environment Variables:
        BAAS_SERVER_URL: API server base URL
        BAAS_APP_ID: Application id (required)
        BAAS_APP_KEY: Application key
        BAAS_API_VERSION: API version path segment (default: 1.1)
        BAAS_STORAGE_DIR: Directory for the durable session record
        BAAS_DISABLE_CURRENT_USER: Disable current-user tracking (multi-tenant servers)
        BAAS_REQUEST_TIMEOUT: Request timeout in seconds (default: 30)
    """

    app_id: str
    app_key: str | None = None
    server_url: str = "https://api.example.com"
    api_version: str = "1.1"
    storage_dir: Path = field(default_factory=lambda: DEFAULT_STORAGE_DIR)
    disable_current_user: bool = False
    request_timeout: float = 30.0

    @property
    def current_user_key(self) -> str:
        """Storage key of the durable current-user record."""
        return f"{self.app_id}/currentUser"

    @classmethod
    def from_env(cls) -> IdentityConfig:
        """Create config from environment variables."""
        app_id = os.environ.get("BAAS_APP_ID")
        if not app_id:
            raise ConfigurationError("BAAS_APP_ID", "not set")

        storage_dir = os.environ.get("BAAS_STORAGE_DIR")
        timeout_str = os.environ.get("BAAS_REQUEST_TIMEOUT", "30")
        try:
            timeout = float(timeout_str)
        except ValueError as e:
            raise ConfigurationError("BAAS_REQUEST_TIMEOUT", f"not a number: {timeout_str}") from e

        return cls(
            app_id=app_id,
            app_key=os.environ.get("BAAS_APP_KEY"),
            server_url=os.environ.get("BAAS_SERVER_URL", "https://api.example.com"),
            api_version=os.environ.get("BAAS_API_VERSION", "1.1"),
            storage_dir=Path(storage_dir) if storage_dir else DEFAULT_STORAGE_DIR,
            disable_current_user=(
                os.environ.get("BAAS_DISABLE_CURRENT_USER", "").lower() in _TRUTHY
            ),
            request_timeout=timeout,
        )

    @classmethod
    def from_yaml(cls, config_path: Path) -> IdentityConfig:
        """Create config from the ``identity:`` section of a settings file.

        ```yaml
        identity:
          app_id: "my-app"
          app_key: "secret"
          server_url: "https://api.example.com"
          storage_dir: "~/.baas_identity"
          disable_current_user: false
        ```
        """
        section = _load_identity_section(config_path)
        app_id = section.get("app_id")
        if not app_id:
            raise ConfigurationError("identity.app_id", f"not set in {config_path}")

        storage_dir = section.get("storage_dir")
        return cls(
            app_id=str(app_id),
            app_key=section.get("app_key"),
            server_url=section.get("server_url", "https://api.example.com"),
            api_version=str(section.get("api_version", "1.1")),
            storage_dir=Path(storage_dir).expanduser() if storage_dir else DEFAULT_STORAGE_DIR,
            disable_current_user=bool(section.get("disable_current_user", False)),
            request_timeout=float(section.get("request_timeout", 30.0)),
        )


def _load_identity_section(config_path: Path) -> dict[str, Any]:
    """Load the identity section from a YAML file."""
    if not config_path.exists():
        return {}

    try:
        content = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(str(config_path), f"invalid YAML: {e}") from e

    section = content.get("identity", {}) if isinstance(content, dict) else {}
    if not isinstance(section, dict):
        raise ConfigurationError("identity", "section must be a mapping")
    return section
