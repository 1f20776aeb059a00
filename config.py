"""Configuration model for the NetBox exporter."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import dotenv_values, load_dotenv

from exceptions import ConfigError
from mapping import MappingConfig
from utils import normalize_netbox_url, parse_bool, parse_int

logger = logging.getLogger(__name__)

SUPPORTED_SETTINGS_SOURCES = {"api", "netbox"}
DEFAULT_CONFIG_PATH = "config/config.yaml"
DEFAULT_ENV_FILE = Path.home() / ".env.netbox"

ENV_KEYS = (
    "NETBOX_API_URL",
    "NETBOX_API_KEY",
    "NETBOX_SSL_VERIFY",
    "NETBOX_TIMEOUT",
    "NETBOX_SETTINGS_SOURCE",
)


@dataclass(frozen=True)
class NetBoxConfig:
    """Validated runtime configuration."""

    url: str
    api_key: str
    verify_ssl: bool = True
    timeout: int = 30
    settings_source: str = "api"
    mappings: MappingConfig = field(default_factory=MappingConfig)

    def __post_init__(self) -> None:
        if not self.url or not str(self.url).strip():
            raise ConfigError("NetBox URL is required (set NETBOX_API_URL or netbox.url in config)")
        try:
            object.__setattr__(self, "url", normalize_netbox_url(self.url))
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        api_key = self.api_key.strip() if self.api_key and self.api_key.strip() else None
        if api_key is None:
            raise ConfigError(
                "NetBox API key is required (set NETBOX_API_KEY or netbox.credentials.api_key in config)"
            )
        object.__setattr__(self, "api_key", api_key)

        if self.timeout <= 0:
            raise ConfigError("timeout must be > 0")

        source = (self.settings_source or "api").strip().lower()
        if source not in SUPPORTED_SETTINGS_SOURCES:
            raise ConfigError(
                f"invalid settings_source '{self.settings_source}': must be 'api' or 'netbox'"
            )
        object.__setattr__(self, "settings_source", source)

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str | None] | None = None,
        base: Mapping[str, Any] | None = None,
    ) -> "NetBoxConfig":
        """Build and validate config from environment variables.

        ``base`` holds values from the config file; any variable set in
        ``env`` takes precedence over it.
        """
        source = os.environ if env is None else env
        base = base or {}

        url = source.get("NETBOX_API_URL") or base.get("url")
        api_key = source.get("NETBOX_API_KEY") or base.get("api_key")
        settings_source = source.get("NETBOX_SETTINGS_SOURCE") or base.get("settings_source") or "api"

        try:
            verify_ssl = parse_bool(
                source.get("NETBOX_SSL_VERIFY"),
                default=parse_bool(base.get("ssl_verify"), default=True),
            )
            timeout = parse_int(
                source.get("NETBOX_TIMEOUT"),
                default=parse_int(base.get("timeout"), default=30, field_name="netbox.timeout"),
                field_name="NETBOX_TIMEOUT",
            )
        except ValueError as exc:
            raise ConfigError(str(exc)) from exc

        return cls(
            url=url or "",
            api_key=api_key or "",
            verify_ssl=verify_ssl,
            timeout=timeout,
            settings_source=settings_source,
            mappings=base.get("mappings") or MappingConfig(),
        )


def load_config(config_path: str | os.PathLike = DEFAULT_CONFIG_PATH) -> dict[str, Any]:
    """
    Reads configuration from YAML if present.
    Returns empty config if file does not exist.
    """
    if not os.path.exists(config_path):
        logger.debug("Configuration file not found at %s. Using environment variables.", config_path)
        return {}

    with open(config_path, "r") as file:
        try:
            config = yaml.safe_load(file) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Error reading configuration file: {exc}") from exc
    if not isinstance(config, dict):
        raise ConfigError("Configuration file must contain a top-level mapping.")
    return config


def _file_settings(config: Mapping[str, Any]) -> dict[str, Any]:
    netbox_cfg = config.get("netbox") or config.get("NETBOX") or {}
    if not isinstance(netbox_cfg, Mapping):
        raise ConfigError("netbox section must be a mapping.")

    credentials = netbox_cfg.get("credentials") or {}
    if not isinstance(credentials, Mapping):
        raise ConfigError("netbox.credentials must be a mapping.")
    if parse_bool(credentials.get("key_encrypted"), default=False):
        raise ConfigError(
            "netbox.credentials.key_encrypted is set but encrypted keys are not supported; "
            "provide the key in NETBOX_API_KEY instead"
        )

    return {
        "url": netbox_cfg.get("url"),
        "api_key": credentials.get("api_key") or netbox_cfg.get("api_key"),
        "ssl_verify": netbox_cfg.get("ssl_verify"),
        "timeout": netbox_cfg.get("timeout"),
        "settings_source": netbox_cfg.get("settings_source"),
        "mappings": MappingConfig.from_dict(netbox_cfg.get("mappings")),
    }


def load_runtime_config(
    config_path: str | os.PathLike = DEFAULT_CONFIG_PATH,
    env_file: str | os.PathLike | None = DEFAULT_ENV_FILE,
    env: Mapping[str, str | None] | None = None,
) -> NetBoxConfig:
    """
    Build runtime config from YAML + env file + environment variables.
    Environment variables take precedence over the env file, which takes
    precedence over the YAML file.
    """
    settings = _file_settings(load_config(config_path))

    merged: dict[str, str | None] = {}
    if env_file is not None and os.path.exists(env_file):
        logger.debug("Loading NetBox settings from %s", env_file)
        merged.update({key: value for key, value in dotenv_values(env_file).items() if key in ENV_KEYS})

    if env is None:
        load_dotenv()
        env = os.environ
    merged.update({key: env[key] for key in ENV_KEYS if env.get(key)})

    return NetBoxConfig.from_env(merged, base=settings)
