#  Copyright (c) 2025 Tom Villani, Ph.D.

"""Configuration loading for pkg-provides.

Settings are resolved in increasing priority from built-in defaults, a
configuration file (TOML, YAML or JSON) and ``PROVIDES_*`` environment
variables. The environment variables keep the names used by the original
``pkg provides`` plugin, so existing setups continue to work::

    PROVIDES_URL=https://mirror.example.org pkg-provides -u
    PROVIDES_FETCH_ON_UPDATE=no
"""

from __future__ import annotations

import codecs
import json
import logging
import os
import sys
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[import-not-found,unused-ignore]

import yaml

from pkgprovides.constants import (
    CONFIG_SEARCH_PATHS,
    DEFAULT_DATABASE_PATH,
    DEFAULT_RECORD_ENCODING,
    DEFAULT_REMOTE_FILENAME,
    DEFAULT_REMOTE_URL,
    DEFAULT_TIMEOUT,
    ENV_CONFIG,
    ENV_DB_PATH,
    ENV_FETCH_ON_UPDATE,
    ENV_TIMEOUT,
    ENV_URL,
)
from pkgprovides.exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvidesConfig:
    """Resolved settings for searching and updating the provides database.

    Parameters
    ----------
    remote_url : str
        Base URL of the mirror serving the compressed database
    remote_filename : str
        Name of the compressed database below ``remote_url``
    database_path : str
        Local path of the decompressed database
    fetch_on_update : bool
        Whether the ``pkg update`` hook also refreshes the database
    timeout : float
        Network timeout in seconds
    encoding : str
        Text encoding of the records in the database

    """

    remote_url: str = DEFAULT_REMOTE_URL
    remote_filename: str = DEFAULT_REMOTE_FILENAME
    database_path: str = DEFAULT_DATABASE_PATH
    fetch_on_update: bool = True
    timeout: float = DEFAULT_TIMEOUT
    encoding: str = DEFAULT_RECORD_ENCODING

    def merged(self, overrides: Mapping[str, Any], source: str | None = None) -> ProvidesConfig:
        """Return a copy with ``overrides`` applied after type checking them."""
        known = {f.name: f for f in fields(self)}
        values: Dict[str, Any] = {}
        for key, value in overrides.items():
            name = key.replace("-", "_")
            if name not in known:
                raise ConfigError(f"Unknown configuration key: {key}", config_path=source)
            values[name] = _coerce(name, value, source)
        return replace(self, **values)


def _coerce(name: str, value: Any, source: str | None) -> Any:
    if name == "fetch_on_update":
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return parse_fetch_on_update(value)
    elif name == "timeout":
        try:
            timeout = float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout: {value!r}", config_path=source, original_error=e) from e
        if timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {timeout}", config_path=source)
        return timeout
    elif name == "encoding" and isinstance(value, str) and value:
        try:
            codecs.lookup(value)
        except LookupError as e:
            raise ConfigError(f"Unknown record encoding: {value!r}", config_path=source, original_error=e) from e
        return value
    elif isinstance(value, str) and value:
        return value.rstrip("/") if name == "remote_url" else value
    raise ConfigError(f"Invalid value for {name}: {value!r}", config_path=source)


def parse_fetch_on_update(value: str | None) -> bool:
    """Interpret ``PROVIDES_FETCH_ON_UPDATE``; only ``no`` disables fetching."""
    return value is None or value.lower() != "no"


def load_config_file(config_path: Path | str) -> Dict[str, Any]:
    """Load a configuration mapping from a TOML, YAML or JSON file.

    A TOML file may keep its settings in a ``[provides]`` table.

    Raises
    ------
    ConfigError
        If the file is missing, unreadable, malformed or not a mapping

    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise ConfigError(f"Configuration file does not exist: {config_path}", config_path=str(config_path))

    ext = config_path.suffix.lower()
    try:
        if ext == ".toml":
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
            data = data.get("provides", data)
        elif ext in (".yaml", ".yml"):
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        elif ext == ".json":
            with open(config_path, encoding="utf-8") as f:
                data = json.load(f)
        else:
            raise ConfigError(
                f"Unsupported config file format: {ext}. Use .toml, .yaml or .json", config_path=str(config_path)
            )
    except ConfigError:
        raise
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigError(
            f"Error reading config file {config_path}: {e}", config_path=str(config_path), original_error=e
        ) from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Configuration in {config_path} must be a mapping, got {type(data).__name__}", config_path=str(config_path)
        )
    return data


def discover_config_file(env: Mapping[str, str] | None = None) -> Optional[Path]:
    """Return the configuration file to use, or None.

    ``$PROVIDES_CONFIG`` wins; otherwise the first existing entry of
    ``CONFIG_SEARCH_PATHS``.
    """
    env = os.environ if env is None else env
    explicit = env.get(ENV_CONFIG)
    if explicit:
        return Path(explicit)
    for candidate in CONFIG_SEARCH_PATHS:
        path = Path(candidate)
        if path.is_file():
            return path
    return None


def _env_overrides(env: Mapping[str, str]) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if env.get(ENV_URL):
        overrides["remote_url"] = env[ENV_URL]
    if env.get(ENV_DB_PATH):
        overrides["database_path"] = env[ENV_DB_PATH]
    if ENV_FETCH_ON_UPDATE in env:
        overrides["fetch_on_update"] = parse_fetch_on_update(env[ENV_FETCH_ON_UPDATE])
    if env.get(ENV_TIMEOUT):
        overrides["timeout"] = env[ENV_TIMEOUT]
    return overrides


def load_config(config_path: Path | str | None = None, env: Mapping[str, str] | None = None) -> ProvidesConfig:
    """Resolve the effective configuration.

    Parameters
    ----------
    config_path : Path or str, optional
        Explicit configuration file; discovered when omitted
    env : Mapping[str, str], optional
        Environment to read ``PROVIDES_*`` variables from, defaults to ``os.environ``

    Returns
    -------
    ProvidesConfig
        Defaults overridden by the config file, then by the environment

    Raises
    ------
    ConfigError
        If the config file or an environment value is invalid

    """
    env = os.environ if env is None else env
    config = ProvidesConfig()

    path = Path(config_path) if config_path is not None else discover_config_file(env)
    if path is not None:
        logger.debug("Loading configuration from %s", path)
        config = config.merged(load_config_file(path), source=str(path))

    overrides = _env_overrides(env)
    if overrides:
        config = config.merged(overrides, source="environment")
    return config
