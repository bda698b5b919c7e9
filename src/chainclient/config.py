"""
Configuration management using pydantic-settings.

The currency map file is JSON::

    {
      "BTC": {"class": "btc", "args": [{"network": "mainnet"}], "fraction": 8},
      "XRP": {"class": "xrp", "args_env": "XRP_CLIENT_ARGS", "fraction": 6}
    }

``args_env`` names an environment variable holding a JSON list of constructor
arguments. It is read when a client is created, not when the file is loaded.
"""

from __future__ import annotations

import json
import os
import sys
from pathlib import Path
from typing import Any, TextIO

from loguru import logger
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainclient.errors import ConfigurationError
from chainclient.registry import CurrencyConfig, DeferredArgs


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="CHAINCLIENT_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    config_file: Path | None = None
    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()


def setup_logging(level: str = "INFO", sink: TextIO = sys.stderr) -> int:
    """
    Route chainclient logs to ``sink`` at ``level``, replacing existing handlers.

    Returns the loguru handler id.
    """
    logger.remove()
    return logger.add(
        sink,
        level=level.upper(),
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
            "<cyan>{name}</cyan> | {message}"
        ),
        colorize=sink in (sys.stderr, sys.stdout),
    )


def args_from_env(var: str) -> DeferredArgs:
    """Deferred constructor arguments read as a JSON list from ``var``."""

    def produce() -> list[Any]:
        raw = os.environ.get(var)
        if raw is None:
            raise ConfigurationError(f"Environment variable {var} is not set")
        try:
            args = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Environment variable {var} is not valid JSON: {e}") from e
        if not isinstance(args, list):
            raise ConfigurationError(f"Environment variable {var} must hold a JSON list")
        logger.debug(f"Loaded {len(args)} constructor argument(s) from {var}")
        return args

    return DeferredArgs(produce)


def load_currency_map(path: Path | str) -> dict[str, CurrencyConfig | None]:
    """
    Load a currency map from a JSON file.

    Raises:
        ConfigurationError: If the file is missing, malformed, or an entry is invalid
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Currency config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Currency config file {path} is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Currency config file {path} must hold a JSON object")

    currencies: dict[str, CurrencyConfig | None] = {}
    for currency, entry in data.items():
        if not entry:
            currencies[currency] = None
            continue
        if not isinstance(entry, dict):
            raise ConfigurationError(f"Configuration for {currency} must be an object")

        entry = dict(entry)
        env_var = entry.pop("args_env", None)
        if env_var is not None:
            if "args" in entry:
                raise ConfigurationError(f"{currency}: set either args or args_env, not both")
            entry["args"] = args_from_env(env_var)

        try:
            currencies[currency] = CurrencyConfig.model_validate(entry)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration for {currency}: {e}") from e

    logger.info(f"Loaded {len(currencies)} currency entries from {path}")
    return currencies
