"""
Tests for settings and currency map loading.
"""

from __future__ import annotations

import io
import json
import tempfile
from collections.abc import Generator
from pathlib import Path
from unittest.mock import Mock

import pytest
from loguru import logger

from chainclient.config import Settings, load_currency_map, setup_logging
from chainclient.errors import ConfigurationError, ConfigurationNotFound
from chainclient.registry import DeferredArgs, EagerArgs, Registry
from tests.conftest import BtcClient, EthClient

ETH_FROM_ENV = {"ETH": {"class": "EthClient", "args_env": "ETH_CLIENT_ARGS"}}


@pytest.fixture
def temp_dir() -> Generator[Path]:
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def write_config(directory: Path, data: object) -> Path:
    path = directory / "currencies.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


def test_default_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CHAINCLIENT_CONFIG_FILE", raising=False)
    monkeypatch.delenv("CHAINCLIENT_LOG_LEVEL", raising=False)
    settings = Settings(_env_file=None)
    assert settings.config_file is None
    assert settings.log_level == "INFO"


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CHAINCLIENT_CONFIG_FILE", "/etc/chainclient/currencies.json")
    monkeypatch.setenv("CHAINCLIENT_LOG_LEVEL", "DEBUG")
    settings = Settings(_env_file=None)
    assert settings.config_file == Path("/etc/chainclient/currencies.json")
    assert settings.log_level == "DEBUG"


def test_setup_logging_filters_by_level() -> None:
    sink = io.StringIO()
    handler_id = setup_logging("warning", sink=sink)
    try:
        logger.info("below threshold")
        logger.warning("currency map reloaded")
    finally:
        logger.remove(handler_id)

    output = sink.getvalue()
    assert "below threshold" not in output
    assert "WARNING" in output
    assert "currency map reloaded" in output


class TestLoadCurrencyMap:
    def test_eager_entries(self, temp_dir: Path) -> None:
        path = write_config(
            temp_dir,
            {
                "BTC": {"class": "BtcClient", "args": [{"network": "mainnet"}], "fraction": 8},
                "DOGE": {},
            },
        )

        currencies = load_currency_map(path)

        assert currencies["BTC"].backend == "BtcClient"
        assert currencies["BTC"].args == EagerArgs(({"network": "mainnet"},))
        assert currencies["BTC"].fraction == 8
        assert currencies["DOGE"] is None

    def test_args_env_is_deferred(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("ETH_CLIENT_ARGS", raising=False)
        path = write_config(temp_dir, ETH_FROM_ENV)

        currencies = load_currency_map(path)
        assert isinstance(currencies["ETH"].args, DeferredArgs)

        # Only read at resolve time
        monkeypatch.setenv("ETH_CLIENT_ARGS", '["http://node:8545", {"key": "secret"}]')
        assert currencies["ETH"].resolve_args() == ["http://node:8545", {"key": "secret"}]

    def test_args_env_missing_variable(
        self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("ETH_CLIENT_ARGS", raising=False)
        path = write_config(temp_dir, ETH_FROM_ENV)

        currencies = load_currency_map(path)

        with pytest.raises(ConfigurationError, match="not set"):
            currencies["ETH"].resolve_args()

    def test_args_env_not_a_list(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ETH_CLIENT_ARGS", '{"key": "secret"}')
        path = write_config(temp_dir, ETH_FROM_ENV)

        with pytest.raises(ConfigurationError, match="JSON list"):
            load_currency_map(path)["ETH"].resolve_args()

    def test_args_and_args_env_conflict(self, temp_dir: Path) -> None:
        path = write_config(
            temp_dir, {"ETH": {"class": "EthClient", "args": [], "args_env": "ETH_CLIENT_ARGS"}}
        )
        with pytest.raises(ConfigurationError, match="not both"):
            load_currency_map(path)

    def test_missing_file(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_currency_map(temp_dir / "missing.json")

    def test_invalid_json(self, temp_dir: Path) -> None:
        path = temp_dir / "currencies.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_currency_map(path)

    def test_top_level_must_be_object(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="JSON object"):
            load_currency_map(write_config(temp_dir, ["BTC"]))

    def test_invalid_entry(self, temp_dir: Path) -> None:
        with pytest.raises(ConfigurationError, match="BTC"):
            load_currency_map(write_config(temp_dir, {"BTC": {"args": []}}))


class TestRegistryFromSettings:
    def test_loads_config_file(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("BTC_CLIENT_ARGS", '["regtest"]')
        path = write_config(
            temp_dir,
            {
                "BTC": {"class": "BtcClient", "args_env": "BTC_CLIENT_ARGS", "fraction": 8},
                "ETH": {"class": "EthClient", "args": ["mainnet"], "fraction": 18},
            },
        )
        settings = Settings(_env_file=None, config_file=path)

        registry = Registry.from_settings(
            settings, backends={"BtcClient": BtcClient, "EthClient": EthClient}
        )

        assert registry.currencies() == ["BTC", "ETH"]
        assert registry.create("BTC").init_args == ("regtest",)
        assert registry.get_fraction("ETH") == 18

    def test_without_config_file(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHAINCLIENT_CONFIG_FILE", raising=False)
        registry = Registry.from_settings(Settings(_env_file=None))

        assert registry.currencies() == []
        with pytest.raises(ConfigurationNotFound):
            registry.create("BTC")

    def test_applies_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        configure = Mock()
        monkeypatch.setattr("chainclient.config.setup_logging", configure)

        Registry.from_settings(Settings(_env_file=None, log_level="DEBUG"))

        configure.assert_called_once_with("DEBUG")
