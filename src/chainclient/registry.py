"""
Currency registry and client factory.

A :class:`Registry` maps currency codes to backend configuration and builds a
fresh :class:`~chainclient.contract.BlockchainClient` on every
:meth:`Registry.create` call. Backend constructors are registered explicitly
under an identifier; currency entries refer to them by that identifier.

Constructor arguments are either given eagerly or produced on demand::

    registry = Registry(backends={"btc": BtcClient})
    registry.init({
        "BTC": {"class": "btc", "args": [{"network": "mainnet"}], "fraction": 8},
        "ETH": {"class": "eth", "args": load_eth_secrets},  # called per create()
    })
    client = registry.create("BTC")
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from chainclient.contract import BlockchainClient
from chainclient.errors import BackendNotRegistered, ConfigurationError, ConfigurationNotFound

if TYPE_CHECKING:
    from chainclient.config import Settings

BackendConstructor = Callable[..., BlockchainClient]


@dataclass(frozen=True)
class EagerArgs:
    """Constructor arguments known up front."""

    values: tuple[Any, ...]

    def resolve(self) -> list[Any]:
        return list(self.values)


@dataclass(frozen=True)
class DeferredArgs:
    """
    Constructor arguments produced by a zero-argument callable.

    The producer runs on every :meth:`resolve`, i.e. once per client created,
    so secrets it loads are read only when a client is actually built.
    """

    producer: Callable[[], Sequence[Any]]

    def resolve(self) -> list[Any]:
        args = self.producer()
        if isinstance(args, (str, bytes)) or not isinstance(args, Sequence):
            raise ConfigurationError(
                f"Argument producer must return a sequence, got {type(args).__name__}"
            )
        return list(args)


ConstructorArgs = EagerArgs | DeferredArgs


class CurrencyConfig(BaseModel):
    """
    Configuration for one currency code.

    Attributes:
        backend: Identifier of a registered backend constructor (alias ``class``)
        args: Positional constructor arguments, eager or deferred
        fraction: Decimal places of the currency's minor unit, if known
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, populate_by_name=True)

    backend: str = Field(..., min_length=1, alias="class")
    args: ConstructorArgs = Field(default_factory=lambda: EagerArgs(()))
    fraction: int | None = Field(default=None, ge=0)

    @field_validator("args", mode="before")
    @classmethod
    def coerce_args(cls, v: Any) -> ConstructorArgs:
        if isinstance(v, (EagerArgs, DeferredArgs)):
            return v
        if isinstance(v, (list, tuple)):
            return EagerArgs(tuple(v))
        if callable(v):
            return DeferredArgs(v)
        raise ValueError("args must be a list, a tuple or a zero-argument callable")

    def resolve_args(self) -> list[Any]:
        return self.args.resolve()


def _coerce_config(currency: str, entry: Any) -> CurrencyConfig | None:
    if not entry:
        return None
    if isinstance(entry, CurrencyConfig):
        return entry
    if not isinstance(entry, Mapping):
        raise ConfigurationError(
            f"Configuration for {currency} must be a mapping, got {type(entry).__name__}"
        )
    try:
        return CurrencyConfig.model_validate(dict(entry))
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration for {currency}: {e}") from e


class Registry:
    """
    Currency code to client factory.

    ``init`` must run before ``create``; the registry does no locking, so
    hosts sharing one instance across threads should finish ``init`` first.
    """

    def __init__(
        self,
        backends: Mapping[str, BackendConstructor] | None = None,
        config: Mapping[str, Any] | None = None,
    ):
        self._backends: dict[str, BackendConstructor] = {}
        self._config: dict[str, CurrencyConfig | None] = {}
        for identifier, constructor in (backends or {}).items():
            self.register(identifier, constructor)
        if config is not None:
            self.init(config)

    @classmethod
    def from_settings(
        cls, settings: Settings, backends: Mapping[str, BackendConstructor] | None = None
    ) -> Registry:
        """Build a registry from settings, routing logs at ``settings.log_level``."""
        from chainclient import config

        config.setup_logging(settings.log_level)
        registry = cls(backends=backends)
        if settings.config_file is not None:
            registry.init(config.load_currency_map(settings.config_file))
        else:
            logger.warning("No currency config file set, registry starts empty")
            registry.init({})
        return registry

    def register(self, identifier: str, constructor: BackendConstructor) -> None:
        if not identifier:
            raise ValueError("Backend identifier must not be empty")
        if not callable(constructor):
            raise TypeError(f"Backend constructor for {identifier} is not callable")
        if identifier in self._backends:
            logger.warning(f"Replacing backend registered under {identifier}")
        self._backends[identifier] = constructor
        logger.debug(f"Registered backend: {identifier}")

    def backends(self) -> list[str]:
        return sorted(self._backends)

    def init(self, config: Mapping[str, Any]) -> None:
        """Replace the whole currency configuration. Previous entries are dropped."""
        self._config = {
            currency: _coerce_config(currency, entry) for currency, entry in config.items()
        }
        logger.info(f"Registry initialised with {len(self.currencies())} currencies")

    def currencies(self) -> list[str]:
        return sorted(code for code, entry in self._config.items() if entry)

    def is_configured(self, currency: str) -> bool:
        return bool(self._config.get(currency))

    def get_config(self, currency: str) -> CurrencyConfig:
        entry = self._config.get(currency)
        if not entry:
            raise ConfigurationNotFound(currency)
        return entry

    def get_fraction(self, currency: str) -> int | None:
        return self.get_config(currency).fraction

    def create(self, currency: str) -> BlockchainClient:
        """
        Build a new client for ``currency``.

        Raises:
            ConfigurationNotFound: No non-empty entry for ``currency``
            BackendNotRegistered: The entry names an unknown backend
            ConfigurationError: The constructor did not produce a client
        """
        entry = self.get_config(currency)

        constructor = self._backends.get(entry.backend)
        if constructor is None:
            raise BackendNotRegistered(entry.backend)

        args = entry.resolve_args()
        client = constructor(*args)
        if not isinstance(client, BlockchainClient):
            raise ConfigurationError(
                f"Backend {entry.backend} produced {type(client).__name__}, "
                "not a BlockchainClient"
            )

        logger.debug(f"Created {type(client).__name__} for {currency}")
        return client
