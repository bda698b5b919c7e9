"""
chainclient - Uniform client contract for blockchain backends

Provides the backend contract, a currency registry/factory, and the
operations composed on top of the contract.
"""

__version__ = "1.0.0"

from chainclient.amounts import from_minor_units, parse_value, to_minor_units
from chainclient.config import Settings, get_settings, load_currency_map, setup_logging
from chainclient.contract import BlockchainClient, SendAttempt
from chainclient.errors import (
    BackendNotRegistered,
    ChainClientError,
    ConfigurationError,
    ConfigurationNotFound,
    ContractError,
)
from chainclient.models import (
    AddressKeyPair,
    Block,
    SignedTx,
    Transaction,
    TxInput,
    TxOutput,
)
from chainclient.registry import CurrencyConfig, DeferredArgs, EagerArgs, Registry
from chainclient.result import Err, Ok, Result, ResultUnwrapError

__all__ = [
    "AddressKeyPair",
    "BackendNotRegistered",
    "Block",
    "BlockchainClient",
    "ChainClientError",
    "ConfigurationError",
    "ConfigurationNotFound",
    "ContractError",
    "CurrencyConfig",
    "DeferredArgs",
    "EagerArgs",
    "Err",
    "Ok",
    "Registry",
    "Result",
    "ResultUnwrapError",
    "SendAttempt",
    "Settings",
    "SignedTx",
    "Transaction",
    "TxInput",
    "TxOutput",
    "from_minor_units",
    "get_settings",
    "load_currency_map",
    "parse_value",
    "setup_logging",
    "to_minor_units",
]
