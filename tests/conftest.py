"""
Test configuration and fixtures for chainclient tests.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from typing import Any

import pytest

from chainclient.backends.memory import MemoryClient
from chainclient.contract import BlockchainClient
from chainclient.errors import ContractError
from chainclient.models import AddressKeyPair, Block, SignedTx, Transaction, TxInput, TxOutput
from chainclient.result import Err, Result


class StubClient(BlockchainClient):
    """
    Contract implementation returning canned results.

    Every primitive records its call in ``calls`` so tests can assert which
    primitives a composed operation touched and how often.
    """

    def __init__(self, *args: Any, **kwargs: Any):
        self.init_args = args
        self.init_kwargs = kwargs
        self.calls: Counter[str] = Counter()
        self.call_args: dict[str, list[tuple[Any, ...]]] = {}
        self.results: dict[str, Result[Any]] = {}

    def _record(self, name: str, *args: Any) -> Result[Any]:
        self.calls[name] += 1
        self.call_args.setdefault(name, []).append(args)
        return self.results.get(name, Err(ContractError("e_stub_not_configured")))

    def generate_address(self) -> Result[AddressKeyPair]:
        return self._record("generate_address")

    def get_address_balance(self, address: str) -> Result[int]:
        return self._record("get_address_balance", address)

    def get_address_txs(
        self, address: str, limit: int = 100, since_ts: int = 0
    ) -> Result[list[Transaction]]:
        return self._record("get_address_txs", address, limit, since_ts)

    def is_address_valid(self, address: str) -> bool:
        self.calls["is_address_valid"] += 1
        return address.startswith("stub")

    def get_network_fee(self) -> Result[int]:
        return self._record("get_network_fee")

    def get_block_number(self) -> Result[int]:
        return self._record("get_block_number")

    def get_block(self, number: int, expand: bool = False) -> Result[Block]:
        return self._record("get_block", number, expand)

    def get_total_supply(self) -> Result[int]:
        return self._record("get_total_supply")

    def get_tx(self, tx_hash: str) -> Result[Transaction]:
        return self._record("get_tx", tx_hash)

    def sign_tx(
        self, inputs: Sequence[TxInput], outputs: Sequence[TxOutput], fee: int
    ) -> Result[SignedTx]:
        return self._record("sign_tx", inputs, outputs, fee)

    def submit_tx(self, signed: SignedTx) -> Result[str]:
        return self._record("submit_tx", signed)

    def has_multiple_outputs(self) -> bool:
        return False

    def get_confirmations(self) -> int:
        return 6


class BtcClient(StubClient):
    pass


class EthClient(StubClient):
    pass


@pytest.fixture
def stub() -> StubClient:
    return StubClient()


@pytest.fixture
def clock() -> list[int]:
    """Mutable fake clock: tests advance ``clock[0]``."""
    return [1_700_000_000]


@pytest.fixture
def memory(clock: list[int]) -> MemoryClient:
    return MemoryClient(fee=100, confirmations=2, clock=lambda: clock[0])


@pytest.fixture
def signed_tx() -> SignedTx:
    return SignedTx(raw="deadbeef", hash="ab" * 32)


@pytest.fixture
def sample_txs() -> list[Transaction]:
    return [
        Transaction(hash="a", value=5, confirmations=3, to=[{"address": "stub1", "value": 5}]),
        Transaction(hash="b", value=-3, confirmations=1),
        Transaction(hash="c", value=10, fee=2, **{"from": ["stub2"]}),
    ]

