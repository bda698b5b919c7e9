"""
In-process ledger backend.

Implements the whole client contract without a node: blocks, a mempool and
balances live in memory. Keys are real secp256k1 keys (coincurve) and every
input of a signed transaction carries a signature over the transaction
digest, so signing and submission fail the same way they would against a
real chain.

Useful for development and for exercising code written against
:class:`~chainclient.contract.BlockchainClient`::

    client = MemoryClient()
    _, alice = client.generate_address()
    client.fund(alice.address, 50_000)

Fees are burned: they leave the total supply when the paying transaction is
accepted into the mempool.
"""

from __future__ import annotations

import hashlib
import json
import secrets
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from coincurve import PrivateKey, PublicKey
from loguru import logger

from chainclient.contract import BlockchainClient
from chainclient.errors import ContractError
from chainclient.models import AddressKeyPair, Block, SignedTx, Transaction, TxInput, TxOutput
from chainclient.result import Err, Ok, Result

NAMESPACE = "mem"
ADDRESS_PREFIX = "mem1"
ADDRESS_HASH_BYTES = 20

DEFAULT_NETWORK_FEE = 1000
DEFAULT_CONFIRMATIONS = 1


def _error(reason: str) -> Err:
    return Err(ContractError.for_backend(NAMESPACE, reason))


def _sha256d(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def _canonical(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


def pubkey_to_address(pubkey: bytes) -> str:
    return ADDRESS_PREFIX + hashlib.sha256(pubkey).digest()[:ADDRESS_HASH_BYTES].hex()


@dataclass
class _LedgerTx:
    hash: str
    inputs: list[tuple[str, int]]
    outputs: list[TxOutput]
    fee: int
    time: int
    block: int = 0
    minted: bool = False

    def delta(self, address: str) -> int:
        received = sum(out.value for out in self.outputs if out.address == address)
        spent = sum(value for addr, value in self.inputs if addr == address)
        return received - spent

    def touches(self, address: str) -> bool:
        return any(addr == address for addr, _ in self.inputs) or any(
            out.address == address for out in self.outputs
        )


@dataclass
class _LedgerBlock:
    hash: str
    number: int
    time: int
    total_supply: int
    tx_hashes: list[str] = field(default_factory=list)


class MemoryClient(BlockchainClient):
    """
    Blockchain client backed by an in-memory ledger.

    Block 1 is an empty genesis block created on construction. New blocks are
    only produced by :meth:`mine` (and :meth:`fund`, which mines).
    """

    def __init__(
        self,
        network: str = "memory",
        fee: int = DEFAULT_NETWORK_FEE,
        confirmations: int = DEFAULT_CONFIRMATIONS,
        clock: Callable[[], float] = time.time,
    ):
        if fee < 0:
            raise ValueError("fee must be >= 0")
        if confirmations < 0:
            raise ValueError("confirmations must be >= 0")
        self.network = network
        self.fee = fee
        self.confirmations = confirmations
        self._clock = clock
        self._txs: dict[str, _LedgerTx] = {}
        # Insertion order, oldest first
        self._order: list[str] = []
        self._mempool: list[str] = []
        self._blocks: list[_LedgerBlock] = []
        self._supply = 0
        self.mine()

    def _now(self) -> int:
        return int(self._clock())

    @property
    def tip(self) -> int:
        return len(self._blocks)

    def _tx_confirmations(self, block: int) -> int:
        if block == 0:
            return 0
        return self.tip - block + 1

    def _balance(self, address: str) -> int:
        return sum(tx.delta(address) for tx in self._txs.values())

    def _view(self, tx: _LedgerTx, account: str | None = None) -> Transaction:
        return Transaction(
            block=tx.block,
            hash=tx.hash,
            value=sum(out.value for out in tx.outputs),
            account=account,
            balance=tx.delta(account) if account is not None else None,
            confirmations=self._tx_confirmations(tx.block),
            from_=[addr for addr, _ in tx.inputs],
            to=list(tx.outputs),
            fee=tx.fee,
            time=tx.time,
        )

    def _accept(self, tx: _LedgerTx) -> None:
        self._txs[tx.hash] = tx
        self._order.append(tx.hash)
        self._mempool.append(tx.hash)
        if tx.minted:
            self._supply += sum(out.value for out in tx.outputs)
        else:
            self._supply -= tx.fee

    def mine(self) -> int:
        """Seal the mempool into a new block and return its number."""
        number = self.tip + 1
        now = self._now()
        prev_hash = self._blocks[-1].hash if self._blocks else "0" * 64
        tx_hashes = list(self._mempool)
        header = {"number": number, "prev": prev_hash, "time": now, "txs": tx_hashes}
        block = _LedgerBlock(
            hash=_sha256d(_canonical(header)).hex(),
            number=number,
            time=now,
            total_supply=self._supply,
            tx_hashes=tx_hashes,
        )
        for tx_hash in tx_hashes:
            self._txs[tx_hash].block = number
        self._mempool.clear()
        self._blocks.append(block)
        logger.debug(f"Mined block {number} with {len(tx_hashes)} transaction(s)")
        return number

    def fund(self, address: str, value: int) -> str:
        """Mint ``value`` to ``address`` and mine it. Returns the transaction hash."""
        if not self.is_address_valid(address):
            raise ValueError(f"Invalid address: {address}")
        if value <= 0:
            raise ValueError("value must be > 0")
        payload = {"mint": address, "value": value, "nonce": secrets.token_hex(8)}
        tx = _LedgerTx(
            hash=_sha256d(_canonical(payload)).hex(),
            inputs=[],
            outputs=[TxOutput(address=address, value=value)],
            fee=0,
            time=self._now(),
            minted=True,
        )
        self._accept(tx)
        self.mine()
        logger.info(f"Funded {address} with {value}")
        return tx.hash

    def generate_address(self) -> Result[AddressKeyPair]:
        key = PrivateKey()
        pubkey = key.public_key.format(compressed=True)
        return Ok(
            AddressKeyPair(
                address=pubkey_to_address(pubkey),
                public=pubkey.hex(),
                secret={"private": key.secret.hex()},
            )
        )

    def get_address_balance(self, address: str) -> Result[int]:
        if not self.is_address_valid(address):
            return _error("invalid_address")
        return Ok(self._balance(address))

    def get_address_txs(
        self, address: str, limit: int = 100, since_ts: int = 0
    ) -> Result[list[Transaction]]:
        if not self.is_address_valid(address):
            return _error("invalid_address")

        txs: list[Transaction] = []
        for tx_hash in reversed(self._order):
            if len(txs) >= limit:
                break
            tx = self._txs[tx_hash]
            if tx.time < since_ts or not tx.touches(address):
                continue
            txs.append(self._view(tx, account=address))
        return Ok(txs)

    def is_address_valid(self, address: str) -> bool:
        if not isinstance(address, str) or not address.startswith(ADDRESS_PREFIX):
            return False
        body = address[len(ADDRESS_PREFIX) :]
        if len(body) != ADDRESS_HASH_BYTES * 2:
            return False
        try:
            bytes.fromhex(body)
        except ValueError:
            return False
        return body == body.lower()

    def get_network_fee(self) -> Result[int]:
        return Ok(self.fee)

    def get_block_number(self) -> Result[int]:
        return Ok(self.tip)

    def get_block(self, number: int, expand: bool = False) -> Result[Block]:
        if number < 1 or number > self.tip:
            return _error("block_not_found")

        block = self._blocks[number - 1]
        txs: list[Transaction | str]
        if expand:
            txs = [self._view(self._txs[tx_hash]) for tx_hash in block.tx_hashes]
        else:
            txs = list(block.tx_hashes)
        return Ok(
            Block(
                hash=block.hash,
                number=block.number,
                time=block.time,
                confirmations=self.tip - block.number + 1,
                total_supply=block.total_supply,
                txs=txs,
            )
        )

    def get_total_supply(self) -> Result[int]:
        return Ok(self._blocks[-1].total_supply)

    def get_tx(self, tx_hash: str) -> Result[Transaction]:
        tx = self._txs.get(tx_hash)
        if tx is None:
            return _error("tx_not_found")
        return Ok(self._view(tx))

    def _check_spend(self, inputs: list[tuple[str, int]]) -> Err | None:
        spending: dict[str, int] = {}
        for address, value in inputs:
            spending[address] = spending.get(address, 0) + value
        for address, value in spending.items():
            if self._balance(address) < value:
                return _error("insufficient_funds")
        return None

    def _check_transfer(
        self, inputs: Sequence[tuple[str, int]], outputs: Sequence[TxOutput], fee: int
    ) -> Err | None:
        """Rules every transfer obeys, whether built here or submitted already signed."""
        if fee < 0:
            return _error("invalid_fee")
        if not inputs or not outputs:
            return _error("empty_tx")
        for address, value in [*inputs, *((o.address, o.value) for o in outputs)]:
            if not self.is_address_valid(address):
                return _error("invalid_address")
            if value <= 0:
                return _error("invalid_value")
        if sum(value for _, value in inputs) != sum(o.value for o in outputs) + fee:
            return _error("unbalanced_tx")
        return None

    def sign_tx(
        self, inputs: Sequence[TxInput], outputs: Sequence[TxOutput], fee: int
    ) -> Result[SignedTx]:
        failed = self._check_transfer([(i.address, i.value) for i in inputs], outputs, fee)
        if failed is not None:
            return failed

        keys: list[PrivateKey] = []
        for tx_input in inputs:
            try:
                key = PrivateKey(bytes.fromhex(tx_input.secret.get("private", "")))
            except ValueError:
                return _error("invalid_secret")
            if pubkey_to_address(key.public_key.format(compressed=True)) != tx_input.address:
                return _error("invalid_secret")
            keys.append(key)

        failed = self._check_spend([(i.address, i.value) for i in inputs])
        if failed is not None:
            return failed

        payload = {
            "network": self.network,
            "inputs": [
                {
                    "address": i.address,
                    "value": str(i.value),
                    "public": key.public_key.format(compressed=True).hex(),
                }
                for i, key in zip(inputs, keys, strict=True)
            ],
            "outputs": [{"address": o.address, "value": str(o.value)} for o in outputs],
            "fee": str(fee),
            "nonce": secrets.token_hex(8),
        }
        digest = _sha256d(_canonical(payload))
        signatures = [key.sign(digest, hasher=None).hex() for key in keys]
        raw = json.dumps({"payload": payload, "signatures": signatures}, sort_keys=True)
        return Ok(SignedTx(raw=raw, hash=digest.hex()))

    def submit_tx(self, signed: SignedTx) -> Result[str]:
        try:
            envelope = json.loads(signed.raw)
            payload = envelope["payload"]
            signatures = envelope["signatures"]
            inputs = [(i["address"], int(i["value"]), i["public"]) for i in payload["inputs"]]
            outputs = [
                TxOutput(address=o["address"], value=o["value"]) for o in payload["outputs"]
            ]
            fee = int(payload["fee"])
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Rejected malformed transaction {signed.hash}: {e}")
            return _error("malformed_tx")

        digest = _sha256d(_canonical(payload))
        if digest.hex() != signed.hash:
            return _error("hash_mismatch")
        if signed.hash in self._txs:
            return _error("duplicate_tx")
        if payload.get("network") != self.network:
            return _error("wrong_network")

        spent = [(address, value) for address, value, _ in inputs]
        failed = self._check_transfer(spent, outputs, fee)
        if failed is not None:
            return failed
        if not isinstance(signatures, list) or len(signatures) != len(inputs):
            return _error("invalid_signature")

        for (address, _, public), signature in zip(inputs, signatures, strict=True):
            try:
                pubkey = bytes.fromhex(public)
                valid = PublicKey(pubkey).verify(bytes.fromhex(signature), digest, hasher=None)
            except (ValueError, TypeError):
                valid = False
            if not valid or pubkey_to_address(pubkey) != address:
                return _error("invalid_signature")

        failed = self._check_spend(spent)
        if failed is not None:
            return failed

        self._accept(
            _LedgerTx(
                hash=signed.hash,
                inputs=spent,
                outputs=outputs,
                fee=fee,
                time=self._now(),
            )
        )
        logger.info(f"Accepted transaction {signed.hash} into mempool")
        return Ok(signed.hash)

    def has_multiple_outputs(self) -> bool:
        return True

    def get_confirmations(self) -> int:
        return self.confirmations
