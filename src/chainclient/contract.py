"""
Base blockchain client interface.

Every backend subclasses :class:`BlockchainClient` and implements its abstract
methods. Fallible methods return a :data:`~chainclient.result.Result`: an
``Ok`` with the payload or an ``Err`` carrying a namespaced
:class:`~chainclient.errors.ContractError` such as ``e_btc_timeout``. Amounts
are always integer minor units.

The composed operations at the bottom of the class are implemented once here
in terms of the abstract primitives and inherited by every backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass

from loguru import logger

from chainclient.models import AddressKeyPair, Block, SignedTx, Transaction, TxInput, TxOutput
from chainclient.result import Ok, Result


@dataclass(frozen=True)
class SendAttempt:
    """
    Outcome of the sign-then-submit pipeline.

    ``signed`` is set whenever signing succeeded, even if submission failed,
    so the caller can retry with :meth:`BlockchainClient.submit_tx`.
    """

    signed: SignedTx | None
    result: Result[str]

    @property
    def submitted(self) -> bool:
        return self.result.ok

    @property
    def needs_resubmit(self) -> bool:
        return self.signed is not None and not self.result.ok


class BlockchainClient(ABC):
    """
    Abstract blockchain client.
    Implementations own all network I/O, key handling and chain encoding.
    """

    @abstractmethod
    def generate_address(self) -> Result[AddressKeyPair]:
        """Generate a new address with its public key and secret material"""

    @abstractmethod
    def get_address_balance(self, address: str) -> Result[int]:
        """Get balance for an address in minor units"""

    @abstractmethod
    def get_address_txs(
        self, address: str, limit: int = 100, since_ts: int = 0
    ) -> Result[list[Transaction]]:
        """
        Get transactions touching ``address``, newest first.

        Each record carries ``account=address`` and a signed ``balance``:
        positive for deposits, negative for outgoing transfers.
        """

    @abstractmethod
    def is_address_valid(self, address: str) -> bool:
        """Validate address for this network"""

    @abstractmethod
    def get_network_fee(self) -> Result[int]:
        """Current network fee for sending a transaction, in minor units"""

    @abstractmethod
    def get_block_number(self) -> Result[int]:
        """Current block/ledger number"""

    @abstractmethod
    def get_block(self, number: int, expand: bool = False) -> Result[Block]:
        """
        Get block by number.

        With ``expand`` the block's ``txs`` hold full :class:`Transaction`
        records instead of hashes.
        """

    @abstractmethod
    def get_total_supply(self) -> Result[int]:
        """
        Total supply of coins as of the latest block.

        Nodes report supply as a decimal string. It is returned as an int of
        minor units, which Python keeps at arbitrary precision.
        """

    @abstractmethod
    def get_tx(self, tx_hash: str) -> Result[Transaction]:
        """Get transaction by hash"""

    @abstractmethod
    def sign_tx(
        self, inputs: Sequence[TxInput], outputs: Sequence[TxOutput], fee: int
    ) -> Result[SignedTx]:
        """Sign a transfer. Each input carries the secret that unlocks it."""

    @abstractmethod
    def submit_tx(self, signed: SignedTx) -> Result[str]:
        """Submit a signed transaction, returns its hash"""

    @abstractmethod
    def has_multiple_outputs(self) -> bool:
        """Whether one transaction may carry several inputs and outputs"""

    @abstractmethod
    def get_confirmations(self) -> int:
        """Confirmations after which a transaction is treated as irreversible"""

    def get_address_deposit_map(
        self, address: str, limit: int = 100, since_ts: int = 0
    ) -> Result[dict[str, Transaction]]:
        """
        Deposits to ``address`` keyed by transaction hash.

        Built from :meth:`get_address_txs` with the same arguments: only
        transactions with a strictly positive balance change are kept, and each
        kept record is passed through untouched. Later duplicates of a hash
        overwrite earlier ones.
        """
        result = self.get_address_txs(address, limit, since_ts)
        if not result.ok:
            return result

        txs = result.value
        tx_map: dict[str, Transaction] = {}
        for tx in txs:
            if tx.net_change <= 0:
                continue
            tx_map[tx.hash] = tx

        logger.debug(f"Deposit map for {address}: {len(tx_map)} of {len(txs)} transactions")
        return Ok(tx_map)

    def get_last_block(self, expand: bool = False) -> Result[Block]:
        """Latest block, same shape as :meth:`get_block`"""
        result = self.get_block_number()
        if not result.ok:
            return result

        return self.get_block(result.value, expand)

    def send(
        self, inputs: Sequence[TxInput], outputs: Sequence[TxOutput], fee: int = 0
    ) -> Result[str]:
        """Sign and submit in one call. Submission is skipped if signing fails."""
        return self.send_detailed(inputs, outputs, fee).result

    def send_detailed(
        self, inputs: Sequence[TxInput], outputs: Sequence[TxOutput], fee: int = 0
    ) -> SendAttempt:
        signing = self.sign_tx(inputs, outputs, fee)
        if not signing.ok:
            return SendAttempt(signed=None, result=signing)

        signed = signing.value
        result = self.submit_tx(signed)
        if not result.ok:
            logger.warning(
                f"Transaction {signed.hash} signed but submission failed: {result.error}"
            )
        return SendAttempt(signed=signed, result=result)

    def is_confirmed(self, tx: Transaction) -> bool:
        return tx.confirmations >= self.get_confirmations()
