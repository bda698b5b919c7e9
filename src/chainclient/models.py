"""
Data models exchanged through the blockchain client contract.

All amounts are minor units stored as Python ``int``. Inputs may be given as
ints or integer strings; floats are rejected by ``Amount``.
"""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from chainclient.amounts import parse_value

Amount = Annotated[int, BeforeValidator(parse_value)]


class AddressKeyPair(BaseModel):
    """Freshly generated address. ``secret`` shape is backend-defined (private, wif, seed...)."""

    model_config = ConfigDict(frozen=True)

    address: str
    public: str
    secret: dict[str, str]


class TxOutput(BaseModel):
    model_config = ConfigDict(frozen=True)

    address: str
    value: Amount


class TxInput(BaseModel):
    """Input to sign: source address, amount taken from it, and the secret unlocking it."""

    model_config = ConfigDict(frozen=True)

    address: str
    value: Amount
    secret: dict[str, str] = Field(default_factory=dict, repr=False)


class Transaction(BaseModel):
    """
    Transaction as reported by a backend.

    Attributes:
        block: Containing block number, 0 while in the mempool
        value: Total transacted value
        account: Address the ``balance`` refers to, if the lookup was per-address
        balance: Signed balance change for ``account`` (> 0 deposit, < 0 outgoing)
        from_: Unique source addresses, serialised as ``from``
        to: Destinations in output order
    """

    model_config = ConfigDict(populate_by_name=True)

    block: int = Field(default=0, ge=0)
    hash: str = Field(..., min_length=1)
    value: Amount
    account: str | None = None
    balance: Amount | None = None
    confirmations: int = Field(default=0, ge=0)
    from_: list[str] = Field(default_factory=list, alias="from")
    to: list[TxOutput] = Field(default_factory=list)
    fee: Amount = 0
    time: int | None = None

    @field_validator("from_")
    @classmethod
    def unique_sources(cls, v: list[str]) -> list[str]:
        return list(dict.fromkeys(v))

    @property
    def is_mempool(self) -> bool:
        return self.block == 0

    @property
    def net_change(self) -> int:
        """Per-address balance change when known, otherwise the transacted value."""
        return self.balance if self.balance is not None else self.value

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class Block(BaseModel):
    """Block by number. ``txs`` holds hashes, or full records when expanded."""

    hash: str
    number: int = Field(..., ge=0)
    time: int
    confirmations: int = Field(default=0, ge=0)
    total_supply: Amount | None = None
    txs: list[Transaction | str] = Field(default_factory=list)

    @property
    def is_expanded(self) -> bool:
        return any(isinstance(tx, Transaction) for tx in self.txs)

    def tx_hashes(self) -> list[str]:
        return [tx.hash if isinstance(tx, Transaction) else tx for tx in self.txs]


class SignedTx(BaseModel):
    """Output of signing, input to submission. Backends may attach extra fields."""

    model_config = ConfigDict(extra="allow", frozen=True)

    raw: str
    hash: str = Field(..., min_length=1)
