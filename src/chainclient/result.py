"""
Result type returned by every fallible contract call.

A result is either ``Ok(value)`` or ``Err(error)``, never both and never
neither. Both variants unpack error-first so call sites can read::

    err, balance = client.get_address_balance(address)
    if err:
        return Err(err)
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, Generic, NoReturn, TypeVar

from chainclient.errors import ContractError

T = TypeVar("T")


class ResultUnwrapError(Exception):
    pass


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True

    @property
    def error(self) -> None:
        return None

    def unwrap(self) -> T:
        return self.value

    def __iter__(self) -> Iterator[Any]:
        yield None
        yield self.value


@dataclass(frozen=True)
class Err:
    error: ContractError

    def __post_init__(self) -> None:
        if isinstance(self.error, str):
            object.__setattr__(self, "error", ContractError(self.error))
        elif not isinstance(self.error, ContractError):
            raise TypeError(f"Err expects a ContractError, got {type(self.error).__name__}")

    @property
    def ok(self) -> bool:
        return False

    @property
    def value(self) -> None:
        return None

    def unwrap(self) -> NoReturn:
        raise ResultUnwrapError(self.error.tag)

    def __iter__(self) -> Iterator[Any]:
        yield self.error
        yield None


Result = Ok[T] | Err
