"""
Exceptions raised by the registry and the error tag carried by contract results.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

TAG_PATTERN = re.compile(r"^e_([a-z0-9]+)_([a-z0-9_]+)$")


class ChainClientError(Exception):
    pass


class ConfigurationNotFound(ChainClientError):
    """No registered, non-empty configuration exists for a currency."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"Cannot find configuration for currency: {currency}")


class BackendNotRegistered(ChainClientError):
    """A currency names a backend identifier nobody registered."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"No backend registered under identifier: {identifier}")


class ConfigurationError(ChainClientError):
    pass


@dataclass(frozen=True)
class ContractError:
    """
    Namespaced failure tag returned in the error slot of a contract call.

    Tags look like ``e_btc_timeout``: the ``e_`` prefix, the backend namespace,
    then the reason. Only lowercase letters, digits and underscores are allowed,
    and the namespace itself has no underscore. A malformed tag such as
    ``e_BTC_timeout`` raises ValueError on construction, including through
    ``Err("...")``, so backends should build tags with :meth:`for_backend`
    from a fixed lowercase namespace.
    """

    tag: str

    def __post_init__(self) -> None:
        if not TAG_PATTERN.match(self.tag):
            raise ValueError(f"Invalid error tag: {self.tag!r} (expected e_<backend>_<reason>)")

    @classmethod
    def for_backend(cls, backend: str, reason: str) -> ContractError:
        return cls(f"e_{backend}_{reason}")

    @property
    def backend(self) -> str:
        return self.tag.split("_", 2)[1]

    @property
    def reason(self) -> str:
        return self.tag.split("_", 2)[2]

    def __str__(self) -> str:
        return self.tag
