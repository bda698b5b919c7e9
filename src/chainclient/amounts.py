"""
Minor-unit amount helpers.

Every amount crossing the contract is an integer count of the currency's
smallest unit. Backends may hand values over as ints or as decimal strings
(large supplies overflow 64-bit integers on some chains); both normalise to
Python ``int`` here. Floats are refused outright.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, localcontext

_INTEGER_RE = re.compile(r"^[+-]?\d+$")


def parse_value(value: int | str) -> int:
    """Normalise a minor-unit value to ``int``."""
    if isinstance(value, bool):
        raise ValueError("Boolean is not a valid amount")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if _INTEGER_RE.match(stripped):
            return int(stripped)
        raise ValueError(f"Invalid minor-unit amount: {value!r}")
    raise ValueError(f"Minor-unit amount must be int or str, got {type(value).__name__}")


def _scale(dec: Decimal, places: int) -> Decimal:
    # Widen precision so huge supplies are never rounded by the default context
    with localcontext() as ctx:
        ctx.prec = len(dec.as_tuple().digits) + abs(places) + 2
        return dec.scaleb(places)


def to_minor_units(amount: Decimal | str | int, fraction: int) -> int:
    """
    Convert a major-unit amount (e.g. "0.5" BTC) into minor units.

    Raises:
        ValueError: If the amount is not a number or carries more decimal
            places than the currency supports.
    """
    if fraction < 0:
        raise ValueError("fraction must be >= 0")
    if isinstance(amount, (float, bool)):
        raise ValueError("Float amounts are not accepted, pass a str or Decimal")
    if isinstance(amount, Decimal):
        dec = amount
    else:
        try:
            dec = Decimal(str(amount).strip())
        except InvalidOperation as e:
            raise ValueError(f"Invalid amount: {amount!r}") from e

    if not dec.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    scaled = _scale(dec, fraction)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {fraction} decimal places")
    return int(scaled)


def from_minor_units(value: int | str, fraction: int) -> Decimal:
    if fraction < 0:
        raise ValueError("fraction must be >= 0")
    return _scale(Decimal(parse_value(value)), -fraction)
