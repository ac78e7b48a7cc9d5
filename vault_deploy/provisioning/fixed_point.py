"""X96 fixed-point encodings for price-bounded strategy parameters.

Values are first rounded half-up at 2**20 resolution and then shifted by
2**76, giving a total scale of 2**96.  All arithmetic is done in
``decimal`` at a fixed precision so the same rational input always yields
the same integer.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Context, Decimal, InvalidOperation
from fractions import Fraction

from vault_deploy.core.errors import InputError

Q20 = 2**20
Q76 = 2**76
Q96 = 2**96

_CTX = Context(prec=80)

Ratio = int | str | float | Decimal | Fraction


def _to_decimal(value: Ratio) -> Decimal:
    if isinstance(value, bool):
        raise InputError(f"Invalid ratio: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, Fraction):
        return _CTX.divide(Decimal(value.numerator), Decimal(value.denominator))
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise InputError(f"Invalid ratio: {value!r}") from exc


def _positive(value: Ratio) -> Decimal:
    d = _to_decimal(value)
    if not d.is_finite() or d <= 0:
        raise InputError(f"Ratio must be positive, got {value!r}")
    return d


def _round_q20(value: Decimal) -> int:
    scaled = _CTX.multiply(value, Decimal(Q20))
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP, context=_CTX))


def encode_x96(ratio: Ratio) -> int:
    return _round_q20(_positive(ratio)) * Q76


def encode_sqrt_bound(price_ratio: Ratio, *, sqrt_scale: int = 10**6) -> int:
    """Encode ``sqrt(price_ratio) * sqrt_scale`` as an X96 bound.

    ``sqrt_scale`` carries the token decimals difference into the square
    root (10**6 for an 18/6 decimals pair).
    """
    if sqrt_scale <= 0:
        raise InputError(f"sqrt_scale must be positive, got {sqrt_scale}")
    root = _CTX.sqrt(_positive(price_ratio))
    return _round_q20(_CTX.multiply(root, Decimal(sqrt_scale))) * Q76


def encode_threshold(ratio: Ratio) -> int:
    """Encode a rebalance threshold given as a factor above 1 (1.1 = 10%)."""
    d = _positive(ratio)
    if d <= 1:
        raise InputError(f"Threshold ratio must exceed 1, got {ratio!r}")
    return _round_q20(d) * Q76


def decode_x96(value: int) -> Decimal:
    return _CTX.divide(Decimal(int(value)), Decimal(Q96))
