"""Decide whether an observed parameter blob has drifted from its target.

Only the fields declared in the desired mapping are compared (recursively
for nested mappings), so a partial target never forces a write because the
chain struct carries extra fields.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from eth_utils import is_0x_prefixed, is_hex_address
from hexbytes import HexBytes

from vault_deploy.provisioning.normalize import normalize

_MISSING = object()


def _canonical(value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, Decimal) and value == value.to_integral_value():
        return int(value)
    if isinstance(value, (bytes, bytearray)):
        return HexBytes(value).to_0x_hex().lower()
    if isinstance(value, str) and (is_hex_address(value) or is_0x_prefixed(value)):
        return value.lower()
    return value


def values_equal(desired: Any, current: Any) -> bool:
    if isinstance(desired, Mapping):
        if not isinstance(current, Mapping):
            return False
        return not needs_update(desired, current)
    if isinstance(desired, (list, tuple)):
        if not isinstance(current, (list, tuple)) or len(desired) != len(current):
            return False
        return all(values_equal(d, c) for d, c in zip(desired, current, strict=True))
    return _canonical(desired) == _canonical(current)


def needs_update(desired: Mapping[str, Any], current: Any) -> bool:
    """Return True when any declared field differs from the observed one.

    ``current`` may be a raw read result; it is normalized first.  A field
    declared in ``desired`` but absent from ``current`` counts as drift.
    """
    observed = normalize(current)
    for key, want in desired.items():
        have = observed.get(str(key), _MISSING)
        if have is _MISSING or not values_equal(want, have):
            return True
    return False
