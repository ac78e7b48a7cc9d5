from __future__ import annotations

from collections.abc import Mapping
from typing import Any


def _is_positional(key: Any) -> bool:
    # Ints (bools too) and strings that parse whole as ints; "1abc" is named.
    if isinstance(key, int):
        return True
    try:
        int(str(key))
    except ValueError:
        return False
    return True


def normalize(blob: Any) -> dict[str, Any]:
    """Drop the positional duplicates from a struct-like read result.

    Keys that parse as integers are removed; named keys keep their values
    untouched (nested blobs are not rewritten).  Anything that is not a
    mapping normalizes to ``{}``.
    """
    if not isinstance(blob, Mapping):
        return {}
    return {str(k): v for k, v in blob.items() if not _is_positional(k)}
