"""
CanaryTail Field Canonicalization

Turns a single claim field value into the exact string that gets signed.
Signer and verifier must produce the same bytes for the same logical
value, including after a JSON round-trip.

Rules:
- None, empty string and empty list map to ""
- Strings are used unchanged
- Lists of strings are joined with a single space, order preserved
- Booleans are "true" / "false", integers are plain decimal
- Signer rosters render as "[{role name key required} ...]", order preserved
- Anything else (floats, mappings, ...) is rejected
"""

from typing import Any, List, Union

from .claim import Signer
from .errors import DecodeError


def canonicalize(value: Any) -> str:
    """Return the canonical string form of a claim field value."""
    if value is None:
        return ""
    elif isinstance(value, bool):
        return "true" if value else "false"
    elif isinstance(value, int):
        return str(value)
    elif isinstance(value, str):
        return value
    elif isinstance(value, (list, tuple)):
        return _canonicalize_list(value)
    else:
        raise DecodeError(f"Cannot canonicalize type: {type(value).__name__}")


def canonical_bytes(value: Any) -> bytes:
    """Canonical form as UTF-8 bytes, ready for signing."""
    return canonicalize(value).encode('utf-8')


def _canonicalize_list(items: Union[List, tuple]) -> str:
    if not items:
        return ""
    if all(isinstance(item, str) for item in items):
        return " ".join(items)
    if all(isinstance(item, Signer) for item in items):
        return "[" + " ".join(item.canonical() for item in items) + "]"
    raise DecodeError("Cannot canonicalize list: items must all be strings or all be signers")
