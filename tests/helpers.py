"""
Shared builders for the CanaryTail test suite.

All tests run against a fixed clock and an in-memory block oracle so that
results never depend on the network or on wall-clock time.
"""

import string
from datetime import datetime, timedelta, timezone

from canarytail import (
    StaticBlockOracle,
    generate_key_pair,
    new_canary,
)

NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)
BLOCK_HASH = "9f" * 32
ONE_DAY = 60 * 24


def make_oracle(block_time=None, block_hash=BLOCK_HASH):
    """Oracle knowing a single block, produced 10 minutes before NOW by default."""
    block_time = block_time or NOW - timedelta(minutes=10)
    return StaticBlockOracle({block_hash: int(block_time.timestamp())}, latest=block_hash)


def make_canary(
    author=None,
    panic=None,
    signers=(),
    min_signers=1,
    flagged=(),
    expiry_minutes=ONE_DAY,
    now=NOW,
    freshness=BLOCK_HASH
):
    """Author-signed canary released at NOW and valid for one day."""
    author = author or generate_key_pair()
    panic = panic or generate_key_pair()
    return new_canary(
        domain="example.com",
        author=author,
        panic_public_key=panic.public_key,
        freshness=freshness,
        expiry_minutes=expiry_minutes,
        flagged=flagged,
        min_signers=min_signers,
        signers=signers,
        mirrors=["https://mirror.example.org/canary.json"],
        now=now,
    )


B64_ALPHABET = string.ascii_uppercase + string.ascii_lowercase + string.digits + "+/"


def respell_key(key_b64):
    """
    Another base64 spelling of the same 32-byte key.

    The last data character of a 32-byte key carries two unused bits;
    flipping one changes the text but not the decoded bytes.
    """
    last = key_b64[42]
    alt = B64_ALPHABET[B64_ALPHABET.index(last) ^ 1]
    return key_b64[:42] + alt + key_b64[43:]
