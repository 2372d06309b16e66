"""
CanaryTail Temporal & Freshness Validation

Checks, in order:
1. Not expired
2. Not released in the future (guards against forged future-dated canaries)
3. Freshness anchor resolves to a block via the oracle
4. Release lags the block timestamp by no more than the tolerance
   (guards against precomputed or backdated canaries)
5. No trigger code has been removed
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from . import config
from .claim import CanaryClaim
from .codes import alert_messages, missing_codes
from .errors import (
    CanaryError,
    DecodeError,
    FailureCode,
    OracleError,
    TemporalViolation,
    TriggerViolation,
)
from .logging_config import audit_log
from .oracle import BlockTimeOracle

logger = logging.getLogger(__name__)


def decode_block_hash(freshness: str) -> bytes:
    """Decode the hex block hash of a freshness anchor."""
    if not isinstance(freshness, str) or not freshness:
        raise DecodeError("freshness anchor is missing")
    try:
        return bytes.fromhex(freshness)
    except ValueError as e:
        raise DecodeError(f"freshness anchor is not a hex block hash: {freshness!r}") from e


def check_codes(claim: CanaryClaim) -> None:
    """Fail if any trigger code is absent from the claim."""
    missing = missing_codes(claim.codes)
    if missing:
        raise TriggerViolation(
            "some codes are missing",
            FailureCode.TRIGGER_CODES,
            {"missing_codes": missing, "alerts": alert_messages(missing)}
        )


class TemporalValidator:
    """
    Expiry, release and freshness validation for a claim.

    The oracle call is the only blocking step; its timeout belongs to the
    oracle.
    """

    def __init__(self, oracle: BlockTimeOracle, tolerance: Optional[timedelta] = None):
        self.oracle = oracle
        self.tolerance = tolerance if tolerance is not None else config.FRESHNESS_TOLERANCE

    def block_time(self, freshness: str) -> datetime:
        """Resolve a freshness anchor to its block's UTC timestamp."""
        block_hash = decode_block_hash(freshness).hex()
        try:
            timestamp = self.oracle.get_block_time(block_hash)
        except CanaryError as e:
            audit_log.oracle_lookup(block_hash, ok=False, error=str(e))
            raise
        except Exception as e:
            audit_log.oracle_lookup(block_hash, ok=False, error=str(e))
            raise OracleError(
                f"the block provided seems not to be valid, or there is an issue "
                f"retrieving the block info: {e}",
                details={"block_hash": block_hash}
            ) from e
        try:
            block_time = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError, OSError) as e:
            raise OracleError(
                f"oracle returned an unusable block time: {timestamp!r}",
                details={"block_hash": block_hash}
            ) from e
        audit_log.oracle_lookup(block_hash, ok=True)
        return block_time

    def check(self, claim: CanaryClaim, now: Optional[datetime] = None) -> None:
        """
        Run the temporal checks followed by the trigger-code check.

        Raises:
            TemporalViolation: expired, released in future, stale freshness
            TriggerViolation: trigger codes missing
            DecodeError / OracleError: unparseable input or oracle failure
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        expiry = claim.expiry_time()
        if now > expiry:
            raise TemporalViolation(
                "the canary has expired",
                FailureCode.EXPIRED,
                {"expiry": claim.expiry, "now": now.isoformat()}
            )

        release = claim.release_time()
        if now < release:
            raise TemporalViolation(
                "the canary is released with a date in the future",
                FailureCode.RELEASED_IN_FUTURE,
                {"release": claim.release, "now": now.isoformat()}
            )

        block_time = self.block_time(claim.freshness)
        lag = release - block_time
        if lag > self.tolerance:
            raise TemporalViolation(
                "the block provided is older than the release date allows",
                FailureCode.STALE_FRESHNESS,
                {
                    "freshness": claim.freshness,
                    "block_time": block_time.isoformat(),
                    "release": claim.release,
                    "lag_seconds": int(lag.total_seconds()),
                    "tolerance_seconds": int(self.tolerance.total_seconds()),
                }
            )
        logger.debug("Freshness anchor %s lags release by %s", claim.freshness, lag)

        check_codes(claim)
