"""
CanaryTail Error Taxonomy

Every failure the protocol can report is a CanaryError carrying a
FailureCode. Validation is first-failure-wins: validators raise, and the
top-level validator converts the first raised error into a failed result.
"""

from enum import Enum
from typing import Any, Dict, Optional


class FailureCode(str, Enum):
    """Most specific reason a canary operation failed."""
    # Decoding
    MALFORMED = "MALFORMED"
    ORACLE_FAILURE = "ORACLE_FAILURE"

    # Cryptography
    SIGNATURE_MISSING = "SIGNATURE_MISSING"
    SIGNATURE_INVALID = "SIGNATURE_INVALID"

    # Signer policy
    REQUIRED_SIGNER_MISSING = "REQUIRED_SIGNER_MISSING"
    THRESHOLD_NOT_MET = "THRESHOLD_NOT_MET"
    PANIC_KEY_USED = "PANIC_KEY_USED"
    INVALID_ROSTER = "INVALID_ROSTER"
    UNKNOWN_SIGNER = "UNKNOWN_SIGNER"

    # Time
    EXPIRED = "EXPIRED"
    RELEASED_IN_FUTURE = "RELEASED_IN_FUTURE"
    STALE_FRESHNESS = "STALE_FRESHNESS"
    INVALID_WINDOW = "INVALID_WINDOW"

    # Canary died
    TRIGGER_CODES = "TRIGGER_CODES"


class CanaryError(Exception):
    """Base class for all canary failures."""

    default_code = FailureCode.MALFORMED

    def __init__(
        self,
        message: str,
        code: Optional[FailureCode] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "error": type(self).__name__,
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            d["details"] = self.details
        return d


class DecodeError(CanaryError):
    """Malformed base64, key, hash, timestamp or document."""
    default_code = FailureCode.MALFORMED


class OracleError(DecodeError):
    """The block-time oracle could not answer (bad hash, unreachable, not found)."""
    default_code = FailureCode.ORACLE_FAILURE


class CryptoMismatch(CanaryError):
    """A signature is missing or does not verify."""
    default_code = FailureCode.SIGNATURE_INVALID


class PolicyViolation(CanaryError):
    """Threshold not met, required signer missing or panic key used."""
    default_code = FailureCode.THRESHOLD_NOT_MET


class TemporalViolation(CanaryError):
    """Expired, released in the future or stale freshness anchor."""
    default_code = FailureCode.EXPIRED


class TriggerViolation(CanaryError):
    """One or more trigger codes were removed from the claim."""
    default_code = FailureCode.TRIGGER_CODES
