"""
CanaryTail Validation

Lets any consumer decide whether a published canary still stands, without
trusting the publisher beyond its pre-distributed keys.

Evaluation order (first failure wins, nothing is aggregated):
1. Threshold & panic: panic key, required signers, min_signers, signatures
2. Temporal: expiry, release, freshness anchor
3. Trigger codes

Validation never mutates the canary.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

from .canary import Canary
from .errors import CanaryError, FailureCode
from .logging_config import audit_log
from .oracle import BlockTimeOracle, get_oracle
from .temporal import TemporalValidator
from .threshold import check_threshold


class ValidationOutcome(str, Enum):
    """
    VALID: the canary stands
    INVALID: the canary must be treated as dead; reason provided
    """
    VALID = "VALID"
    INVALID = "INVALID"


@dataclass
class ValidationResult:
    """Result of validating a canary."""
    outcome: ValidationOutcome
    reason: Optional[CanaryError] = None

    @property
    def ok(self) -> bool:
        return self.outcome == ValidationOutcome.VALID

    @property
    def failure_code(self) -> Optional[FailureCode]:
        return self.reason.code if self.reason else None

    def __bool__(self) -> bool:
        return self.ok

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"outcome": self.outcome.value}
        if self.reason:
            d["reason"] = self.reason.to_dict()
        return d

    @classmethod
    def valid(cls) -> 'ValidationResult':
        return cls(outcome=ValidationOutcome.VALID)

    @classmethod
    def invalid(cls, reason: CanaryError) -> 'ValidationResult':
        return cls(outcome=ValidationOutcome.INVALID, reason=reason)


class CanaryValidator:
    """
    Canary validator.

    Holds the block-time oracle used for freshness checks; safe to share
    between callers since validation keeps no state.
    """

    def __init__(self, oracle: BlockTimeOracle, tolerance: Optional[timedelta] = None):
        self.temporal = TemporalValidator(oracle, tolerance)

    def check(self, canary: Canary, now: Optional[datetime] = None) -> None:
        """Raise the first CanaryError found; return None if the canary stands."""
        check_threshold(canary)
        self.temporal.check(canary.claim, now)

    def validate(self, canary: Canary, now: Optional[datetime] = None) -> ValidationResult:
        """
        Validate a canary.

        Args:
            canary: The canary to validate
            now: Validation time (default: now, UTC)

        Returns:
            ValidationResult; on failure, reason is the first error found
        """
        domain = canary.claim.domain
        try:
            self.check(canary, now)
        except CanaryError as e:
            if e.code == FailureCode.PANIC_KEY_USED:
                audit_log.panic_detected(domain)
            elif e.code == FailureCode.TRIGGER_CODES:
                audit_log.trigger_codes(domain, e.details.get("missing_codes", []))
            audit_log.validation_result(domain, False, e.code.value, e.message)
            return ValidationResult.invalid(e)

        audit_log.validation_result(domain, True)
        return ValidationResult.valid()


def validate(
    canary: Canary,
    oracle: Optional[BlockTimeOracle] = None,
    now: Optional[datetime] = None
) -> ValidationResult:
    """
    Convenience function to validate a canary.

    Uses the configured oracle (CANARYTAIL_CHAIN) when none is given.
    """
    return CanaryValidator(oracle or get_oracle()).validate(canary, now)
