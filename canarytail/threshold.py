"""
CanaryTail Threshold & Panic Validation

Evaluates the signer roster of a canary against its signing policy:

1. Panic key: a set that verifies under the panic key is a covert duress
   signal and fails validation whatever else holds.
2. Required signers must all have signed.
3. At least min_signers roster members must have signed.
4. Every roster member that signed must verify.

Signature sets from keys outside the roster are ignored. A roster that
repeats a key, in any base64 spelling, is rejected.
"""

import logging
from typing import List

from .canary import Canary
from .crypto import format_key, parse_public_key
from .errors import FailureCode, PolicyViolation
from .signatures import check_signatures, validate_signatures

logger = logging.getLogger(__name__)


def panic_key_used(canary: Canary) -> bool:
    """True if the claim's panic key produced a valid set for the current claim."""
    if not canary.claim.panic_key:
        return False
    return validate_signatures(canary, parse_public_key(canary.claim.panic_key))


def roster_keys(canary: Canary) -> List[bytes]:
    """
    Decoded roster keys, in roster order.

    Raises:
        PolicyViolation: two entries carry the same key, however spelled
        DecodeError: a roster key cannot be decoded
    """
    keys = []
    for signer in canary.claim.public_keys:
        key = parse_public_key(signer.key)
        if key in keys:
            raise PolicyViolation(
                "duplicate signer key in roster",
                FailureCode.INVALID_ROSTER,
                {"key": signer.key, "name": signer.name}
            )
        keys.append(key)
    return keys


def check_threshold(canary: Canary) -> None:
    """
    Enforce panic, required-signer and threshold policy, then verify signers.

    Signature sets are looked up under the standard encoding of each decoded
    roster key, so each key counts once.

    Raises:
        PolicyViolation: panic key used, duplicate roster key, required
            signer missing, threshold not met
        CryptoMismatch: a roster signature does not verify
        DecodeError: a roster key or signature cannot be decoded
    """
    claim = canary.claim

    if panic_key_used(canary):
        logger.warning("Panic key signature detected for %s", claim.domain)
        raise PolicyViolation(
            "the canary has been signed with the panic key",
            FailureCode.PANIC_KEY_USED,
            {"panic_key": claim.panic_key}
        )

    keys = roster_keys(canary)
    for signer, key in zip(claim.public_keys, keys):
        if signer.required and not canary.has_signed(format_key(key)):
            raise PolicyViolation(
                "required signature missing",
                FailureCode.REQUIRED_SIGNER_MISSING,
                {"signer": signer.key, "name": signer.name}
            )

    signed = [key for key in keys if canary.has_signed(format_key(key))]
    threshold = max(claim.min_signers, 1)
    if len(signed) < threshold:
        raise PolicyViolation(
            "signature threshold not met",
            FailureCode.THRESHOLD_NOT_MET,
            {"min_signers": threshold, "signed": len(signed)}
        )

    for key in signed:
        check_signatures(canary, key)
