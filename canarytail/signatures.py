"""
CanaryTail Multi-Signer Signature Engine

Every signer signs every claim field independently. A signer's set is bound
to the whole current claim: changing any field after signing invalidates
the set, so stale cosignatures never carry over to new content.
"""

from typing import Dict

from .canary import Canary, SignatureSet
from .canonicalization import canonical_bytes
from .claim import CLAIM_FIELDS
from .crypto import decode_b64, format_key, public_key_from_private, sign, verify
from .errors import CanaryError, CryptoMismatch, DecodeError, FailureCode


def sign_claim(canary: Canary, private_key: bytes, public_key: bytes) -> SignatureSet:
    """
    Sign every claim field and store the set under the signer's encoded key.

    Re-signing overwrites only this signer's previous set; other signers'
    sets are left untouched.

    Args:
        canary: Canary to sign (its signatures map is mutated)
        private_key: Signer's private key
        public_key: Signer's public key, must belong to private_key

    Returns:
        The new signature set
    """
    if public_key_from_private(private_key) != bytes(public_key):
        raise DecodeError("private key does not belong to the given public key")

    sig_set: Dict[str, str] = {}
    for name, value in canary.claim.field_values():
        sig_set[name] = format_key(sign(canonical_bytes(value), private_key))

    canary.signatures[format_key(public_key)] = sig_set
    return sig_set


def check_signatures(canary: Canary, public_key: bytes) -> None:
    """
    Verify a signer's set against the current claim.

    Raises:
        CryptoMismatch: no set for this key, a field unsigned, or a mismatch
        DecodeError: the key or a stored signature cannot be decoded
    """
    key_b64 = format_key(public_key)
    sig_set = canary.signature_set(key_b64)
    if sig_set is None:
        raise CryptoMismatch(
            "no signature set for signer",
            FailureCode.SIGNATURE_MISSING,
            {"signer": key_b64}
        )

    for f in CLAIM_FIELDS:
        encoded = sig_set.get(f.name)
        if encoded is None:
            raise CryptoMismatch(
                f"signature for field '{f.name}' is missing",
                FailureCode.SIGNATURE_MISSING,
                {"signer": key_b64, "field": f.name}
            )
        signature = decode_b64(encoded, f"signature for field '{f.name}'")
        if not verify(canonical_bytes(f.get(canary.claim)), signature, public_key):
            raise CryptoMismatch(
                f"signature for field '{f.name}' does not match",
                FailureCode.SIGNATURE_INVALID,
                {"signer": key_b64, "field": f.name}
            )


def validate_signatures(canary: Canary, public_key: bytes) -> bool:
    """True if the signer's set exists and verifies for every claim field."""
    try:
        check_signatures(canary, public_key)
        return True
    except CanaryError:
        return False
