"""
CanaryTail Canary Lifecycle

Authoring operations:
- new: the author composes and signs a fresh canary
- sign: a cosigner on the roster adds its signature set
- update: the author re-issues the canary on its cadence
- panic: the canary is re-issued and signed with the panic key, which makes
  every subsequent validation fail

Re-issuing changes signed content, so all previous signature sets are
discarded and cosigners must sign the new round.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

from . import config
from .canary import Canary
from .claim import STANDARD_VERSION, CanaryClaim, Role, Signer, check_token, format_timestamp
from .codes import inverse_codes, unknown_codes
from .crypto import KeyPair, format_key, parse_public_key
from .errors import DecodeError, FailureCode, PolicyViolation
from .logging_config import audit_log
from .signatures import sign_claim

REQUIRED_MARKER = "required"


def parse_signers(entries: Iterable[str]) -> List[Signer]:
    """
    Parse cosigner entries of the form "name:pubkey" or "name:pubkey:required".

    Returns:
        Signers grouped required-first, then sorted by name

    Raises:
        DecodeError: malformed entry or key, or a name with whitespace or braces
        PolicyViolation: duplicate signer name
    """
    signers = {}
    for entry in entries:
        parts = entry.strip().split(":")
        if len(parts) < 2:
            raise DecodeError(f"malformed signer, expected at least 2 ':' separated parts in {entry}")
        if len(parts) > 3:
            raise DecodeError(f"malformed signer, expected at most 3 ':' separated parts in {entry}")
        if len(parts) == 3 and parts[2] != REQUIRED_MARKER:
            raise DecodeError(f"malformed signer, expected '{REQUIRED_MARKER}' in the third part in {entry}")

        name = check_token(parts[0], "signer name")
        key = check_token(parts[1], "signer key")
        if name in signers:
            raise PolicyViolation(
                f"duplicate signer found with the name {name}",
                FailureCode.INVALID_ROSTER,
                {"name": name}
            )
        parse_public_key(key)
        signers[name] = Signer(
            key=key,
            name=name,
            role=Role.COSIGNER,
            required=len(parts) == 3
        )

    return sorted(signers.values(), key=lambda s: (not s.required, s.name))


def _merge_roster(author: Signer, signers: Iterable[Signer]) -> List[Signer]:
    # An entry carrying the author's key only renames the author.
    roster = [author]
    for s in signers:
        if s.key == author.key:
            author.name = s.name
            continue
        roster.append(s)
    if not author.name:
        author.name = Role.AUTHOR.value
    return roster


def _window(now: Optional[datetime], expiry_minutes: Optional[int]):
    now = now or datetime.now(timezone.utc)
    minutes = expiry_minutes if expiry_minutes is not None else config.DEFAULT_EXPIRY_MINUTES
    return format_timestamp(now), format_timestamp(now + timedelta(minutes=minutes))


def _check_flagged(flagged: Iterable[str]) -> List[str]:
    flagged = list(flagged or [])
    unknown = unknown_codes(flagged)
    if unknown:
        raise DecodeError("unknown trigger codes", details={"codes": unknown})
    return flagged


def new_canary(
    domain: str,
    author: KeyPair,
    panic_public_key: bytes,
    freshness: str,
    expiry_minutes: Optional[int] = None,
    flagged: Iterable[str] = (),
    min_signers: int = 1,
    signers: Iterable[Signer] = (),
    mirrors: Iterable[str] = (),
    now: Optional[datetime] = None
) -> Canary:
    """
    Compose a new canary and sign it with the author's key.

    Args:
        domain: Domain the canary is served for
        author: Author key pair; becomes the first, required roster entry
        panic_public_key: Public half of the panic key pair
        freshness: Hex hash of a recent block
        expiry_minutes: Validity from now (default: one month)
        flagged: Trigger codes that have fired; omitted from the claim
        min_signers: Minimum signatures required (clamped to 1)
        signers: Cosigners, e.g. from parse_signers()
        mirrors: Alternative locations the canary is published at
        now: Issuance time (default: now, UTC)

    Returns:
        The signed canary
    """
    release, expiry = _window(now, expiry_minutes)
    author_entry = Signer(key=author.public_key_b64, role=Role.AUTHOR, required=True)

    claim = CanaryClaim(
        domain=domain,
        min_signers=max(min_signers, 1),
        public_keys=_merge_roster(author_entry, signers),
        panic_key=format_key(panic_public_key),
        version=STANDARD_VERSION,
        release=release,
        expiry=expiry,
        freshness=freshness,
        codes=inverse_codes(_check_flagged(flagged)),
        mirrors=list(mirrors),
    )
    claim.check()

    canary = Canary(claim=claim)
    sign_claim(canary, author.private_key, author.public_key)
    audit_log.canary_issued(domain, author.public_key_b64, "new", release)
    return canary


def _reissue(
    canary: Canary,
    signer: KeyPair,
    freshness: str,
    expiry_minutes: Optional[int],
    flagged: Iterable[str],
    min_signers: int,
    signers: Iterable[Signer],
    mirrors: Optional[Iterable[str]],
    now: Optional[datetime],
    operation: str
) -> Canary:
    updated = canary.copy()
    claim = updated.claim
    release, expiry = _window(now, expiry_minutes)

    claim.min_signers = max(min_signers, 1)
    claim.release = release
    claim.expiry = expiry
    claim.freshness = freshness
    claim.version = STANDARD_VERSION
    claim.codes = inverse_codes(_check_flagged(flagged))
    if mirrors is not None:
        claim.mirrors = list(mirrors)

    key_b64 = signer.public_key_b64
    if key_b64 != claim.panic_key and claim.find_signer(key_b64) is None:
        claim.public_keys.insert(0, Signer(key=key_b64, role=Role.AUTHOR, required=True))

    signers = list(signers)
    if signers:
        # Replacing the roster keeps only the author.
        claim.public_keys = _merge_roster(claim.public_keys[0], signers)
    elif claim.public_keys and not claim.public_keys[0].name:
        claim.public_keys[0].name = Role.AUTHOR.value

    claim.check()

    updated.signatures = {}
    sign_claim(updated, signer.private_key, signer.public_key)
    audit_log.canary_issued(claim.domain, key_b64, operation, release)
    return updated


def update_canary(
    canary: Canary,
    author: KeyPair,
    freshness: str,
    expiry_minutes: Optional[int] = None,
    flagged: Iterable[str] = (),
    min_signers: int = 1,
    signers: Iterable[Signer] = (),
    mirrors: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None
) -> Canary:
    """
    Re-issue a canary: new release, expiry, freshness and codes.

    Previous signature sets are discarded and the author signs the new
    round. Supplying signers replaces the roster (the author is kept).
    The input canary is not modified.
    """
    return _reissue(
        canary, author, freshness, expiry_minutes, flagged,
        min_signers, signers, mirrors, now, "update"
    )


def panic_canary(
    canary: Canary,
    panic: KeyPair,
    freshness: str,
    expiry_minutes: Optional[int] = None,
    flagged: Iterable[str] = (),
    min_signers: int = 1,
    mirrors: Optional[Iterable[str]] = None,
    now: Optional[datetime] = None
) -> Canary:
    """
    Re-issue a canary signed with the panic key.

    The result looks like a routine update but fails validation in all
    cases.

    Raises:
        PolicyViolation: the key pair is not the claim's panic key
    """
    if panic.public_key_b64 != canary.claim.panic_key:
        raise PolicyViolation(
            "The panic key does not match",
            FailureCode.INVALID_ROSTER,
            {"panic_key": canary.claim.panic_key}
        )
    return _reissue(
        canary, panic, freshness, expiry_minutes, flagged,
        min_signers, (), mirrors, now, "panic"
    )


def sign_canary(canary: Canary, key_pair: KeyPair) -> Canary:
    """
    Add (or replace) a roster member's signature set on the canary.

    Raises:
        PolicyViolation: the key is not on the roster
    """
    key_b64 = key_pair.public_key_b64
    if canary.claim.find_signer(key_b64) is None:
        raise PolicyViolation(
            "signer's public key not found in the list of signers",
            FailureCode.UNKNOWN_SIGNER,
            {"signer": key_b64}
        )
    sign_claim(canary, key_pair.private_key, key_pair.public_key)
    audit_log.canary_signed(canary.claim.domain, key_b64)
    return canary


@dataclass
class SigningProgress:
    """Where a canary stands in its signing round."""
    criteria_met: bool
    next_signer: Optional[str] = None

    @property
    def message(self) -> str:
        author = Role.AUTHOR.value
        if self.criteria_met and self.next_signer is None:
            return f"Everyone has finished signing, please send the canary back to {author}."
        if self.criteria_met:
            return (
                f"Signing criteria has met. You can either send the canary back to {author}, "
                f"or send it to \"{self.next_signer}\" for further signing."
            )
        return f"Please send the canary to \"{self.next_signer}\" for further signing."


def signing_progress(canary: Canary) -> SigningProgress:
    """Report whether the signing criteria hold and who should sign next."""
    claim = canary.claim
    signed = [s for s in claim.public_keys if canary.has_signed(s.key)]
    criteria_met = len(signed) >= max(claim.min_signers, 1)
    next_signer = None
    for s in claim.public_keys:
        signed_by = canary.has_signed(s.key)
        if s.required and not signed_by:
            criteria_met = False
        if next_signer is None and not signed_by:
            next_signer = s.name or s.key
    return SigningProgress(criteria_met=criteria_met, next_signer=next_signer)
