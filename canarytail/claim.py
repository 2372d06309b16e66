"""
CanaryTail Claim Model

The unsigned content of a canary: who publishes it, who must sign it,
when it is valid, which freshness anchor it commits to and which trigger
codes are still "all clear".

The fields covered by signatures are listed explicitly in CLAIM_FIELDS so
that signer and verifier always walk the same fields.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple

from .codes import unknown_codes
from .crypto import parse_public_key
from .errors import DecodeError, FailureCode, PolicyViolation, TemporalViolation

STANDARD_VERSION = "0.1"

# date, time, optional fraction, offset
TIMESTAMP_PATTERN = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)

# Delimiters of the canonical roster form; not allowed in signer names or keys
RESERVED_CHARS = re.compile(r"[\s{}\[\]]")


class Role(str, Enum):
    """Role of a signer within the roster."""
    AUTHOR = "author"
    COSIGNER = "cosigner"


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as an RFC 3339 UTC timestamp with second precision."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt.isoformat().replace("+00:00", "Z")


def parse_timestamp(value: str, what: str = "timestamp") -> datetime:
    """
    Parse an RFC 3339 timestamp into an aware datetime.

    Fractions of any length are accepted and cut to microseconds.

    Raises:
        DecodeError: value is empty, malformed or carries no UTC offset
    """
    if not isinstance(value, str) or not value:
        raise DecodeError(f"{what} is missing")
    match = TIMESTAMP_PATTERN.match(value.strip())
    if not match:
        raise DecodeError(f"{what} is not an RFC 3339 timestamp with a UTC offset: {value!r}")
    date, time_of_day, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    fraction = "." + fraction[:6].ljust(6, "0") if fraction else ""
    try:
        return datetime.fromisoformat(f"{date}T{time_of_day}{fraction}{offset}")
    except ValueError as e:
        raise DecodeError(f"{what} is not an RFC 3339 timestamp: {value!r}") from e


def check_token(value: str, what: str) -> str:
    """Reject values that contain whitespace, braces or brackets."""
    if RESERVED_CHARS.search(value):
        raise DecodeError(f"{what} must not contain whitespace, braces or brackets: {value!r}")
    return value


@dataclass
class Signer:
    """
    One entry of the signer roster.

    Identity is the encoded public key; names are informational.
    """
    key: str
    name: str = ""
    role: Role = Role.COSIGNER
    required: bool = False

    def canonical(self) -> str:
        """Stable text form embedding every sub-field."""
        required = "true" if self.required else "false"
        return "{" + f"{Role(self.role).value} {self.name} {self.key} {required}" + "}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": Role(self.role).value,
            "name": self.name,
            "key": self.key,
            "required": self.required,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Signer':
        if not isinstance(data, dict):
            raise DecodeError("signer entry must be an object")
        if not isinstance(data.get("key"), str) or not data["key"]:
            raise DecodeError("signer entry has no key")
        try:
            role = Role(data.get("role") or Role.COSIGNER.value)
        except ValueError as e:
            raise DecodeError(f"unknown signer role: {data.get('role')!r}") from e
        required = data.get("required", False)
        if not isinstance(required, bool):
            raise DecodeError("signer 'required' must be a boolean")
        return cls(
            key=check_token(data["key"], "signer key"),
            name=check_token(str(data.get("name") or ""), "signer name"),
            role=role,
            required=required
        )


@dataclass
class CanaryClaim:
    """
    The assertions of a canary.

    public_keys[0] is the author. codes holds the trigger codes that have
    NOT fired.
    """
    domain: str
    public_keys: List[Signer] = field(default_factory=list)
    panic_key: str = ""
    release: str = ""
    expiry: str = ""
    freshness: str = ""
    codes: List[str] = field(default_factory=list)
    mirrors: List[str] = field(default_factory=list)
    min_signers: int = 1
    version: str = STANDARD_VERSION

    @property
    def author(self) -> Optional[Signer]:
        return self.public_keys[0] if self.public_keys else None

    def find_signer(self, key: str) -> Optional[Signer]:
        for signer in self.public_keys:
            if signer.key == key:
                return signer
        return None

    def release_time(self) -> datetime:
        return parse_timestamp(self.release, "release")

    def expiry_time(self) -> datetime:
        return parse_timestamp(self.expiry, "expiry")

    def check(self) -> None:
        """
        Enforce the structural invariants of a claim.

        Raises:
            PolicyViolation: roster smaller than min_signers, or duplicate keys
            TemporalViolation: release after expiry
            DecodeError: malformed timestamps, keys or names, or unknown codes
        """
        if not isinstance(self.min_signers, int) or isinstance(self.min_signers, bool) \
                or self.min_signers < 1:
            raise PolicyViolation(
                "min_signers must be an integer of at least 1",
                FailureCode.INVALID_ROSTER,
                {"min_signers": self.min_signers}
            )
        if len(self.public_keys) < self.min_signers:
            raise PolicyViolation(
                "total number of signers should be at least min signers",
                FailureCode.INVALID_ROSTER,
                {"min_signers": self.min_signers, "total": len(self.public_keys)}
            )
        seen = set()
        for signer in self.public_keys:
            check_token(signer.name, "signer name")
            key = parse_public_key(check_token(signer.key, "signer key"))
            if key in seen:
                raise PolicyViolation(
                    "duplicate signer key in roster",
                    FailureCode.INVALID_ROSTER,
                    {"key": signer.key}
                )
            seen.add(key)
        if self.release_time() > self.expiry_time():
            raise TemporalViolation(
                "release is after expiry",
                FailureCode.INVALID_WINDOW,
                {"release": self.release, "expiry": self.expiry}
            )
        unknown = unknown_codes(self.codes)
        if unknown:
            raise DecodeError("unknown codes in claim", details={"codes": unknown})

    def field_values(self) -> List[Tuple[str, Any]]:
        """(name, value) for every signed field, in CLAIM_FIELDS order."""
        return [(f.name, f.get(self)) for f in CLAIM_FIELDS]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain,
            "min_signers": self.min_signers,
            "pubkeys": [s.to_dict() for s in self.public_keys],
            "panickey": self.panic_key,
            "version": self.version,
            "release": self.release,
            "expiry": self.expiry,
            "freshness": self.freshness,
            "codes": list(self.codes),
            "mirrors": list(self.mirrors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CanaryClaim':
        """Create a claim from its JSON object form."""
        if not isinstance(data, dict):
            raise DecodeError("claim must be an object")

        def strings(name: str) -> List[str]:
            value = data.get(name) or []
            if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
                raise DecodeError(f"claim field '{name}' must be a list of strings")
            return list(value)

        def text(name: str) -> str:
            value = data.get(name) or ""
            if not isinstance(value, str):
                raise DecodeError(f"claim field '{name}' must be a string")
            return value

        min_signers = data.get("min_signers", 1)
        if not isinstance(min_signers, int) or isinstance(min_signers, bool):
            raise DecodeError("claim field 'min_signers' must be an integer")

        pubkeys = data.get("pubkeys") or []
        if not isinstance(pubkeys, list):
            raise DecodeError("claim field 'pubkeys' must be a list")

        return cls(
            domain=text("domain"),
            min_signers=min_signers,
            public_keys=[Signer.from_dict(p) for p in pubkeys],
            panic_key=text("panickey"),
            version=text("version"),
            release=text("release"),
            expiry=text("expiry"),
            freshness=text("freshness"),
            codes=strings("codes"),
            mirrors=strings("mirrors"),
        )


class ClaimField(NamedTuple):
    """A signed claim field: its wire name and accessor."""
    name: str
    get: Callable[[CanaryClaim], Any]


CLAIM_FIELDS: Tuple[ClaimField, ...] = (
    ClaimField("domain", lambda c: c.domain),
    ClaimField("min_signers", lambda c: c.min_signers),
    ClaimField("pubkeys", lambda c: c.public_keys),
    ClaimField("panickey", lambda c: c.panic_key),
    ClaimField("version", lambda c: c.version),
    ClaimField("release", lambda c: c.release),
    ClaimField("expiry", lambda c: c.expiry),
    ClaimField("freshness", lambda c: c.freshness),
    ClaimField("codes", lambda c: c.codes),
    ClaimField("mirrors", lambda c: c.mirrors),
)

CLAIM_FIELD_NAMES: Tuple[str, ...] = tuple(f.name for f in CLAIM_FIELDS)
