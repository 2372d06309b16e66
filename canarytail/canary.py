"""
CanaryTail Canary Document

A canary is a claim plus one signature set per signer. The serialized form
is a JSON object with exactly two members:

    {
      "canary": { ...claim fields... },
      "signatures": { "<signer pubkey b64>": { "<field>": "<sig b64>", ... } }
    }
"""

import copy
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from .claim import CanaryClaim
from .errors import DecodeError

CLAIM_KEY = "canary"
SIGNATURES_KEY = "signatures"

# field name -> base64 signature
SignatureSet = Dict[str, str]


@dataclass
class Canary:
    """A claim and the signature sets collected for it."""
    claim: CanaryClaim
    signatures: Dict[str, SignatureSet] = field(default_factory=dict)

    @property
    def version(self) -> str:
        return self.claim.version

    def signature_set(self, public_key_b64: str) -> Optional[SignatureSet]:
        return self.signatures.get(public_key_b64)

    def has_signed(self, public_key_b64: str) -> bool:
        return public_key_b64 in self.signatures

    def copy(self) -> 'Canary':
        """Independent deep copy, e.g. for a signer working on its own instance."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            CLAIM_KEY: self.claim.to_dict(),
            SIGNATURES_KEY: {k: dict(v) for k, v in self.signatures.items()},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Canary':
        if not isinstance(data, dict):
            raise DecodeError("canary document must be a JSON object")
        if CLAIM_KEY not in data:
            raise DecodeError(f"canary document has no '{CLAIM_KEY}' member")

        raw_signatures = data.get(SIGNATURES_KEY) or {}
        if not isinstance(raw_signatures, dict):
            raise DecodeError(f"'{SIGNATURES_KEY}' must be an object")

        signatures: Dict[str, SignatureSet] = {}
        for key, sig_set in raw_signatures.items():
            if not isinstance(sig_set, dict) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in sig_set.items()
            ):
                raise DecodeError(
                    "signature set must map field names to base64 strings",
                    details={"signer": key}
                )
            signatures[key] = dict(sig_set)

        return cls(claim=CanaryClaim.from_dict(data[CLAIM_KEY]), signatures=signatures)

    def format(self) -> str:
        """Human-readable JSON form, as published."""
        return json.dumps(self.to_dict(), indent=4)


def serialize(canary: Canary) -> bytes:
    """Encode a canary as UTF-8 JSON bytes."""
    return canary.format().encode('utf-8')


def load(data: Union[bytes, str]) -> Canary:
    """
    Decode a canary from JSON.

    Raises:
        DecodeError: not JSON, or not a canary document
    """
    if isinstance(data, bytes):
        try:
            data = data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise DecodeError(f"canary is not UTF-8: {e}") from e
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as e:
        raise DecodeError(f"canary is not valid JSON: {e}") from e
    return Canary.from_dict(parsed)
