"""
CanaryTail Cryptographic Signing

Ed25519 (RFC 8032) signing and verification of canonical field values.

Key material follows the common "expanded" layout: public keys are 32 bytes,
private keys are 64 bytes (seed || public key). A bare 32-byte seed is
accepted as a private key as well. All keys are base64-encoded at rest.
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Union

from nacl.signing import SigningKey, VerifyKey
from nacl.exceptions import BadSignatureError

from .errors import DecodeError

PUBLIC_KEY_SIZE = 32
SEED_SIZE = 32
PRIVATE_KEY_SIZE = 64
SIGNATURE_SIZE = 64


@dataclass(frozen=True)
class KeyPair:
    """Ed25519 key pair in raw bytes."""
    public_key: bytes
    private_key: bytes

    @property
    def public_key_b64(self) -> str:
        return format_key(self.public_key)

    @property
    def private_key_b64(self) -> str:
        return format_key(self.private_key)

    @classmethod
    def from_b64(cls, public_key: str, private_key: str) -> 'KeyPair':
        return cls(
            public_key=parse_public_key(public_key),
            private_key=parse_private_key(private_key)
        )


def generate_key_pair() -> KeyPair:
    """
    Generate a new Ed25519 key pair.

    Returns:
        KeyPair with a 32-byte public key and a 64-byte private key
    """
    signing_key = SigningKey.generate()
    public_key = bytes(signing_key.verify_key)
    return KeyPair(public_key=public_key, private_key=bytes(signing_key) + public_key)


def format_key(key: bytes) -> str:
    """Encode a key (or signature) as standard base64."""
    return base64.b64encode(key).decode('ascii')


def decode_b64(value: str, what: str = "value") -> bytes:
    """Strict standard base64 decoding; raises DecodeError on corrupt input."""
    if not isinstance(value, str):
        raise DecodeError(f"{what} must be a base64 string", details={"type": type(value).__name__})
    try:
        return base64.b64decode(value.strip(), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"{what} is not valid base64: {e}") from e


def parse_public_key(public_key: str) -> bytes:
    """Decode a base64 public key and check its length."""
    key = decode_b64(public_key, "public key")
    if len(key) != PUBLIC_KEY_SIZE:
        raise DecodeError(
            f"public key must be {PUBLIC_KEY_SIZE} bytes",
            details={"length": len(key)}
        )
    return key


def parse_private_key(private_key: str) -> bytes:
    """Decode a base64 private key (64-byte expanded or 32-byte seed)."""
    key = decode_b64(private_key, "private key")
    _signing_key(key)
    return key


def _signing_key(private_key: bytes) -> SigningKey:
    if not isinstance(private_key, (bytes, bytearray)):
        raise DecodeError("private key must be bytes")
    if len(private_key) == SEED_SIZE:
        return SigningKey(bytes(private_key))
    if len(private_key) != PRIVATE_KEY_SIZE:
        raise DecodeError(
            f"private key must be {PRIVATE_KEY_SIZE} bytes (or a {SEED_SIZE}-byte seed)",
            details={"length": len(private_key)}
        )
    signing_key = SigningKey(bytes(private_key[:SEED_SIZE]))
    if bytes(signing_key.verify_key) != bytes(private_key[SEED_SIZE:]):
        raise DecodeError("private key is corrupt: public half does not match seed")
    return signing_key


def _verify_key(public_key: bytes) -> VerifyKey:
    if not isinstance(public_key, (bytes, bytearray)) or len(public_key) != PUBLIC_KEY_SIZE:
        raise DecodeError(f"public key must be {PUBLIC_KEY_SIZE} bytes")
    try:
        return VerifyKey(bytes(public_key))
    except ValueError as e:
        raise DecodeError(f"public key is not a valid Ed25519 point: {e}") from e


def public_key_from_private(private_key: bytes) -> bytes:
    """Derive the public key belonging to a private key."""
    return bytes(_signing_key(private_key).verify_key)


def sign(message: Union[bytes, str], private_key: bytes) -> bytes:
    """
    Sign a message with Ed25519.

    Args:
        message: Message bytes (str is UTF-8 encoded)
        private_key: 64-byte private key or 32-byte seed

    Returns:
        64-byte deterministic signature
    """
    if isinstance(message, str):
        message = message.encode('utf-8')
    return _signing_key(private_key).sign(message).signature


def verify(message: Union[bytes, str], signature: bytes, public_key: bytes) -> bool:
    """
    Verify an Ed25519 signature.

    Returns:
        True if the signature matches, False if it does not

    Raises:
        DecodeError: key or signature cannot even be parsed
    """
    if isinstance(message, str):
        message = message.encode('utf-8')
    if not isinstance(signature, (bytes, bytearray)) or len(signature) != SIGNATURE_SIZE:
        raise DecodeError(f"signature must be {SIGNATURE_SIZE} bytes")
    key = _verify_key(public_key)
    try:
        key.verify(message, bytes(signature))
        return True
    except BadSignatureError:
        return False
