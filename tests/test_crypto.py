"""
CanaryTail Cryptography Tests

Ed25519 key handling, signing and verification.
"""

import base64
import unittest

from canarytail import (
    DecodeError,
    KeyPair,
    format_key,
    generate_key_pair,
    parse_private_key,
    parse_public_key,
    sign,
    verify,
)
from canarytail.crypto import decode_b64, public_key_from_private


class TestKeyGeneration(unittest.TestCase):
    """Key layout: 32-byte public key, 64-byte seed || public private key."""

    def test_key_sizes(self):
        pair = generate_key_pair()
        self.assertEqual(len(pair.public_key), 32)
        self.assertEqual(len(pair.private_key), 64)
        self.assertEqual(pair.private_key[32:], pair.public_key)

    def test_keys_are_unique(self):
        self.assertNotEqual(generate_key_pair().public_key, generate_key_pair().public_key)

    def test_b64_round_trip(self):
        pair = generate_key_pair()
        restored = KeyPair.from_b64(pair.public_key_b64, pair.private_key_b64)
        self.assertEqual(restored, pair)

    def test_public_key_from_private(self):
        pair = generate_key_pair()
        self.assertEqual(public_key_from_private(pair.private_key), pair.public_key)
        self.assertEqual(public_key_from_private(pair.private_key[:32]), pair.public_key)


class TestSignVerify(unittest.TestCase):

    def setUp(self):
        self.pair = generate_key_pair()

    def test_sign_and_verify(self):
        signature = sign(b"example.com", self.pair.private_key)
        self.assertEqual(len(signature), 64)
        self.assertTrue(verify(b"example.com", signature, self.pair.public_key))

    def test_signing_is_deterministic(self):
        self.assertEqual(
            sign("example.com", self.pair.private_key),
            sign("example.com", self.pair.private_key)
        )

    def test_seed_signs_like_expanded_key(self):
        self.assertEqual(
            sign(b"msg", self.pair.private_key[:32]),
            sign(b"msg", self.pair.private_key)
        )

    def test_tampered_message_fails(self):
        signature = sign(b"example.com", self.pair.private_key)
        self.assertFalse(verify(b"example.org", signature, self.pair.public_key))

    def test_other_key_fails(self):
        signature = sign(b"example.com", self.pair.private_key)
        self.assertFalse(verify(b"example.com", signature, generate_key_pair().public_key))

    def test_short_signature_is_malformed(self):
        with self.assertRaises(DecodeError):
            verify(b"msg", b"\x00" * 10, self.pair.public_key)

    def test_short_public_key_is_malformed(self):
        signature = sign(b"msg", self.pair.private_key)
        with self.assertRaises(DecodeError):
            verify(b"msg", signature, b"\x01" * 16)

    def test_corrupt_private_key_rejected(self):
        other = generate_key_pair()
        corrupt = self.pair.private_key[:32] + other.public_key
        with self.assertRaises(DecodeError):
            sign(b"msg", corrupt)

    def test_wrong_private_key_length_rejected(self):
        with self.assertRaises(DecodeError):
            sign(b"msg", b"\x00" * 48)


class TestKeyParsing(unittest.TestCase):

    def test_parse_public_key(self):
        pair = generate_key_pair()
        self.assertEqual(parse_public_key(pair.public_key_b64), pair.public_key)

    def test_public_key_wrong_length(self):
        with self.assertRaises(DecodeError):
            parse_public_key(format_key(b"\x00" * 31))

    def test_parse_private_key(self):
        pair = generate_key_pair()
        self.assertEqual(parse_private_key(pair.private_key_b64), pair.private_key)

    def test_corrupt_base64(self):
        with self.assertRaises(DecodeError):
            decode_b64("not*base64!")

    def test_non_string_base64(self):
        with self.assertRaises(DecodeError):
            decode_b64(b"AAAA")

    def test_format_key_is_standard_base64(self):
        key = bytes(range(32))
        self.assertEqual(format_key(key), base64.b64encode(key).decode("ascii"))


if __name__ == "__main__":
    unittest.main()
