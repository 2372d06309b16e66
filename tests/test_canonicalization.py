"""
CanaryTail Canonicalization Tests

Signer and verifier must derive the same bytes from the same field value,
including after the canary has been through JSON.
"""

import json
import unittest

from canarytail import (
    CLAIM_FIELD_NAMES,
    Canary,
    DecodeError,
    Role,
    Signer,
    canonical_bytes,
    canonicalize,
    load,
    serialize,
)

from helpers import make_canary


class TestScalars(unittest.TestCase):

    def test_none_is_empty(self):
        self.assertEqual(canonicalize(None), "")

    def test_string_unchanged(self):
        self.assertEqual(canonicalize("example.com"), "example.com")

    def test_bool(self):
        self.assertEqual(canonicalize(True), "true")
        self.assertEqual(canonicalize(False), "false")

    def test_int(self):
        self.assertEqual(canonicalize(2), "2")
        self.assertEqual(canonicalize(0), "0")

    def test_float_rejected(self):
        with self.assertRaises(DecodeError):
            canonicalize(1.5)

    def test_mapping_rejected(self):
        with self.assertRaises(DecodeError):
            canonicalize({"a": "b"})

    def test_bytes_are_utf8(self):
        self.assertEqual(canonical_bytes("ünïcode"), "ünïcode".encode("utf-8"))


class TestLists(unittest.TestCase):

    def test_strings_joined_by_space(self):
        self.assertEqual(canonicalize(["war", "gag", "subp"]), "war gag subp")

    def test_order_preserved(self):
        self.assertNotEqual(canonicalize(["a", "b"]), canonicalize(["b", "a"]))

    def test_empty_list(self):
        self.assertEqual(canonicalize([]), "")

    def test_roster(self):
        roster = [
            Signer(key="KEY1", name="alice", role=Role.AUTHOR, required=True),
            Signer(key="KEY2", name="bob"),
        ]
        self.assertEqual(
            canonicalize(roster),
            "[{author alice KEY1 true} {cosigner bob KEY2 false}]"
        )

    def test_roster_sub_fields_all_matter(self):
        base = Signer(key="KEY1", name="alice", required=True)
        variants = [
            Signer(key="KEY2", name="alice", required=True),
            Signer(key="KEY1", name="bob", required=True),
            Signer(key="KEY1", name="alice", required=False),
            Signer(key="KEY1", name="alice", role=Role.AUTHOR, required=True),
        ]
        for variant in variants:
            with self.subTest(variant=variant):
                self.assertNotEqual(canonicalize([base]), canonicalize([variant]))

    def test_mixed_list_rejected(self):
        with self.assertRaises(DecodeError):
            canonicalize(["a", 1])


class TestJsonStability(unittest.TestCase):
    """Canonical forms survive serialization."""

    def test_every_field_stable_across_round_trip(self):
        canary = make_canary()
        restored = load(serialize(canary))
        original = dict(canary.claim.field_values())
        for name, value in restored.claim.field_values():
            with self.subTest(field=name):
                self.assertEqual(canonicalize(value), canonicalize(original[name]))

    def test_field_order_is_fixed(self):
        canary = make_canary()
        self.assertEqual(
            tuple(name for name, _ in canary.claim.field_values()),
            CLAIM_FIELD_NAMES
        )

    def test_reordered_json_members_canonicalize_identically(self):
        canary = make_canary()
        data = canary.to_dict()
        data["canary"] = dict(reversed(list(data["canary"].items())))
        restored = Canary.from_dict(json.loads(json.dumps(data)))
        self.assertEqual(restored.claim.field_values(), canary.claim.field_values())


if __name__ == "__main__":
    unittest.main()
