"""
CanaryTail CLI Tests

Drives the command line against a temporary canary home and an in-memory
block oracle whose latest block was produced a few minutes ago.
"""

import contextlib
import io
import json
import os
import shutil
import tempfile
import time
import unittest
from unittest import mock

from canarytail import FileKeyStore, StaticBlockOracle, read_canary_file
from canarytail.cli import main

BLOCK_HASH = "5e" * 32


class CLITestCase(unittest.TestCase):

    def setUp(self):
        self.root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.root)
        self.home = os.path.join(self.root, "author")
        self.use_home(self.home)

        self.oracle = StaticBlockOracle({BLOCK_HASH: int(time.time()) - 300}, latest=BLOCK_HASH)
        patcher = mock.patch("canarytail.cli.get_oracle", return_value=self.oracle)
        patcher.start()
        self.addCleanup(patcher.stop)

    def use_home(self, home):
        patcher = mock.patch.dict(os.environ, {"CANARY_HOME": home})
        patcher.start()
        self.addCleanup(patcher.stop)

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with contextlib.redirect_stdout(out), contextlib.redirect_stderr(err):
            code = main(list(argv))
        return code, out.getvalue(), err.getvalue()

    def latest_path(self, home=None):
        return os.path.join(home or self.home, "example.com", "canary.example.com.latest.json")


class TestKeyCommands(CLITestCase):

    def test_init(self):
        code, out, _ = self.run_cli("init")
        self.assertEqual(code, 0)
        self.assertTrue(os.path.isdir(self.home))

    def test_key_new(self):
        code, _, _ = self.run_cli("key", "new", "example.com")
        self.assertEqual(code, 0)
        for name in ("public.b64", "private.b64", "panic-public.b64", "panic-private.b64"):
            self.assertTrue(os.path.exists(os.path.join(self.home, "example.com", name)))

    def test_pubkey(self):
        self.run_cli("key", "new", "example.com")
        key = FileKeyStore(self.home).read_key_pair("example.com").public_key_b64
        code, out, _ = self.run_cli("canary", "pubkey", "example.com")
        self.assertEqual(code, 0)
        self.assertIn(key, out)

    def test_pubkey_without_key(self):
        code, _, err = self.run_cli("canary", "pubkey", "example.com")
        self.assertEqual(code, 1)
        self.assertIn("key new example.com", err)


class TestCanaryCommands(CLITestCase):

    def setUp(self):
        super().setUp()
        self.run_cli("key", "new", "example.com")

    def test_new_and_validate(self):
        code, out, _ = self.run_cli("canary", "new", "example.com", "--mirror", "https://m.example/c.json")
        self.assertEqual(code, 0)
        self.assertIn("Everyone has finished signing", out)

        canary = read_canary_file(self.latest_path())
        self.assertEqual(canary.claim.freshness, BLOCK_HASH)
        self.assertEqual(canary.claim.mirrors, ["https://m.example/c.json"])

        code, out, _ = self.run_cli("canary", "validate", self.latest_path())
        self.assertEqual(code, 0)
        self.assertIn("OK!", out)

    def test_flagged_code_fails_validation(self):
        self.run_cli("canary", "new", "example.com", "--gag")
        code, out, _ = self.run_cli("canary", "validate", self.latest_path())
        self.assertEqual(code, 1)
        self.assertIn("TRIGGER_CODES", out)
        self.assertIn("ALERT: Gag orders received", out)

    def test_update(self):
        self.run_cli("canary", "new", "example.com")
        code, out, _ = self.run_cli("canary", "update", "example.com", "--expiry", "60")
        self.assertEqual(code, 0)
        self.assertIn("Updated canary", out)
        code, _, _ = self.run_cli("canary", "validate", self.latest_path())
        self.assertEqual(code, 0)

    def test_update_without_canary(self):
        code, _, err = self.run_cli("canary", "update", "example.com")
        self.assertEqual(code, 1)
        self.assertIn("canary not found", err)

    def test_panic(self):
        self.run_cli("canary", "new", "example.com")
        code, _, _ = self.run_cli("canary", "panic", "example.com")
        self.assertEqual(code, 0)
        code, out, _ = self.run_cli("canary", "validate", "-v", self.latest_path())
        self.assertEqual(code, 1)
        self.assertIn("PANIC_KEY_USED", out)

    def test_validate_missing_file(self):
        code, _, err = self.run_cli("canary", "validate", os.path.join(self.root, "nope.json"))
        self.assertEqual(code, 1)
        self.assertIn("error", err)

    def test_malformed_signers(self):
        code, _, err = self.run_cli("canary", "new", "example.com", "--signers", "alice")
        self.assertEqual(code, 1)
        self.assertIn("malformed signer", err)


class TestCosigning(CLITestCase):
    """Author and cosigner each keep their own canary home."""

    def test_cosigner_round(self):
        cosigner_home = os.path.join(self.root, "cosigner")
        cosigner_key = FileKeyStore(cosigner_home).generate("example.com").public_key_b64
        self.run_cli("key", "new", "example.com")

        code, out, _ = self.run_cli(
            "canary", "new", "example.com",
            "--signers", f"bob:{cosigner_key}:required",
            "--min-signers", "2"
        )
        self.assertEqual(code, 0)
        self.assertIn("Please send the canary to \"bob\"", out)

        code, out, _ = self.run_cli("canary", "validate", self.latest_path())
        self.assertEqual(code, 1)
        self.assertIn("REQUIRED_SIGNER_MISSING", out)

        self.use_home(cosigner_home)
        code, out, _ = self.run_cli("canary", "sign", self.latest_path(self.home))
        self.assertEqual(code, 0)
        self.assertIn("Everyone has finished signing", out)

        code, out, _ = self.run_cli("canary", "validate", self.latest_path(self.home))
        self.assertEqual(code, 0)

        with open(self.latest_path(self.home)) as f:
            signatures = json.load(f)["signatures"]
        self.assertIn(cosigner_key, signatures)


class TestMisc(CLITestCase):

    def test_version(self):
        code, out, _ = self.run_cli("version")
        self.assertEqual(code, 0)
        self.assertIn("Standard Version 0.1", out)

    def test_no_command(self):
        code, _, _ = self.run_cli()
        self.assertEqual(code, 2)


if __name__ == "__main__":
    unittest.main()
