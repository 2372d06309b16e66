"""
CanaryTail Oracle Tests

HTTP adapters are exercised against a mocked requests session.
"""

import unittest
from unittest import mock

import requests

from canarytail import (
    BitcoinDataOracle,
    FailureCode,
    MoneroNodeOracle,
    OracleError,
    StaticBlockOracle,
    get_oracle,
)


def response(status_code=200, json_data=None, text=""):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.json.return_value = json_data
    resp.text = text
    return resp


class TestStaticBlockOracle(unittest.TestCase):

    def test_lookup_is_case_insensitive(self):
        oracle = StaticBlockOracle({"ABCD": 100})
        self.assertEqual(oracle.get_block_time("abcd"), 100)

    def test_unknown_block(self):
        with self.assertRaises(OracleError) as cm:
            StaticBlockOracle().get_block_time("abcd")
        self.assertEqual(cm.exception.code, FailureCode.ORACLE_FAILURE)

    def test_add_block_becomes_latest(self):
        oracle = StaticBlockOracle()
        with self.assertRaises(OracleError):
            oracle.latest_block_hash()
        oracle.add_block("EF01", 5)
        self.assertEqual(oracle.latest_block_hash(), "ef01")


class TestMoneroNodeOracle(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.oracle = MoneroNodeOracle(node="http://node.example:18081/", timeout=5, session=self.session)

    def test_block_time(self):
        self.session.post.return_value = response(json_data={
            "jsonrpc": "2.0",
            "id": "0",
            "result": {"block_header": {"timestamp": 1705318800}},
        })
        self.assertEqual(self.oracle.get_block_time("ab" * 32), 1705318800)
        self.session.post.assert_called_once_with(
            "http://node.example:18081/json_rpc",
            json={
                "jsonrpc": "2.0",
                "id": "0",
                "method": "get_block_header_by_hash",
                "params": {"hash": "ab" * 32},
            },
            timeout=5
        )

    def test_latest_block_hash(self):
        self.session.post.return_value = response(json_data={"result": {"top_block_hash": "ABCDEF"}})
        self.assertEqual(self.oracle.latest_block_hash(), "abcdef")

    def test_rpc_error(self):
        self.session.post.return_value = response(json_data={"error": {"code": -5, "message": "not found"}})
        with self.assertRaises(OracleError):
            self.oracle.get_block_time("ab" * 32)

    def test_http_error(self):
        self.session.post.return_value = response(status_code=500)
        with self.assertRaises(OracleError) as cm:
            self.oracle.get_block_time("ab" * 32)
        self.assertEqual(cm.exception.details["status_code"], 500)

    def test_unreachable(self):
        self.session.post.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(OracleError):
            self.oracle.get_block_time("ab" * 32)

    def test_not_json(self):
        resp = response()
        resp.json.side_effect = ValueError("no json")
        self.session.post.return_value = resp
        with self.assertRaises(OracleError):
            self.oracle.get_block_time("ab" * 32)

    def test_missing_timestamp(self):
        self.session.post.return_value = response(json_data={"result": {"block_header": {}}})
        with self.assertRaises(OracleError):
            self.oracle.get_block_time("ab" * 32)

    def test_random_node_from_list(self):
        session = mock.Mock()
        session.get.return_value = response(json_data={"monero": {"clear": ["http://picked.example:18089/"]}})
        oracle = MoneroNodeOracle(session=session, node_list_url="https://nodes.example/nodes.json")
        self.assertEqual(oracle.node, "http://picked.example:18089")
        self.assertEqual(oracle.node, "http://picked.example:18089")
        session.get.assert_called_once()

    def test_empty_node_list(self):
        session = mock.Mock()
        session.get.return_value = response(json_data={"monero": {"clear": []}})
        with self.assertRaises(OracleError):
            MoneroNodeOracle(session=session).pick_node()


class TestBitcoinDataOracle(unittest.TestCase):

    def setUp(self):
        self.session = mock.Mock()
        self.oracle = BitcoinDataOracle(api_url="https://btc.example/", timeout=5, session=self.session)

    def test_block_time(self):
        self.session.get.return_value = response(json_data={"time": 1705318800})
        self.assertEqual(self.oracle.get_block_time("ab" * 32), 1705318800)
        self.session.get.assert_called_once_with(f"https://btc.example/rawblock/{'ab' * 32}", timeout=5)

    def test_latest_block_hash(self):
        self.session.get.return_value = response(text="00ABCD\n")
        self.assertEqual(self.oracle.latest_block_hash(), "00abcd")

    def test_block_not_found(self):
        self.session.get.return_value = response(status_code=404)
        with self.assertRaises(OracleError):
            self.oracle.get_block_time("ab" * 32)


class TestGetOracle(unittest.TestCase):

    def test_bitcoin(self):
        self.assertIsInstance(get_oracle("bitcoin"), BitcoinDataOracle)

    def test_monero_with_node(self):
        oracle = get_oracle("Monero", node="http://node.example:18081")
        self.assertIsInstance(oracle, MoneroNodeOracle)
        self.assertEqual(oracle.node, "http://node.example:18081")

    def test_unknown_chain(self):
        with self.assertRaises(ValueError):
            get_oracle("dogecoin")


if __name__ == "__main__":
    unittest.main()
