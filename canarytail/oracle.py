"""
CanaryTail Blockchain Timestamp Oracles

A freshness anchor is a block hash; validators ask an oracle when that
block was produced. Authors ask it for the latest block hash to anchor a
new canary.

Adapters:
- MoneroNodeOracle: Monero daemon JSON-RPC (default chain)
- BitcoinDataOracle: blockchain.info data API (legacy canaries)
- StaticBlockOracle: in-memory table, for tests and offline checks

Failures are reported as OracleError and never retried here.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import requests

from . import config
from .errors import OracleError

logger = logging.getLogger(__name__)


class BlockTimeOracle(ABC):
    """Abstract interface for block timestamp lookups."""

    @abstractmethod
    def get_block_time(self, block_hash: str) -> int:
        """
        Return the unix timestamp (seconds) at which a block was produced.

        Args:
            block_hash: Lowercase hex block hash

        Raises:
            OracleError: unknown block, unreachable backend or bad response
        """
        pass

    @abstractmethod
    def latest_block_hash(self) -> str:
        """Return the hex hash of the chain tip."""
        pass


class StaticBlockOracle(BlockTimeOracle):
    """Oracle backed by a fixed table of block hashes to timestamps."""

    def __init__(self, blocks: Optional[Dict[str, int]] = None, latest: Optional[str] = None):
        self._blocks = {k.lower(): int(v) for k, v in (blocks or {}).items()}
        self._latest = latest

    def add_block(self, block_hash: str, timestamp: int) -> None:
        self._blocks[block_hash.lower()] = int(timestamp)
        self._latest = block_hash.lower()

    def get_block_time(self, block_hash: str) -> int:
        try:
            return self._blocks[block_hash.lower()]
        except KeyError:
            raise OracleError("block not found", details={"block_hash": block_hash}) from None

    def latest_block_hash(self) -> str:
        if not self._latest:
            raise OracleError("no blocks known to static oracle")
        return self._latest


def _response_json(response: Any, what: str) -> Any:
    if response.status_code != 200:
        raise OracleError(
            f"Could not get {what}, got code {response.status_code}",
            details={"status_code": response.status_code}
        )
    try:
        return response.json()
    except ValueError as e:
        raise OracleError(f"Could not parse {what}: {e}") from e


class MoneroNodeOracle(BlockTimeOracle):
    """
    Monero daemon JSON-RPC oracle.

    When no node is configured, one is picked at random from the public
    node list on first use.
    """

    def __init__(
        self,
        node: str = "",
        timeout: Optional[float] = None,
        session: Optional[Any] = None,
        node_list_url: Optional[str] = None
    ):
        self._node = node.rstrip("/") if node else ""
        self._timeout = timeout if timeout is not None else config.ORACLE_TIMEOUT
        self._http = session or requests
        self._node_list_url = node_list_url or config.MONERO_NODE_LIST_URL

    @property
    def node(self) -> str:
        if not self._node:
            self._node = self.pick_node().rstrip("/")
            logger.info("No Monero node specified, chose %s at random", self._node)
        return self._node

    def pick_node(self) -> str:
        """Choose a random clearnet node from the public node list."""
        try:
            response = self._http.get(self._node_list_url, timeout=self._timeout)
        except requests.RequestException as e:
            raise OracleError(f"Could not retrieve Monero node list: {e}") from e
        data = _response_json(response, "Monero node list")
        try:
            nodes = data["monero"]["clear"]
        except (KeyError, TypeError) as e:
            raise OracleError("Monero node list has no clearnet nodes") from e
        if not nodes:
            raise OracleError("Monero node list is empty")
        return random.choice(nodes)

    def _rpc(self, method: str, params: Dict[str, Any]) -> Dict[str, Any]:
        body = {"jsonrpc": "2.0", "id": "0", "method": method, "params": params}
        url = self.node + "/json_rpc"
        try:
            response = self._http.post(url, json=body, timeout=self._timeout)
        except requests.RequestException as e:
            raise OracleError(f"Could not reach Monero node: {e}", details={"node": self.node}) from e

        data = _response_json(response, "blockchain info")
        if not isinstance(data, dict):
            raise OracleError("Monero node returned a malformed response")
        if data.get("error"):
            raise OracleError(
                f"Monero node rejected {method}",
                details={"node": self.node, "error": data["error"]}
            )
        result = data.get("result")
        if not isinstance(result, dict):
            raise OracleError(f"Monero node returned no result for {method}")
        return result

    def get_block_time(self, block_hash: str) -> int:
        result = self._rpc("get_block_header_by_hash", {"hash": block_hash})
        try:
            timestamp = int(result["block_header"]["timestamp"])
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError("block header has no timestamp", details={"block_hash": block_hash}) from e
        logger.debug("Block %s produced at %d", block_hash, timestamp)
        return timestamp

    def latest_block_hash(self) -> str:
        result = self._rpc("get_info", {})
        top = result.get("top_block_hash")
        if not isinstance(top, str) or not top:
            raise OracleError("Monero node did not report a top block hash")
        return top.lower()


class BitcoinDataOracle(BlockTimeOracle):
    """blockchain.info data API oracle, kept for canaries anchored to Bitcoin."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[Any] = None
    ):
        self._api_url = (api_url or config.BITCOIN_API_URL).rstrip("/")
        self._timeout = timeout if timeout is not None else config.ORACLE_TIMEOUT
        self._http = session or requests

    def _get(self, path: str) -> Any:
        try:
            return self._http.get(self._api_url + path, timeout=self._timeout)
        except requests.RequestException as e:
            raise OracleError(f"Could not reach blockchain API: {e}") from e

    def get_block_time(self, block_hash: str) -> int:
        data = _response_json(self._get(f"/rawblock/{block_hash}"), "blockchain info")
        try:
            return int(data["time"])
        except (KeyError, TypeError, ValueError) as e:
            raise OracleError("block info has no time", details={"block_hash": block_hash}) from e

    def latest_block_hash(self) -> str:
        response = self._get("/q/latesthash")
        if response.status_code != 200:
            raise OracleError(f"Could not get latest hash, got code {response.status_code}")
        return response.text.strip().lower()


def get_oracle(
    chain: Optional[str] = None,
    node: Optional[str] = None,
    timeout: Optional[float] = None
) -> BlockTimeOracle:
    """
    Factory function to create the configured oracle.

    Args:
        chain: "monero" or "bitcoin" (default: CANARYTAIL_CHAIN)
        node: Monero node URL (default: CANARYTAIL_MONERO_NODE, else random)
        timeout: HTTP timeout in seconds

    Returns:
        Configured BlockTimeOracle instance
    """
    chain = (chain or config.CHAIN).lower()
    if chain == "bitcoin":
        return BitcoinDataOracle(timeout=timeout)
    if chain == "monero":
        return MoneroNodeOracle(node=node if node is not None else config.MONERO_NODE, timeout=timeout)
    raise ValueError(f"Unknown chain: {chain}")
