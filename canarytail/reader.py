"""
CanaryTail canary retrieval.

Reads a published canary from an http(s) URL or a local path.
"""

from typing import Optional

import requests

from . import config
from .canary import Canary, load
from .errors import DecodeError
from .keys import read_canary_file


def is_http(uri: str) -> bool:
    return uri.lower().startswith(("http://", "https://"))


def read_canary_http(url: str, timeout: Optional[float] = None) -> Canary:
    """
    Fetch and decode a canary over HTTP.

    Raises:
        DecodeError: transport failure, non-200 response or malformed canary
    """
    timeout = timeout if timeout is not None else config.ORACLE_TIMEOUT
    try:
        response = requests.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise DecodeError(f"Could not retrieve canary: {e}", details={"url": url}) from e
    if response.status_code != 200:
        raise DecodeError(
            f"Could not retrieve canary, got code {response.status_code}",
            details={"url": url, "status_code": response.status_code}
        )
    return load(response.content)


def read_canary(uri: str, timeout: Optional[float] = None) -> Canary:
    """Read a canary from a URL or a local file path."""
    if is_http(uri):
        return read_canary_http(uri, timeout)
    return read_canary_file(uri)
