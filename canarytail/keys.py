"""
Key and canary file storage for CanaryTail.

Layout under the canary home ($CANARY_HOME, default ~/.canarytail):

    <domain>/public.b64              author public key
    <domain>/private.b64             author private key
    <domain>/panic-public.b64        panic public key
    <domain>/panic-private.b64       panic private key
    <domain>/canary.<domain>.<unix-millis>.json
    <domain>/canary.<domain>.latest.json

Files are written with mode 0600, directories with 0700.
"""

import logging
import os
import re
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from . import config
from .canary import Canary, load
from .crypto import KeyPair, generate_key_pair, parse_public_key

logger = logging.getLogger(__name__)

PUBLIC_KEY_FILE = "public.b64"
PRIVATE_KEY_FILE = "private.b64"
PANIC_PUBLIC_KEY_FILE = "panic-public.b64"
PANIC_PRIVATE_KEY_FILE = "panic-private.b64"

# matches "canary.mydomain.com.1234567890.json"
CANARY_FILE_PATTERN = re.compile(r'^canary\..+\.(\d+)\.json$')


class CanaryNotFoundError(FileNotFoundError):
    """No canary has been stored for a domain yet."""


def canary_file_name(domain: str, t: datetime) -> str:
    if t.tzinfo is None:
        t = t.replace(tzinfo=timezone.utc)
    return f"canary.{domain}.{int(t.timestamp() * 1000)}.json"


def canary_latest_file_name(domain: str) -> str:
    return f"canary.{domain}.latest.json"


def _write_secret(path: Path, contents: str) -> None:
    fd = os.open(str(path), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(contents)


class FileKeyStore:
    """
    File-based store for per-domain key pairs and issued canaries.
    """

    def __init__(self, home: Optional[Union[str, Path]] = None):
        self.home = Path(home) if home else config.canary_home()

    def init(self) -> Path:
        """Create the canary home if needed."""
        self.home.mkdir(mode=0o700, parents=True, exist_ok=True)
        return self.home

    def domain_dir(self, domain: str) -> Path:
        """Return the domain directory, creating it if it does not exist."""
        if not domain or "/" in domain or domain in (".", ".."):
            raise ValueError(f"Invalid domain: {domain!r}")
        self.init()
        path = self.home / domain
        path.mkdir(mode=0o700, exist_ok=True)
        return path

    def generate(self, domain: str) -> KeyPair:
        """
        Generate the signing and panic key pairs for a domain.

        Returns:
            The signing key pair
        """
        path = self.domain_dir(domain)
        logger.info("Generating signing and panic key pairs for %s at %s", domain, path)

        signing = generate_key_pair()
        _write_secret(path / PUBLIC_KEY_FILE, signing.public_key_b64)
        _write_secret(path / PRIVATE_KEY_FILE, signing.private_key_b64)

        panic = generate_key_pair()
        _write_secret(path / PANIC_PUBLIC_KEY_FILE, panic.public_key_b64)
        _write_secret(path / PANIC_PRIVATE_KEY_FILE, panic.private_key_b64)
        return signing

    def _read(self, domain: str, name: str) -> str:
        with open(self.domain_dir(domain) / name, "r", encoding="utf-8") as f:
            return f.read().strip()

    def read_public_key(self, domain: str) -> bytes:
        return parse_public_key(self._read(domain, PUBLIC_KEY_FILE))

    def read_key_pair(self, domain: str) -> KeyPair:
        return KeyPair.from_b64(
            self._read(domain, PUBLIC_KEY_FILE),
            self._read(domain, PRIVATE_KEY_FILE)
        )

    def read_panic_key_pair(self, domain: str) -> KeyPair:
        return KeyPair.from_b64(
            self._read(domain, PANIC_PUBLIC_KEY_FILE),
            self._read(domain, PANIC_PRIVATE_KEY_FILE)
        )

    def latest_canary_path(self, domain: str) -> Path:
        """
        Path of the most recent timestamped canary of a domain.

        Raises:
            CanaryNotFoundError: nothing stored yet
        """
        directory = self.domain_dir(domain)
        latest, latest_ts = None, -1
        for entry in directory.iterdir():
            if not entry.is_file():
                continue
            match = CANARY_FILE_PATTERN.match(entry.name)
            if not match:
                continue
            ts = int(match.group(1))
            if ts > latest_ts:
                latest, latest_ts = entry, ts
        if latest is None:
            raise CanaryNotFoundError(f"canary not found for {domain}")
        return latest

    def write_canary(self, canary: Canary, issued_at: Optional[datetime] = None) -> Path:
        """
        Store a canary as a timestamped file and as the domain's latest.

        Returns:
            Path of the "latest" file
        """
        domain = canary.claim.domain
        directory = self.domain_dir(domain)
        issued_at = issued_at or datetime.now(timezone.utc)
        formatted = canary.format()

        _write_secret(directory / canary_file_name(domain, issued_at), formatted)
        latest = directory / canary_latest_file_name(domain)
        _write_secret(latest, formatted)
        return latest

    def read_canary(self, domain: str) -> Canary:
        return read_canary_file(self.latest_canary_path(domain))


def read_canary_file(path: Union[str, Path]) -> Canary:
    """Load a canary from a local JSON file."""
    with open(path, "rb") as f:
        return load(f.read())


def write_canary_file(path: Union[str, Path], canary: Canary) -> None:
    _write_secret(Path(path), canary.format())

