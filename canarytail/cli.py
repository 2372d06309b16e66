#!/usr/bin/env python3
"""
CanaryTail Command Line Interface

Usage:
    canarytail init
    canarytail key new <domain>
    canarytail canary new <domain> [--expiry MINUTES] [--war] ... [--signers ...]
    canarytail canary update <domain> [options]
    canarytail canary panic <domain> [options]
    canarytail canary sign <canary_path>
    canarytail canary validate <uri>
    canarytail canary pubkey <domain>
    canarytail version
"""

import argparse
import json
import sys
from typing import List, Optional

from . import config
from .canary import Canary
from .claim import STANDARD_VERSION
from .codes import ALERT_MESSAGES, TriggerCode
from .errors import CanaryError
from .keys import FileKeyStore, read_canary_file, write_canary_file
from .logging_config import configure_logging, set_operation_id
from .operations import (
    new_canary,
    panic_canary,
    parse_signers,
    sign_canary,
    signing_progress,
    update_canary,
)
from .oracle import get_oracle
from .reader import read_canary
from .validator import validate

CLI_VERSION = "0.1"


def flagged_codes(args) -> List[str]:
    """Trigger codes switched on by --war, --gag, ..."""
    return [code.value for code in TriggerCode if getattr(args, code.value, False)]


def signer_entries(args) -> List[str]:
    entries = []
    for value in args.signers or []:
        entries.extend(v for v in value.split(",") if v.strip())
    return entries


def print_progress(canary: Canary) -> None:
    print(signing_progress(canary).message)


def cmd_init(args):
    """Initialize the canary home."""
    home = FileKeyStore().init()
    print(f"Canary home: {home}")
    return 0


def cmd_key_new(args):
    """Generate signing and panic key pairs for a domain."""
    store = FileKeyStore()
    print(f"Generating signing and panic key pairs for {args.domain} at {store.domain_dir(args.domain)}...")
    store.generate(args.domain)
    print("Done.")
    return 0


def _freshness(args) -> str:
    return get_oracle(args.chain, args.node).latest_block_hash()


def cmd_canary_new(args):
    """Compose, sign and store a new canary."""
    store = FileKeyStore()
    author = store.read_key_pair(args.domain)
    panic = store.read_panic_key_pair(args.domain)

    canary = new_canary(
        domain=args.domain,
        author=author,
        panic_public_key=panic.public_key,
        freshness=_freshness(args),
        expiry_minutes=args.expiry,
        flagged=flagged_codes(args),
        min_signers=args.min_signers,
        signers=parse_signers(signer_entries(args)),
        mirrors=args.mirror or [],
    )
    path = store.write_canary(canary)
    print(f"New canary has been stored at \"{path.resolve()}\"")
    print_progress(canary)
    return 0


def _reissue(args, panic: bool):
    store = FileKeyStore()
    canary = store.read_canary(args.domain)
    common = dict(
        freshness=_freshness(args),
        expiry_minutes=args.expiry,
        flagged=flagged_codes(args),
        min_signers=args.min_signers,
        mirrors=args.mirror,
    )
    if panic:
        updated = panic_canary(canary, store.read_panic_key_pair(args.domain), **common)
    else:
        updated = update_canary(
            canary,
            store.read_key_pair(args.domain),
            signers=parse_signers(signer_entries(args)),
            **common
        )
    path = store.write_canary(updated)
    print(f"Updated canary has been stored at \"{path.resolve()}\"")
    print_progress(updated)
    return 0


def cmd_canary_update(args):
    """Re-issue the latest canary of a domain."""
    return _reissue(args, panic=False)


def cmd_canary_panic(args):
    """Re-issue the latest canary signed with the panic key."""
    return _reissue(args, panic=True)


def cmd_canary_sign(args):
    """Add this host's signature set to a canary file."""
    canary = read_canary_file(args.canary_path)
    key_pair = FileKeyStore().read_key_pair(canary.claim.domain)

    print(f"Signing canary {args.canary_path}...")
    sign_canary(canary, key_pair)
    write_canary_file(args.canary_path, canary)
    print_progress(canary)
    return 0


def cmd_canary_validate(args):
    """Validate a canary from a URL or path."""
    canary = read_canary(args.uri)
    print(f"Validating canary {args.uri}...")

    result = validate(canary, get_oracle(args.chain, args.node))
    if result.ok:
        print("OK!")
        return 0

    print(f"✗ INVALID: {result.reason.message} ({result.failure_code.value})")
    for alert in result.reason.details.get("alerts", []):
        print(f"ALERT: {alert}")
    if args.verbose and result.reason.details:
        print(json.dumps(result.reason.details, indent=2))
    return 1


def cmd_canary_pubkey(args):
    """Print the public key of a domain."""
    store = FileKeyStore()
    try:
        key = store.read_key_pair(args.domain).public_key_b64
    except FileNotFoundError:
        print(
            f"Error when accessing public key for \"{args.domain}\". "
            f"Use 'key new {args.domain}' command to create a key if it does not exist.",
            file=sys.stderr
        )
        raise
    print(f"Your public key for \"{args.domain}\" is \"{key}\"")
    return 0


def cmd_version(args):
    print(f"CLI Version {CLI_VERSION}\nStandard Version {STANDARD_VERSION}")
    return 0


def _add_oracle_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--chain", choices=["monero", "bitcoin"], help="Freshness chain (default: $CANARYTAIL_CHAIN)")
    parser.add_argument("--node", help="Monero node URL (default: $CANARYTAIL_MONERO_NODE, else random)")


def _add_canary_op_options(parser: argparse.ArgumentParser, with_signers: bool = True) -> None:
    parser.add_argument("domain", help="Domain of the canary")
    parser.add_argument(
        "--expiry", type=int, default=config.DEFAULT_EXPIRY_MINUTES,
        help="Expires in # minutes from now (default: 43200, one month)"
    )
    for code in TriggerCode:
        parser.add_argument(
            f"--{code.value}", action="store_true",
            help=f"Flag: {ALERT_MESSAGES[code.value]}"
        )
    parser.add_argument(
        "--min-signers", type=int, default=1,
        help="Minimum number of signers required for the canary to be valid (default and minimum: 1)"
    )
    if with_signers:
        parser.add_argument(
            "--signers", action="append",
            help="Signers as 'name1:pubkey1,name2:pubkey2:required,...'; replaces the list of signers"
        )
    parser.add_argument("--mirror", action="append", help="Mirror location of the canary (repeatable)")
    _add_oracle_options(parser)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="canarytail",
        description="CanaryTail warrant canary CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  canarytail key new example.com
  canarytail canary new example.com --signers alice:KEY:required,bob:KEY --min-signers 2
  canarytail canary sign ~/.canarytail/example.com/canary.example.com.latest.json
  canarytail canary update example.com --gag
  canarytail canary validate https://example.com/canary.json
        """
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    init_parser = subparsers.add_parser("init", help="Initialize $CANARY_HOME")
    init_parser.set_defaults(func=cmd_init)

    key_parser = subparsers.add_parser("key", help="Manipulate cryptographic keys")
    key_sub = key_parser.add_subparsers(dest="key_command")
    key_new = key_sub.add_parser("new", help="Generate signing and panic keys for DOMAIN")
    key_new.add_argument("domain", help="Domain of the canary")
    key_new.set_defaults(func=cmd_key_new)

    canary_parser = subparsers.add_parser("canary", help="Manipulate canaries")
    canary_sub = canary_parser.add_subparsers(dest="canary_command")

    new_parser = canary_sub.add_parser("new", help="Generate and sign a new canary")
    _add_canary_op_options(new_parser)
    new_parser.set_defaults(func=cmd_canary_new)

    update_parser = canary_sub.add_parser("update", help="Re-issue the latest canary")
    _add_canary_op_options(update_parser)
    update_parser.set_defaults(func=cmd_canary_update)

    panic_parser = canary_sub.add_parser("panic", help="Re-issue the latest canary with the panic key")
    _add_canary_op_options(panic_parser, with_signers=False)
    panic_parser.set_defaults(func=cmd_canary_panic)

    sign_parser = canary_sub.add_parser("sign", help="Sign a canary with this domain's key")
    sign_parser.add_argument("canary_path", help="Canary JSON file")
    sign_parser.set_defaults(func=cmd_canary_sign)

    validate_parser = canary_sub.add_parser("validate", help="Validate a canary")
    validate_parser.add_argument("uri", help="Canary URL or path")
    validate_parser.add_argument("-v", "--verbose", action="store_true", help="Print failure details")
    _add_oracle_options(validate_parser)
    validate_parser.set_defaults(func=cmd_canary_validate)

    pubkey_parser = canary_sub.add_parser("pubkey", help="Print the public key for DOMAIN")
    pubkey_parser.add_argument("domain", help="Domain of the canary")
    pubkey_parser.set_defaults(func=cmd_canary_pubkey)

    version_parser = subparsers.add_parser("version", help="Show version and exit")
    version_parser.set_defaults(func=cmd_version)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = "DEBUG" if args.debug or config.is_debug() else config.LOG_LEVEL
    configure_logging(level=level, json_format=config.log_json())
    set_operation_id()

    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 2

    try:
        return func(args)
    except CanaryError as e:
        print(f"error: {e.message}", file=sys.stderr)
        if e.details:
            print(json.dumps(e.details, indent=2), file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
