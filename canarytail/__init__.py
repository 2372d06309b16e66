"""
CanaryTail Warrant Canary Implementation

Version: 0.1.0
License: GPL-3.0

A warrant canary is a periodically re-issued, signed statement that a set
of adverse events (warrants, gag orders, raids, ...) has NOT happened. When
an event happens the publisher stops attesting to it, or stops publishing,
and consumers notice.

A canary stands only if:
- every required signer and at least min_signers roster members signed
  every claim field
- no signature set verifies under the panic key
- it is neither expired nor released in the future
- its freshness anchor is a real block produced shortly before release
- every trigger code is still listed

Usage:
    from canarytail import (
        generate_key_pair,
        get_oracle,
        new_canary,
        validate,
    )

    oracle = get_oracle("monero")
    author = generate_key_pair()
    panic = generate_key_pair()

    canary = new_canary(
        domain="example.com",
        author=author,
        panic_public_key=panic.public_key,
        freshness=oracle.latest_block_hash(),
    )

    result = validate(canary, oracle)
    if not result:
        print(result.failure_code, result.reason.message)
"""

__version__ = "0.1.0"
__author__ = "CanaryTail Contributors"
__license__ = "GPL-3.0"

# Errors
from .errors import (
    FailureCode,
    CanaryError,
    DecodeError,
    OracleError,
    CryptoMismatch,
    PolicyViolation,
    TemporalViolation,
    TriggerViolation,
)

# Codes
from .codes import (
    TriggerCode,
    ALERT_MESSAGES,
    all_codes,
    missing_codes,
    inverse_codes,
    alert_messages,
)

# Cryptography
from .crypto import (
    KeyPair,
    generate_key_pair,
    format_key,
    parse_public_key,
    parse_private_key,
    sign,
    verify,
)

# Claim and document
from .claim import (
    STANDARD_VERSION,
    Role,
    Signer,
    CanaryClaim,
    CLAIM_FIELDS,
    CLAIM_FIELD_NAMES,
)
from .canonicalization import canonicalize, canonical_bytes
from .canary import Canary, serialize, load

# Signatures and policy
from .signatures import sign_claim, check_signatures, validate_signatures
from .threshold import check_threshold, panic_key_used

# Oracles
from .oracle import (
    BlockTimeOracle,
    StaticBlockOracle,
    MoneroNodeOracle,
    BitcoinDataOracle,
    get_oracle,
)

# Validation
from .temporal import TemporalValidator
from .validator import (
    CanaryValidator,
    ValidationOutcome,
    ValidationResult,
    validate,
)

# Lifecycle
from .operations import (
    new_canary,
    update_canary,
    panic_canary,
    sign_canary,
    parse_signers,
    signing_progress,
    SigningProgress,
)

# Storage
from .keys import FileKeyStore, read_canary_file, write_canary_file
from .reader import read_canary

__all__ = [
    # Version
    "__version__",

    # Errors
    "FailureCode",
    "CanaryError",
    "DecodeError",
    "OracleError",
    "CryptoMismatch",
    "PolicyViolation",
    "TemporalViolation",
    "TriggerViolation",

    # Codes
    "TriggerCode",
    "ALERT_MESSAGES",
    "all_codes",
    "missing_codes",
    "inverse_codes",
    "alert_messages",

    # Cryptography
    "KeyPair",
    "generate_key_pair",
    "format_key",
    "parse_public_key",
    "parse_private_key",
    "sign",
    "verify",

    # Claim and document
    "STANDARD_VERSION",
    "Role",
    "Signer",
    "CanaryClaim",
    "CLAIM_FIELDS",
    "CLAIM_FIELD_NAMES",
    "canonicalize",
    "canonical_bytes",
    "Canary",
    "serialize",
    "load",

    # Signatures and policy
    "sign_claim",
    "check_signatures",
    "validate_signatures",
    "check_threshold",
    "panic_key_used",

    # Oracles
    "BlockTimeOracle",
    "StaticBlockOracle",
    "MoneroNodeOracle",
    "BitcoinDataOracle",
    "get_oracle",

    # Validation
    "TemporalValidator",
    "CanaryValidator",
    "ValidationOutcome",
    "ValidationResult",
    "validate",

    # Lifecycle
    "new_canary",
    "update_canary",
    "panic_canary",
    "sign_canary",
    "parse_signers",
    "signing_progress",
    "SigningProgress",

    # Storage
    "FileKeyStore",
    "read_canary_file",
    "write_canary_file",
    "read_canary",
]
