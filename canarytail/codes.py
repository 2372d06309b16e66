"""
CanaryTail Trigger Codes

The fixed code taxonomy of standard version 0.1. A claim lists the codes
that have NOT been triggered; a code missing from that list means the
corresponding event happened.
"""

from enum import Enum
from typing import Dict, Iterable, List


class TriggerCode(str, Enum):
    """Adverse-event categories a canary attests against."""
    WAR = "war"         # Warrants
    GAG = "gag"         # Gag orders
    SUBP = "subp"       # Subpoenas
    TRAP = "trap"       # Trap and trace orders
    CEASE = "cease"     # Court order to cease operations
    DURESS = "duress"   # Coercion, blackmail, or otherwise operating under duress
    RAID = "raid"       # Raids, high confidence nothing useful was seized
    SEIZE = "seize"     # Raids, low confidence nothing useful was seized
    XCRED = "xcred"     # Compromised credentials
    XOPERS = "xopers"   # Compromised operations


ALERT_MESSAGES: Dict[str, str] = {
    TriggerCode.WAR.value: "Warrants received",
    TriggerCode.GAG.value: "Gag orders received",
    TriggerCode.SUBP.value: "Subpoenas received",
    TriggerCode.TRAP.value: "Trap and trace orders received",
    TriggerCode.CEASE.value: "Court order to cease operations received",
    TriggerCode.DURESS.value: "Coercion, blackmail, or otherwise operating under duress",
    TriggerCode.RAID.value: "Raids with high confidence nothing containing useful data was seized",
    TriggerCode.SEIZE.value: "Raids with low confidence nothing containing useful data was seized",
    TriggerCode.XCRED.value: "Compromised credentials",
    TriggerCode.XOPERS.value: "Compromised operations",
}


def all_codes() -> List[str]:
    """All codes of the current standard version, in taxonomy order."""
    return [code.value for code in TriggerCode]


def _normalize(codes: Iterable[str]) -> set:
    return {str(code).strip().lower() for code in codes or []}


def is_known_code(code: str) -> bool:
    return str(code).strip().lower() in ALERT_MESSAGES


def unknown_codes(codes: Iterable[str]) -> List[str]:
    """Codes that are not part of the taxonomy, as given."""
    return [code for code in codes or [] if not is_known_code(code)]


def missing_codes(codes: Iterable[str]) -> List[str]:
    """
    Codes of the taxonomy absent from a claim's "all clear" list.

    Comparison is case-insensitive; unknown codes in the input are ignored.
    A non-empty result means the canary has been triggered.
    """
    present = _normalize(codes)
    return [code for code in all_codes() if code not in present]


def inverse_codes(flagged: Iterable[str]) -> List[str]:
    """
    Codes to publish as "all clear" given the events that were flagged.

    inverse_codes(f) and f partition all_codes() for any f within the
    taxonomy.
    """
    return missing_codes(flagged)


def alert_messages(codes: Iterable[str]) -> List[str]:
    wanted = _normalize(codes)
    return [ALERT_MESSAGES[code] for code in all_codes() if code in wanted]
