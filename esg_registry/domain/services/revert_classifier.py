"""Classification of raw ledger revert text.

Revert reasons are free text chosen by the contract. Only a small set of
known substrings is recognized; anything else stays a generic
LedgerRevertError so that no guess is made about an unknown failure.
"""

from __future__ import annotations

from enum import Enum


class RevertKind(str, Enum):
    ALREADY_REGISTERED = "already_registered"
    ALREADY_VERIFIED = "already_verified"
    NOT_REGISTERED = "not_registered"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    GENERIC = "generic"


# Checked in order; the first match wins.
_KNOWN_SUBSTRINGS: tuple[tuple[str, RevertKind], ...] = (
    ("insufficient funds", RevertKind.INSUFFICIENT_FUNDS),
    ("already registered", RevertKind.ALREADY_REGISTERED),
    ("already verified", RevertKind.ALREADY_VERIFIED),
    ("not registered", RevertKind.NOT_REGISTERED),
)


def classify_revert(reason: str | None) -> RevertKind:
    """Map revert text onto a RevertKind by case-insensitive substring match."""
    text = (reason or "").lower()
    for needle, kind in _KNOWN_SUBSTRINGS:
        if needle in text:
            return kind
    return RevertKind.GENERIC
