"""Participant domain model.

A Participant is an off-chain identity (company, verifier or admin) that
owns a ledger address. The ``ledger_registered`` flag caches whether the
ledger holds a registration for that address. It may lag the ledger but
must never run ahead of it: the flag is only set after the ledger
confirmed a registration, either by an included ``register`` transaction
or by an ``isRegistered`` read.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

from uuid6 import uuid7

from esg_registry.domain.errors import ValidationError

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def normalize_address(address: str) -> str:
    """Validate and lower-case a ledger account address.

    Args:
        address: Address as supplied by the caller.

    Returns:
        The lower-cased ``0x``-prefixed address.

    Raises:
        ValidationError: If the address is not 0x followed by 40 hex digits.
    """
    candidate = (address or "").strip()
    if not ADDRESS_PATTERN.match(candidate):
        raise ValidationError(
            f"Invalid ledger address format: {address!r}", field="address"
        )
    return candidate.lower()


class ParticipantRole(str, Enum):
    """Roles a participant may hold."""

    COMPANY = "company"
    VERIFIER = "verifier"
    ADMIN = "admin"


VERIFICATION_ROLES: tuple[ParticipantRole, ...] = (
    ParticipantRole.VERIFIER,
    ParticipantRole.ADMIN,
)


@dataclass(frozen=True, eq=True)
class Participant:
    """An identity known off-chain and, once registered, on the ledger.

    Attributes:
        participant_id: Opaque mirror identifier.
        address: Lower-cased ledger address, unique across participants.
        name: Display name sent to the ledger at registration.
        external_id: External (company) registration identifier.
        role: One of company, verifier, admin.
        ledger_registered: Cached ledger registration flag.
        created_at: When the participant was created (UTC).
    """

    address: str
    name: str
    external_id: str = ""
    role: ParticipantRole = ParticipantRole.COMPANY
    ledger_registered: bool = False
    participant_id: UUID = field(default_factory=uuid7)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.address != self.address.lower():
            raise ValidationError(
                "Participant address must be stored lower-cased", field="address"
            )
        if not self.name.strip():
            raise ValidationError("Participant name is required", field="name")

    @property
    def can_verify(self) -> bool:
        return self.role in VERIFICATION_ROLES

    def mark_ledger_registered(self) -> Participant:
        """Return a copy with the ledger registration flag set."""
        return replace(self, ledger_registered=True)

    def with_profile(
        self, name: str | None = None, external_id: str | None = None
    ) -> Participant:
        """Return a copy with updated profile fields.

        ``None`` leaves a field unchanged.
        """
        return replace(
            self,
            name=self.name if name is None else name,
            external_id=self.external_id if external_id is None else external_id,
        )
