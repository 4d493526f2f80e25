"""Off-chain participant management.

Participants are created off-chain first; the ledger learns about them
only through the registration pipeline. Addresses are validated and
lower-cased on the way in and are unique across participants.
"""

from __future__ import annotations

from uuid import UUID

from esg_registry.application.ports.mirror_repository import (
    ParticipantRepositoryProtocol,
)
from esg_registry.application.services.base import LoggingMixin
from esg_registry.domain.errors import ParticipantNotFoundError, ValidationError
from esg_registry.domain.models.participant import (
    Participant,
    ParticipantRole,
    normalize_address,
)


class ParticipantService(LoggingMixin):
    """Creates, looks up and updates participants."""

    def __init__(self, participants: ParticipantRepositoryProtocol) -> None:
        self._participants = participants
        self._init_logger(component="participants")

    async def create(
        self,
        address: str,
        name: str,
        external_id: str = "",
        role: ParticipantRole = ParticipantRole.COMPANY,
    ) -> Participant:
        """Create a participant.

        Raises:
            ValidationError: Bad address format, empty name, or address in use.
        """
        normalized = normalize_address(address)
        if not name or not name.strip():
            raise ValidationError("Participant name is required", field="name")
        if await self._participants.get_by_address(normalized) is not None:
            raise ValidationError(
                f"Address {normalized} is already in use", field="address"
            )

        participant = await self._participants.create(
            Participant(
                address=normalized,
                name=name.strip(),
                external_id=external_id.strip(),
                role=role,
            )
        )
        self._log_operation(
            "create",
            participant_id=str(participant.participant_id),
            address=normalized,
            role=role.value,
        ).info("participant_created")
        return participant

    async def get(self, participant_id: UUID) -> Participant:
        participant = await self._participants.get_by_id(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)
        return participant

    async def get_by_address(self, address: str) -> Participant:
        normalized = normalize_address(address)
        participant = await self._participants.get_by_address(normalized)
        if participant is None:
            raise ParticipantNotFoundError(normalized)
        return participant

    async def update_profile(
        self,
        participant_id: UUID,
        name: str | None = None,
        external_id: str | None = None,
    ) -> Participant:
        """Update display name and/or external id.

        The ledger keeps the name given at registration; only the mirror
        profile changes.
        """
        if name is not None and not name.strip():
            raise ValidationError("Participant name must not be empty", field="name")
        participant = await self.get(participant_id)
        updated = participant.with_profile(
            name=name.strip() if name is not None else None,
            external_id=external_id.strip() if external_id is not None else None,
        )
        saved = await self._participants.save(updated)
        self._log_operation(
            "update_profile", participant_id=str(participant_id)
        ).info("participant_profile_updated")
        return saved
