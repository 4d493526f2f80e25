"""Participant API request/response models."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, Field, PlainSerializer

from esg_registry.domain.models.participant import Participant, ParticipantRole

# ISO 8601 with Z suffix
DateTimeWithZ = Annotated[
    datetime,
    PlainSerializer(
        lambda v: v.isoformat().replace("+00:00", "Z") if v else None, return_type=str
    ),
]


class CreateParticipantRequest(BaseModel):
    """Off-chain participant creation."""

    address: str = Field(..., description="Ledger address, 0x followed by 40 hex digits")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    external_id: str = Field(
        default="", max_length=255, description="External registration identifier"
    )
    role: ParticipantRole = Field(default=ParticipantRole.COMPANY)


class UpdateProfileRequest(BaseModel):
    """Profile update; omitted fields are left unchanged."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    external_id: str | None = Field(default=None, max_length=255)


class ParticipantResponse(BaseModel):
    participant_id: UUID
    address: str
    name: str
    external_id: str
    role: ParticipantRole
    ledger_registered: bool
    created_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, participant: Participant) -> ParticipantResponse:
        return cls(
            participant_id=participant.participant_id,
            address=participant.address,
            name=participant.name,
            external_id=participant.external_id,
            role=participant.role,
            ledger_registered=participant.ledger_registered,
            created_at=participant.created_at,
        )


class RegistrationRequest(BaseModel):
    request_token: str | None = Field(
        default=None,
        max_length=128,
        description="Unique attempt token; reusing a sent token is refused",
    )


class TransactionResponse(BaseModel):
    """Ledger transaction summary. Large integers are decimal strings."""

    transaction_id: str
    included_block: int
    fee_consumed: str = Field(description="Fee paid, in wei")
    fee_budget: str = Field(description="Fee-unit (gas) ceiling offered with the send")
    fee_price: str = Field(description="Offered price per fee unit, in wei")


class RegistrationResponse(BaseModel):
    participant: ParticipantResponse
    transaction: TransactionResponse


class LedgerStatusResponse(BaseModel):
    address: str
    ledger_registered: bool
    cache_updated: bool
