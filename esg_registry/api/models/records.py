"""Record, verification and statistics API models.

Ledger record ids and fee amounts are serialized as decimal strings:
ledger integers are unbounded and JSON consumers commonly are not.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from pydantic import BaseModel, Field

from esg_registry.api.models.participant import DateTimeWithZ, TransactionResponse
from esg_registry.domain.models.data_types import DataTypeDescriptor
from esg_registry.domain.models.ledger import LedgerRecord, TxResult
from esg_registry.domain.models.merged_view import MergedRecordView
from esg_registry.domain.models.submission_record import (
    SubmissionRecord,
    VerificationStatus,
)


def transaction_response(result: TxResult) -> TransactionResponse:
    return TransactionResponse(
        transaction_id=result.transaction_id,
        included_block=result.included_block,
        fee_consumed=str(result.fee_consumed),
        fee_budget=str(result.fee_budget),
        fee_price=str(result.fee_price),
    )


class SubmitRecordRequest(BaseModel):
    """Metric submission. ``value`` is a decimal string, never a number."""

    data_type: str = Field(..., description="Data type from /v1/records/data-types")
    value: str = Field(..., description="Positive decimal as a string, e.g. \"1000\"")
    unit: str = Field(default="", max_length=64)
    reporting_period_start: date | None = None
    reporting_period_end: date | None = None
    comments: str = Field(default="", max_length=2000)
    metadata: dict[str, str] = Field(default_factory=dict)
    request_token: str | None = Field(default=None, max_length=128)


class OwnerSummary(BaseModel):
    participant_id: UUID
    address: str
    name: str


class LedgerProjectionResponse(BaseModel):
    record_id: str
    owner_address: str
    owner_name: str
    timestamp: DateTimeWithZ | None
    data_type: str
    value: str
    unit: str
    content_hash: str
    verifier_address: str | None
    is_verified: bool
    comments: str

    @classmethod
    def from_domain(cls, projection: LedgerRecord) -> LedgerProjectionResponse:
        return cls(
            record_id=str(projection.record_id),
            owner_address=projection.owner_address,
            owner_name=projection.owner_name,
            timestamp=projection.timestamp,
            data_type=projection.data_type,
            value=projection.value,
            unit=projection.unit,
            content_hash=projection.content_hash,
            verifier_address=projection.verifier_address,
            is_verified=projection.is_verified,
            comments=projection.comments,
        )


class RecordResponse(BaseModel):
    ledger_record_id: str
    transaction_id: str
    owner: OwnerSummary | None
    owner_address: str
    data_type: str
    value: str
    unit: str
    document_hash: str
    reporting_period_start: date | None
    reporting_period_end: date | None
    comments: str
    metadata: dict[str, str]
    verification_status: VerificationStatus
    verified: bool
    verifier_id: UUID | None
    verified_at: DateTimeWithZ | None
    verification_comments: str
    submitted_at: DateTimeWithZ

    @classmethod
    def from_domain(cls, record: SubmissionRecord) -> RecordResponse:
        owner = None
        if record.owner is not None:
            owner = OwnerSummary(
                participant_id=record.owner.participant_id,
                address=record.owner.address,
                name=record.owner.name,
            )
        return cls(
            ledger_record_id=str(record.ledger_record_id),
            transaction_id=record.transaction_id,
            owner=owner,
            owner_address=record.owner_address,
            data_type=record.data_type.value,
            value=record.value,
            unit=record.unit,
            document_hash=record.document_hash,
            reporting_period_start=record.reporting_period.start,
            reporting_period_end=record.reporting_period.end,
            comments=record.comments,
            metadata=dict(record.metadata),
            verification_status=record.verification_status,
            verified=record.verified,
            verifier_id=record.verifier_id,
            verified_at=record.verified_at,
            verification_comments=record.verification_comments,
            submitted_at=record.submitted_at,
        )


class MergedRecordResponse(BaseModel):
    """Mirror row plus ledger projection.

    ``ledger`` is null when the ledger read failed for this row.
    """

    record: RecordResponse
    ledger: LedgerProjectionResponse | None
    divergent_fields: list[str]

    @classmethod
    def from_domain(cls, view: MergedRecordView) -> MergedRecordResponse:
        return cls(
            record=RecordResponse.from_domain(view.record),
            ledger=(
                LedgerProjectionResponse.from_domain(view.ledger_projection)
                if view.ledger_projection is not None
                else None
            ),
            divergent_fields=list(view.divergent_fields),
        )


class SubmitRecordResponse(BaseModel):
    record: RecordResponse
    transaction: TransactionResponse


class VerifyRecordRequest(BaseModel):
    approved: bool
    comments: str = Field(default="", max_length=2000)
    request_token: str | None = Field(default=None, max_length=128)


class VerifyRecordResponse(BaseModel):
    record: RecordResponse
    transaction: TransactionResponse


class DataTypeResponse(BaseModel):
    value: str
    label: str
    description: str
    units: list[str]

    @classmethod
    def from_domain(cls, descriptor: DataTypeDescriptor) -> DataTypeResponse:
        return cls(
            value=descriptor.data_type.value,
            label=descriptor.label,
            description=descriptor.description,
            units=list(descriptor.units),
        )


class StatsResponse(BaseModel):
    ledger_participants: int | None
    ledger_records: int | None
    total_records: int
    verified_records: int
    pending_records: int
    rejected_records: int
    verification_rate: str
    total_companies: int
    total_verifiers: int


class ReconciliationResponse(BaseModel):
    owner_address: str
    consistent: bool
    ledger_record_ids: list[str]
    unmirrored_ids: list[str]
    unreadable_ids: list[str]
    divergent: list[MergedRecordResponse]
