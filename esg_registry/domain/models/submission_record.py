"""Submission record domain model (mirror row).

A SubmissionRecord mirrors one metric submission that the ledger has
already accepted. It is created only as the terminal step of a successful
submission and is mutated at most once, by verification.

Invariants:
- ``ledger_record_id`` and ``transaction_id`` never change once set
- ``value`` is an exact decimal string, never a float
- a reviewed record carries a verifier and a verification timestamp
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

from esg_registry.domain.errors import ValidationError
from esg_registry.domain.models.data_types import DataType

if TYPE_CHECKING:
    from esg_registry.domain.models.participant import Participant


class VerificationStatus(str, Enum):
    """Review outcome of a record.

    ``REJECTED`` is kept distinct from ``PENDING`` so that a reviewed and
    rejected record does not read the same as one nobody has looked at.
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass(frozen=True)
class ReportingPeriod:
    """Optional reporting window of a metric."""

    start: date | None = None
    end: date | None = None

    def __post_init__(self) -> None:
        if self.start and self.end and self.start > self.end:
            raise ValidationError(
                "Reporting period start must not be after its end",
                field="reporting_period",
            )


@dataclass(frozen=True, eq=True)
class SubmissionRecord:
    """Off-chain mirror row for one ledger record.

    Attributes:
        ledger_record_id: Identifier assigned by the ledger (RecordCreated).
        transaction_id: Transaction that created the ledger record.
        owner_id: Participant that submitted the record.
        owner_address: Ledger address of the owner at submission time.
        data_type: Metric category.
        value: Exact decimal string as submitted to the ledger.
        unit: Unit of measure (may be empty).
        document_hash: Hex content commitment of the canonical payload.
        reporting_period: Optional reporting window.
        comments: Submitter comments sent with the ledger call.
        metadata: Free-form string attributes kept off-chain only.
        verification_status: Review outcome.
        verifier_id: Participant that reviewed the record.
        verified_at: When the review was recorded (UTC).
        verification_comments: Reviewer comments sent with the ledger call.
        submitted_at: When the submission was persisted (UTC).
        owner: Owning participant, populated by listing queries only.
    """

    ledger_record_id: int
    transaction_id: str
    owner_id: UUID
    owner_address: str
    data_type: DataType
    value: str
    unit: str
    document_hash: str
    reporting_period: ReportingPeriod = field(default_factory=ReportingPeriod)
    comments: str = ""
    metadata: Mapping[str, str] = field(default_factory=dict)
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verifier_id: UUID | None = None
    verified_at: datetime | None = None
    verification_comments: str = ""
    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    owner: Participant | None = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.ledger_record_id < 0:
            raise ValidationError("Ledger record id must be non-negative")
        if not self.transaction_id:
            raise ValidationError("Transaction id is required")
        if not isinstance(self.value, str):
            raise ValidationError("Record value must be stored as a string", field="value")
        if self.is_reviewed and (self.verifier_id is None or self.verified_at is None):
            raise ValidationError(
                "A reviewed record requires a verifier and a verification timestamp"
            )

    @property
    def verified(self) -> bool:
        """True only for approved records."""
        return self.verification_status is VerificationStatus.APPROVED

    @property
    def is_reviewed(self) -> bool:
        return self.verification_status is not VerificationStatus.PENDING

    def with_verification(
        self,
        approved: bool,
        verifier_id: UUID,
        verified_at: datetime,
        comments: str = "",
    ) -> SubmissionRecord:
        """Return a copy carrying the declared review outcome."""
        status = VerificationStatus.APPROVED if approved else VerificationStatus.REJECTED
        return replace(
            self,
            verification_status=status,
            verifier_id=verifier_id,
            verified_at=verified_at,
            verification_comments=comments,
        )

    def with_owner(self, owner: Participant | None) -> SubmissionRecord:
        return replace(self, owner=owner)
