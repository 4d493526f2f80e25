"""ESG metric submission pipeline.

States: VALIDATING -> CHECKING_ELIGIBILITY -> SUBMITTING -> PERSISTING -> PERSISTED

A mirror row is written only after the ledger assigned a record id; the
mirror never holds a row the ledger does not. The reverse can happen: if
persisting fails after inclusion the ledger holds a record the mirror does
not, which is reported as MirrorWriteFailureError carrying both ids and is
found later by the reconciliation scan.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from uuid import UUID

from esg_registry.application.ports.ledger_client import LedgerClientProtocol
from esg_registry.application.ports.mirror_repository import (
    ParticipantRepositoryProtocol,
)
from esg_registry.application.services.base import LoggingMixin
from esg_registry.application.services.reconciliation_store import (
    ReconciliationStore,
)
from esg_registry.application.services.transaction_orchestrator import (
    TransactionOrchestrator,
    build_intent,
)
from esg_registry.domain.errors import (
    EventNotFoundError,
    LedgerRevertError,
    MirrorWriteFailureError,
    NotRegisteredOnLedgerError,
    ParticipantNotFoundError,
    ValidationError,
)
from esg_registry.domain.models.data_types import DataType
from esg_registry.domain.models.ledger import TxResult
from esg_registry.domain.models.participant import Participant
from esg_registry.domain.models.submission_record import (
    ReportingPeriod,
    SubmissionRecord,
)
from esg_registry.domain.services.content_commitment import (
    canonical_payload,
    compute_commitment,
)
from esg_registry.domain.services.revert_classifier import RevertKind, classify_revert

SUBMIT_METHOD = "submitRecord"
RECORD_CREATED_EVENT = "RecordCreated"
RECORD_ID_FIELD = "recordId"


class SubmissionState(str, Enum):
    VALIDATING = "validating"
    CHECKING_ELIGIBILITY = "checking_eligibility"
    SUBMITTING = "submitting"
    PERSISTING = "persisting"
    PERSISTED = "persisted"


@dataclass(frozen=True)
class SubmissionRequest:
    """Metric submission as received from the caller.

    Attributes:
        data_type: Data type name from the catalog.
        value: Positive decimal as a string.
        unit: Unit of measure.
        reporting_period_start: Optional first day of the reporting window.
        reporting_period_end: Optional last day of the reporting window.
        comments: Sent to the ledger with the record.
        metadata: Off-chain-only attributes.
        request_token: Unique attempt token; generated when omitted.
    """

    data_type: str
    value: str
    unit: str = ""
    reporting_period_start: date | None = None
    reporting_period_end: date | None = None
    comments: str = ""
    metadata: Mapping[str, str] = field(default_factory=dict)
    request_token: str | None = None


@dataclass(frozen=True)
class SubmissionOutcome:
    state: SubmissionState
    record: SubmissionRecord
    tx_result: TxResult


@dataclass(frozen=True)
class _ValidatedSubmission:
    data_type: DataType
    value: str
    unit: str
    reporting_period: ReportingPeriod


def validate_submission(request: SubmissionRequest) -> _ValidatedSubmission:
    """Check a submission request before anything touches the ledger.

    Raises:
        ValidationError: Missing or invalid data type, value or period.
    """
    if not request.data_type:
        raise ValidationError("Data type is required", field="data_type")
    try:
        data_type = DataType(request.data_type)
    except ValueError:
        raise ValidationError(
            f"Unknown data type: {request.data_type!r}", field="data_type"
        ) from None

    if not isinstance(request.value, str) or not request.value.strip():
        raise ValidationError("Value is required as a decimal string", field="value")
    value = request.value.strip()
    try:
        number = Decimal(value)
    except InvalidOperation:
        raise ValidationError(f"Value is not a decimal: {value!r}", field="value") from None
    if not number.is_finite():
        raise ValidationError("Value must be finite", field="value")
    if number <= 0:
        raise ValidationError("Value must be positive", field="value")

    period = ReportingPeriod(
        start=request.reporting_period_start,
        end=request.reporting_period_end,
    )
    return _ValidatedSubmission(
        data_type=data_type,
        value=value,
        unit=request.unit.strip(),
        reporting_period=period,
    )


class ESGSubmissionService(LoggingMixin):
    """Submits metrics to the ledger and mirrors them off-chain."""

    def __init__(
        self,
        ledger: LedgerClientProtocol,
        orchestrator: TransactionOrchestrator,
        participants: ParticipantRepositoryProtocol,
        store: ReconciliationStore,
    ) -> None:
        self._ledger = ledger
        self._orchestrator = orchestrator
        self._participants = participants
        self._store = store
        self._init_logger(component="pipeline")

    async def _ensure_registered(self, owner: Participant) -> Participant:
        if owner.ledger_registered:
            return owner
        if not await self._ledger.is_registered(owner.address):
            raise NotRegisteredOnLedgerError(owner.address)
        # Ledger confirms the registration; the cache was lagging.
        return await self._participants.save(owner.mark_ledger_registered())

    async def submit(self, owner_id: UUID, request: SubmissionRequest) -> SubmissionOutcome:
        """Run the submission pipeline for one metric.

        Raises:
            ValidationError: Invalid request.
            ParticipantNotFoundError: Unknown owner.
            NotRegisteredOnLedgerError: Owner not registered on the ledger.
            DuplicateSubmissionError: ``request_token`` already used.
            LedgerUnavailableError: Ledger unreachable, or inclusion not
                observed in time (outcome unknown).
            LedgerRevertError: Ledger rejected the record.
            InsufficientFundsError: Owner cannot pay the fee.
            EventNotFoundError: Included without ``RecordCreated``.
            MirrorWriteFailureError: Ledger holds the record, mirror does not.
        """
        log = self._log_operation("submit", owner_id=str(owner_id))
        log.debug("state_transition", state=SubmissionState.VALIDATING.value)
        validated = validate_submission(request)

        log.debug("state_transition", state=SubmissionState.CHECKING_ELIGIBILITY.value)
        owner = await self._participants.get_by_id(owner_id)
        if owner is None:
            raise ParticipantNotFoundError(owner_id)
        owner = await self._ensure_registered(owner)

        commitment = compute_commitment(
            canonical_payload(
                data_type=validated.data_type.value,
                value=validated.value,
                unit=validated.unit,
                owner_address=owner.address,
                reporting_period=validated.reporting_period,
            )
        )
        intent = build_intent(
            SUBMIT_METHOD,
            (
                validated.data_type.value,
                validated.value,
                validated.unit,
                commitment.digest,
                request.comments,
            ),
            sender=owner.address,
            expected_event=RECORD_CREATED_EVENT,
            id_field=RECORD_ID_FIELD,
            request_token=request.request_token,
        )

        log.debug("state_transition", state=SubmissionState.SUBMITTING.value)
        try:
            tx_result = await self._orchestrator.execute(intent)
        except LedgerRevertError as exc:
            if classify_revert(exc.reason) is RevertKind.NOT_REGISTERED:
                raise NotRegisteredOnLedgerError(owner.address) from exc
            raise

        ledger_record_id = tx_result.extracted_id
        if ledger_record_id is None:
            raise EventNotFoundError(
                transaction_id=tx_result.transaction_id,
                event_name=RECORD_CREATED_EVENT,
                field_name=RECORD_ID_FIELD,
            )
        log = log.bind(
            ledger_record_id=ledger_record_id,
            transaction_id=tx_result.transaction_id,
        )

        log.debug("state_transition", state=SubmissionState.PERSISTING.value)
        record = SubmissionRecord(
            ledger_record_id=ledger_record_id,
            transaction_id=tx_result.transaction_id,
            owner_id=owner.participant_id,
            owner_address=owner.address,
            data_type=validated.data_type,
            value=validated.value,
            unit=validated.unit,
            document_hash=commitment.hex,
            reporting_period=validated.reporting_period,
            comments=request.comments,
            metadata=dict(request.metadata),
        )
        try:
            saved = await self._store.upsert_mirror(record)
        except MirrorWriteFailureError as exc:
            log.error(
                "mirror_write_failure",
                error=exc.reason,
                action="manual_reconciliation_required",
            )
            raise MirrorWriteFailureError(
                reason=exc.reason,
                ledger_record_id=ledger_record_id,
                transaction_id=tx_result.transaction_id,
            ) from exc

        log.info(
            "record_submitted",
            data_type=validated.data_type.value,
            included_block=tx_result.included_block,
            fee_consumed=tx_result.fee_consumed,
        )
        return SubmissionOutcome(
            state=SubmissionState.PERSISTED,
            record=saved.with_owner(owner),
            tx_result=tx_result,
        )
