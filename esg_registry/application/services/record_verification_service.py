"""Record verification pipeline.

States: CHECKING -> SUBMITTING -> UPDATING -> UPDATED

The "not already reviewed" check reads the mirror only. A stale mirror
lets a second review through to the ledger, which rejects it; that
``already verified`` revert is reported as AlreadyVerifiedError.

After inclusion the mirror row is updated to the declared outcome without
re-reading the ledger. ``approved=False`` records a rejection: the row
stays unverified but carries the reviewer and review time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from uuid import UUID

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
    AlreadyVerifiedError,
    LedgerRevertError,
    MirrorWriteFailureError,
    ParticipantNotFoundError,
    RecordNotFoundError,
    UnauthorizedRoleError,
)
from esg_registry.domain.models.ledger import TxResult
from esg_registry.domain.models.participant import VERIFICATION_ROLES
from esg_registry.domain.models.submission_record import SubmissionRecord
from esg_registry.domain.services.revert_classifier import RevertKind, classify_revert

VERIFY_METHOD = "verifyRecord"


class VerificationState(str, Enum):
    CHECKING = "checking"
    SUBMITTING = "submitting"
    UPDATING = "updating"
    UPDATED = "updated"


@dataclass(frozen=True)
class VerificationOutcome:
    state: VerificationState
    record: SubmissionRecord
    tx_result: TxResult


class RecordVerificationService(LoggingMixin):
    """Records a verifier's review on the ledger and in the mirror."""

    def __init__(
        self,
        orchestrator: TransactionOrchestrator,
        participants: ParticipantRepositoryProtocol,
        store: ReconciliationStore,
    ) -> None:
        self._orchestrator = orchestrator
        self._participants = participants
        self._store = store
        self._init_logger(component="pipeline")

    async def verify(
        self,
        verifier_id: UUID,
        ledger_record_id: int,
        approved: bool,
        comments: str = "",
        request_token: str | None = None,
    ) -> VerificationOutcome:
        """Approve or reject a record.

        Raises:
            ParticipantNotFoundError: Unknown verifier.
            UnauthorizedRoleError: Caller is neither verifier nor admin.
            RecordNotFoundError: No mirror row for ``ledger_record_id``.
            AlreadyVerifiedError: The record was already reviewed.
            LedgerUnavailableError: Ledger unreachable, or inclusion not
                observed in time (outcome unknown).
            LedgerRevertError: Ledger rejected the review.
            InsufficientFundsError: Verifier cannot pay the fee.
            MirrorWriteFailureError: Ledger holds the review, mirror does not.
        """
        log = self._log_operation(
            "verify",
            verifier_id=str(verifier_id),
            ledger_record_id=ledger_record_id,
            approved=approved,
        )
        log.debug("state_transition", state=VerificationState.CHECKING.value)

        verifier = await self._participants.get_by_id(verifier_id)
        if verifier is None:
            raise ParticipantNotFoundError(verifier_id)
        if not verifier.can_verify:
            raise UnauthorizedRoleError(
                verifier.role.value, tuple(role.value for role in VERIFICATION_ROLES)
            )

        record = await self._store.get_by_ledger_id(ledger_record_id)
        if record is None:
            raise RecordNotFoundError(ledger_record_id)
        if record.is_reviewed:
            raise AlreadyVerifiedError(
                ledger_record_id, record.verification_status.value
            )

        intent = build_intent(
            VERIFY_METHOD,
            (ledger_record_id, approved, comments),
            sender=verifier.address,
            request_token=request_token,
        )
        log.debug("state_transition", state=VerificationState.SUBMITTING.value)
        try:
            tx_result = await self._orchestrator.execute(intent)
        except LedgerRevertError as exc:
            if classify_revert(exc.reason) is RevertKind.ALREADY_VERIFIED:
                log.info("verification_rejected_by_ledger", reason=exc.reason)
                raise AlreadyVerifiedError(ledger_record_id) from exc
            raise

        log = log.bind(transaction_id=tx_result.transaction_id)
        log.debug("state_transition", state=VerificationState.UPDATING.value)
        reviewed = record.with_verification(
            approved=approved,
            verifier_id=verifier.participant_id,
            verified_at=datetime.now(timezone.utc),
            comments=comments,
        )
        try:
            saved = await self._store.upsert_mirror(reviewed)
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
            "record_reviewed",
            verification_status=saved.verification_status.value,
            included_block=tx_result.included_block,
        )
        return VerificationOutcome(
            state=VerificationState.UPDATED,
            record=saved.with_owner(record.owner),
            tx_result=tx_result,
        )
