"""Company registration pipeline.

States: UNREGISTERED -> SUBMITTING -> REGISTERED

Preconditions:
- the cached ``ledger_registered`` flag is not set
- the ledger does not already hold a registration for the address
  (read-through: a positive ledger answer flips the cache and the request
  is refused without submitting)

Concurrent requests for the same address are not serialized here. The
ledger's own uniqueness rejects the second one, and its
``already registered`` revert is reported as AlreadyRegisteredError.

On any failure the participant is left unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from uuid import UUID

import structlog

from esg_registry.application.ports.ledger_client import LedgerClientProtocol
from esg_registry.application.ports.mirror_repository import (
    ParticipantRepositoryProtocol,
)
from esg_registry.application.services.base import LoggingMixin
from esg_registry.application.services.transaction_orchestrator import (
    TransactionIntent,
    TransactionOrchestrator,
    build_intent,
)
from esg_registry.domain.errors import (
    AlreadyRegisteredError,
    LedgerRevertError,
    LedgerUnavailableError,
    MirrorWriteFailureError,
    ParticipantNotFoundError,
    RegistryError,
)
from esg_registry.domain.models.ledger import TxResult
from esg_registry.domain.models.participant import Participant
from esg_registry.domain.services.revert_classifier import RevertKind, classify_revert

REGISTER_METHOD = "register"


class RegistrationState(str, Enum):
    UNREGISTERED = "unregistered"
    SUBMITTING = "submitting"
    REGISTERED = "registered"


@dataclass(frozen=True)
class RegistrationOutcome:
    """Result of a successful registration."""

    state: RegistrationState
    participant: Participant
    tx_result: TxResult


class CompanyRegistrationService(LoggingMixin):
    """Registers a participant's address on the ledger."""

    def __init__(
        self,
        ledger: LedgerClientProtocol,
        orchestrator: TransactionOrchestrator,
        participants: ParticipantRepositoryProtocol,
    ) -> None:
        self._ledger = ledger
        self._orchestrator = orchestrator
        self._participants = participants
        self._init_logger(component="pipeline")

    async def register(
        self, participant_id: UUID, request_token: str | None = None
    ) -> RegistrationOutcome:
        """Register the participant on the ledger.

        Args:
            participant_id: Participant to register.
            request_token: Unique attempt token; generated when omitted.

        Returns:
            RegistrationOutcome with the updated participant.

        Raises:
            ParticipantNotFoundError: Unknown participant.
            AlreadyRegisteredError: Cache or ledger shows a registration.
            LedgerUnavailableError: Ledger unreachable (before or after send).
            LedgerRevertError: Ledger rejected the registration.
            InsufficientFundsError: Sender cannot pay the fee.
            MirrorWriteFailureError: Registered on the ledger, but the cache
                flag could not be saved.
        """
        participant = await self._participants.get_by_id(participant_id)
        if participant is None:
            raise ParticipantNotFoundError(participant_id)

        log = self._log_operation(
            "register",
            participant_id=str(participant.participant_id),
            address=participant.address,
        )
        log.debug("state_transition", state=RegistrationState.UNREGISTERED.value)

        if participant.ledger_registered:
            raise AlreadyRegisteredError(participant.address)

        if await self._ledger.is_registered(participant.address):
            await self._participants.save(participant.mark_ledger_registered())
            log.info("registration_found_on_ledger", cache_updated=True)
            raise AlreadyRegisteredError(participant.address, detected_on_ledger=True)

        intent: TransactionIntent = build_intent(
            REGISTER_METHOD,
            (participant.name, participant.external_id),
            sender=participant.address,
            request_token=request_token,
        )
        log.debug("state_transition", state=RegistrationState.SUBMITTING.value)
        try:
            tx_result = await self._orchestrator.execute(intent)
        except LedgerRevertError as exc:
            if classify_revert(exc.reason) is RevertKind.ALREADY_REGISTERED:
                log.info("registration_rejected_by_ledger", reason=exc.reason)
                await self._mark_if_registered(participant, log)
                raise AlreadyRegisteredError(
                    participant.address, detected_on_ledger=True
                ) from exc
            raise

        registered = participant.mark_ledger_registered()
        try:
            registered = await self._participants.save(registered)
        except Exception as exc:
            detail = (
                exc.detail if isinstance(exc, RegistryError) else f"{type(exc).__name__}: {exc}"
            )
            log.error(
                "mirror_write_failure",
                transaction_id=tx_result.transaction_id,
                error=detail,
            )
            raise MirrorWriteFailureError(
                reason=f"participant registration flag not saved: {detail}",
                transaction_id=tx_result.transaction_id,
            ) from exc

        log.info(
            "participant_registered",
            transaction_id=tx_result.transaction_id,
            included_block=tx_result.included_block,
        )
        return RegistrationOutcome(
            state=RegistrationState.REGISTERED,
            participant=registered,
            tx_result=tx_result,
        )

    async def _mark_if_registered(
        self, participant: Participant, log: structlog.BoundLogger
    ) -> None:
        """Set the cache flag once the ledger confirms a competing registration."""
        try:
            confirmed = await self._ledger.is_registered(participant.address)
        except LedgerUnavailableError as exc:
            log.warning("registration_confirm_failed", error=exc.detail)
            return
        if not confirmed:
            return
        try:
            await self._participants.save(participant.mark_ledger_registered())
        except Exception as exc:
            detail = (
                exc.detail if isinstance(exc, RegistryError) else f"{type(exc).__name__}: {exc}"
            )
            log.error("mirror_write_failure", error=detail)
            return
        log.info("registration_found_on_ledger", cache_updated=True)
