"""Verification API routes (verifier and admin callers)."""

from fastapi import APIRouter, Depends, Request

from esg_registry.api.dependencies import get_container, get_current_participant
from esg_registry.api.errors import problem_exception
from esg_registry.api.models import (
    MergedRecordResponse,
    RecordResponse,
    VerifyRecordRequest,
    VerifyRecordResponse,
    transaction_response,
)
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import RegistryError, UnauthorizedRoleError
from esg_registry.domain.models.participant import VERIFICATION_ROLES, Participant

router = APIRouter(prefix="/v1/verification", tags=["verification"])


def _require_verifier(caller: Participant, request: Request) -> None:
    if not caller.can_verify:
        raise problem_exception(
            UnauthorizedRoleError(
                caller.role.value, tuple(role.value for role in VERIFICATION_ROLES)
            ),
            request,
        )


@router.get("/pending", response_model=list[MergedRecordResponse])
async def list_pending(
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> list[MergedRecordResponse]:
    _require_verifier(caller, request)
    views = await container.queries.list_pending()
    return [MergedRecordResponse.from_domain(v) for v in views]


@router.get("/all", response_model=list[MergedRecordResponse])
async def list_all(
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> list[MergedRecordResponse]:
    """Most recent records (up to 100) regardless of status."""
    _require_verifier(caller, request)
    views = await container.queries.list_recent()
    return [MergedRecordResponse.from_domain(v) for v in views]


@router.post("/{ledger_record_id}", response_model=VerifyRecordResponse)
async def verify_record(
    ledger_record_id: int,
    body: VerifyRecordRequest,
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> VerifyRecordResponse:
    """Approve or reject a record (409 when it was already reviewed)."""
    try:
        outcome = await container.verification.verify(
            caller.participant_id,
            ledger_record_id,
            approved=body.approved,
            comments=body.comments,
            request_token=body.request_token,
        )
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return VerifyRecordResponse(
        record=RecordResponse.from_domain(outcome.record),
        transaction=transaction_response(outcome.tx_result),
    )
