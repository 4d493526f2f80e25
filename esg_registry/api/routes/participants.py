"""Participant API routes.

Creation and profile updates are off-chain only. Ledger registration runs
the CompanyRegistration pipeline for the calling participant.
"""

from fastapi import APIRouter, Depends, Request

from esg_registry.api.dependencies import get_container, get_current_participant
from esg_registry.api.errors import problem_exception
from esg_registry.api.models import (
    CreateParticipantRequest,
    LedgerStatusResponse,
    ParticipantResponse,
    RegistrationRequest,
    RegistrationResponse,
    UpdateProfileRequest,
    transaction_response,
)
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import RegistryError
from esg_registry.domain.models.participant import Participant

router = APIRouter(prefix="/v1/participants", tags=["participants"])


@router.post("", response_model=ParticipantResponse, status_code=201)
async def create_participant(
    body: CreateParticipantRequest,
    request: Request,
    container: Container = Depends(get_container),
) -> ParticipantResponse:
    """Create an off-chain participant (400 on bad or duplicate address)."""
    try:
        participant = await container.participant_service.create(
            address=body.address,
            name=body.name,
            external_id=body.external_id,
            role=body.role,
        )
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return ParticipantResponse.from_domain(participant)


@router.patch("/me", response_model=ParticipantResponse)
async def update_profile(
    body: UpdateProfileRequest,
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> ParticipantResponse:
    try:
        participant = await container.participant_service.update_profile(
            caller.participant_id, name=body.name, external_id=body.external_id
        )
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return ParticipantResponse.from_domain(participant)


@router.post(
    "/me/ledger-registration",
    response_model=RegistrationResponse,
    status_code=201,
    summary="Register the caller on the ledger",
)
async def register_on_ledger(
    request: Request,
    body: RegistrationRequest | None = None,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> RegistrationResponse:
    """Run CompanyRegistration.

    Raises:
        HTTPException 409: Already registered (cache or ledger).
        HTTPException 503: Ledger unavailable; when the problem carries a
            ``transaction_id`` the outcome is unknown and the request must
            not be repeated blindly.
    """
    token = body.request_token if body else None
    try:
        outcome = await container.registration.register(
            caller.participant_id, request_token=token
        )
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return RegistrationResponse(
        participant=ParticipantResponse.from_domain(outcome.participant),
        transaction=transaction_response(outcome.tx_result),
    )


@router.get("/me/ledger-status", response_model=LedgerStatusResponse)
async def ledger_status(
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> LedgerStatusResponse:
    try:
        status = await container.queries.ledger_status(caller.participant_id)
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return LedgerStatusResponse(
        address=status.address,
        ledger_registered=status.ledger_registered,
        cache_updated=status.cache_updated,
    )
