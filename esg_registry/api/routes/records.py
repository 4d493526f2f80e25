"""Record API routes: submission and record reads."""

from fastapi import APIRouter, Depends, Request

from esg_registry.api.dependencies import get_container, get_current_participant
from esg_registry.api.errors import problem_exception
from esg_registry.api.models import (
    DataTypeResponse,
    MergedRecordResponse,
    RecordResponse,
    SubmitRecordRequest,
    SubmitRecordResponse,
    transaction_response,
)
from esg_registry.application.services import SubmissionRequest
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import RegistryError
from esg_registry.domain.models.participant import Participant

router = APIRouter(prefix="/v1/records", tags=["records"])


@router.get("/data-types", response_model=list[DataTypeResponse])
async def list_data_types(
    container: Container = Depends(get_container),
) -> list[DataTypeResponse]:
    return [DataTypeResponse.from_domain(d) for d in container.queries.data_types()]


@router.post("", response_model=SubmitRecordResponse, status_code=201)
async def submit_record(
    body: SubmitRecordRequest,
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> SubmitRecordResponse:
    """Run ESGSubmission for the caller.

    A 500 with kind ``mirror_write_failure`` or ``event_not_found`` means the
    ledger holds the record; do not resubmit.
    """
    try:
        outcome = await container.submission.submit(
            caller.participant_id,
            SubmissionRequest(
                data_type=body.data_type,
                value=body.value,
                unit=body.unit,
                reporting_period_start=body.reporting_period_start,
                reporting_period_end=body.reporting_period_end,
                comments=body.comments,
                metadata=body.metadata,
                request_token=body.request_token,
            ),
        )
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return SubmitRecordResponse(
        record=RecordResponse.from_domain(outcome.record),
        transaction=transaction_response(outcome.tx_result),
    )


@router.get("", response_model=list[MergedRecordResponse])
async def list_my_records(
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> list[MergedRecordResponse]:
    try:
        views = await container.queries.list_owner_records(caller.participant_id)
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return [MergedRecordResponse.from_domain(v) for v in views]


@router.get("/{ledger_record_id}", response_model=MergedRecordResponse)
async def get_record(
    ledger_record_id: int,
    request: Request,
    container: Container = Depends(get_container),
) -> MergedRecordResponse:
    try:
        view = await container.queries.get_record(ledger_record_id)
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return MergedRecordResponse.from_domain(view)
