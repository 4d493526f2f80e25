"""Statistics and reconciliation routes."""

from fastapi import APIRouter, Depends, Request

from esg_registry.api.dependencies import get_container, get_current_participant
from esg_registry.api.errors import problem_exception
from esg_registry.api.models import (
    MergedRecordResponse,
    ReconciliationResponse,
    StatsResponse,
)
from esg_registry.bootstrap.container import Container
from esg_registry.domain.errors import RegistryError
from esg_registry.domain.models.participant import Participant

router = APIRouter(prefix="/v1", tags=["stats"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(container: Container = Depends(get_container)) -> StatsResponse:
    """Ledger totals (null when the ledger is down) and mirror counts."""
    stats = await container.queries.stats()
    return StatsResponse(
        ledger_participants=stats.ledger_participants,
        ledger_records=stats.ledger_records,
        total_records=stats.total_records,
        verified_records=stats.verified_records,
        pending_records=stats.pending_records,
        rejected_records=stats.rejected_records,
        verification_rate=stats.verification_rate,
        total_companies=stats.total_companies,
        total_verifiers=stats.total_verifiers,
    )


@router.get("/reconciliation/{address}", response_model=ReconciliationResponse)
async def reconcile_owner(
    address: str,
    request: Request,
    caller: Participant = Depends(get_current_participant),
    container: Container = Depends(get_container),
) -> ReconciliationResponse:
    """Compare the ledger's records for ``address`` with the mirror (admin only)."""
    try:
        report = await container.queries.reconcile_owner(caller, address)
    except RegistryError as e:
        raise problem_exception(e, request) from None
    return ReconciliationResponse(
        owner_address=report.owner_address,
        consistent=report.is_consistent,
        ledger_record_ids=[str(i) for i in report.ledger_record_ids],
        unmirrored_ids=[str(i) for i in report.unmirrored_ids],
        unreadable_ids=[str(i) for i in report.unreadable_ids],
        divergent=[MergedRecordResponse.from_domain(v) for v in report.divergent],
    )
