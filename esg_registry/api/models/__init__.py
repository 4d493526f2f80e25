"""API request/response models."""

from esg_registry.api.models.health import HealthResponse
from esg_registry.api.models.participant import (
    CreateParticipantRequest,
    LedgerStatusResponse,
    ParticipantResponse,
    RegistrationRequest,
    RegistrationResponse,
    TransactionResponse,
    UpdateProfileRequest,
)
from esg_registry.api.models.records import (
    DataTypeResponse,
    MergedRecordResponse,
    ReconciliationResponse,
    RecordResponse,
    StatsResponse,
    SubmitRecordRequest,
    SubmitRecordResponse,
    VerifyRecordRequest,
    VerifyRecordResponse,
    transaction_response,
)

__all__: list[str] = [
    "CreateParticipantRequest",
    "DataTypeResponse",
    "HealthResponse",
    "LedgerStatusResponse",
    "MergedRecordResponse",
    "ParticipantResponse",
    "ReconciliationResponse",
    "RecordResponse",
    "RegistrationRequest",
    "RegistrationResponse",
    "StatsResponse",
    "SubmitRecordRequest",
    "SubmitRecordResponse",
    "TransactionResponse",
    "UpdateProfileRequest",
    "VerifyRecordRequest",
    "VerifyRecordResponse",
    "transaction_response",
]
