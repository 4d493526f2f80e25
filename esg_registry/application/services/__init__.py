"""Application services.

Leaves first:
- FeeEstimator: fee budget and price with degraded fallbacks
- TransactionOrchestrator: intent -> included transaction -> TxResult
- ReconciliationStore: mirror persistence, merge and reconciliation scan
- CompanyRegistrationService, ESGSubmissionService,
  RecordVerificationService: the state-changing pipelines
- ParticipantService, RegistryQueryService: off-chain profile and read paths
"""

from esg_registry.application.services.base import LoggingMixin
from esg_registry.application.services.company_registration_service import (
    CompanyRegistrationService,
    RegistrationOutcome,
    RegistrationState,
)
from esg_registry.application.services.esg_submission_service import (
    ESGSubmissionService,
    SubmissionOutcome,
    SubmissionRequest,
    SubmissionState,
    validate_submission,
)
from esg_registry.application.services.fee_estimator import FeeEstimator, FeeQuote
from esg_registry.application.services.participant_service import ParticipantService
from esg_registry.application.services.reconciliation_store import (
    ReconciliationReport,
    ReconciliationStore,
)
from esg_registry.application.services.record_verification_service import (
    RecordVerificationService,
    VerificationOutcome,
    VerificationState,
)
from esg_registry.application.services.registry_query_service import (
    LedgerStatus,
    RegistryQueryService,
    RegistryStats,
    verification_rate,
)
from esg_registry.application.services.transaction_orchestrator import (
    TransactionIntent,
    TransactionOrchestrator,
    build_intent,
    extract_event_field,
)

__all__: list[str] = [
    "CompanyRegistrationService",
    "ESGSubmissionService",
    "FeeEstimator",
    "FeeQuote",
    "LedgerStatus",
    "LoggingMixin",
    "ParticipantService",
    "ReconciliationReport",
    "ReconciliationStore",
    "RecordVerificationService",
    "RegistrationOutcome",
    "RegistrationState",
    "RegistryQueryService",
    "RegistryStats",
    "SubmissionOutcome",
    "SubmissionRequest",
    "SubmissionState",
    "TransactionIntent",
    "TransactionOrchestrator",
    "VerificationOutcome",
    "VerificationState",
    "build_intent",
    "extract_event_field",
    "validate_submission",
]
