"""Domain models for the ESG Registry.

Contains value objects and domain models that represent
core business concepts. These models are immutable and
contain no infrastructure dependencies.
"""

from esg_registry.domain.models.data_types import (
    DATA_TYPE_CATALOG,
    DataType,
    DataTypeDescriptor,
)
from esg_registry.domain.models.ledger import (
    LedgerEvent,
    LedgerRecord,
    TxReceipt,
    TxResult,
    decode_ledger_record,
    normalize_ledger_value,
)
from esg_registry.domain.models.merged_view import MergedRecordView
from esg_registry.domain.models.participant import (
    Participant,
    ParticipantRole,
    normalize_address,
)
from esg_registry.domain.models.submission_record import (
    ReportingPeriod,
    SubmissionRecord,
    VerificationStatus,
)

__all__: list[str] = [
    "DATA_TYPE_CATALOG",
    "DataType",
    "DataTypeDescriptor",
    "LedgerEvent",
    "LedgerRecord",
    "MergedRecordView",
    "Participant",
    "ParticipantRole",
    "ReportingPeriod",
    "SubmissionRecord",
    "TxReceipt",
    "TxResult",
    "VerificationStatus",
    "decode_ledger_record",
    "normalize_address",
    "normalize_ledger_value",
]
