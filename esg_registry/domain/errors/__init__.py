"""Domain errors for the ESG Registry.

Provides specific exception classes for different failure scenarios.
All exceptions inherit from RegistryError.
"""

from esg_registry.domain.errors.ledger import (
    EventNotFoundError,
    InsufficientFundsError,
    LedgerRevertError,
    LedgerUnavailableError,
)
from esg_registry.domain.errors.mirror import MirrorWriteFailureError
from esg_registry.domain.errors.precondition import (
    AlreadyRegisteredError,
    AlreadyVerifiedError,
    DuplicateSubmissionError,
    NotRegisteredOnLedgerError,
    ParticipantNotFoundError,
    PreconditionViolationError,
    RecordNotFoundError,
    UnauthorizedRoleError,
)
from esg_registry.domain.errors.validation import ValidationError
from esg_registry.domain.exceptions import RegistryError

__all__: list[str] = [
    "AlreadyRegisteredError",
    "AlreadyVerifiedError",
    "DuplicateSubmissionError",
    "EventNotFoundError",
    "InsufficientFundsError",
    "LedgerRevertError",
    "LedgerUnavailableError",
    "MirrorWriteFailureError",
    "NotRegisteredOnLedgerError",
    "ParticipantNotFoundError",
    "PreconditionViolationError",
    "RecordNotFoundError",
    "RegistryError",
    "UnauthorizedRoleError",
    "ValidationError",
]
