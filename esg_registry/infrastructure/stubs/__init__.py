"""In-memory stub implementations of the application ports.

Used in development (``LEDGER_BACKEND=stub``, ``MIRROR_BACKEND=stub``) and
throughout the unit tests.
"""

from esg_registry.infrastructure.stubs.ledger_client_stub import (
    DEFAULT_STUB_PRICE,
    SIMULATED_COSTS,
    LedgerClientStub,
    SentCall,
)
from esg_registry.infrastructure.stubs.mirror_repository_stub import (
    ParticipantRepositoryStub,
    SubmissionRepositoryStub,
)

__all__: list[str] = [
    "DEFAULT_STUB_PRICE",
    "LedgerClientStub",
    "ParticipantRepositoryStub",
    "SIMULATED_COSTS",
    "SentCall",
    "SubmissionRepositoryStub",
]
