"""Application ports - Abstract interfaces for infrastructure adapters.

This module defines the contracts that infrastructure adapters must implement.
Ports enable dependency inversion and make the application layer testable.

Available ports:
- LedgerReaderProtocol: typed, side-effect-free ledger reads
- LedgerClientProtocol: reads, fee metering and transaction submission
- ParticipantRepositoryProtocol: participant persistence
- SubmissionRepositoryProtocol: submission mirror rows
"""

from esg_registry.application.ports.ledger_client import (
    LedgerClientProtocol,
    LedgerReaderProtocol,
)
from esg_registry.application.ports.mirror_repository import (
    ParticipantRepositoryProtocol,
    SubmissionRepositoryProtocol,
)

__all__: list[str] = [
    "LedgerClientProtocol",
    "LedgerReaderProtocol",
    "ParticipantRepositoryProtocol",
    "SubmissionRepositoryProtocol",
]
