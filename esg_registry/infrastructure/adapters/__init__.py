"""Production adapters for the application ports.

- Web3LedgerClient: LedgerClientProtocol over web3.py JSON-RPC
- SqlParticipantRepository, SqlSubmissionRepository: mirror store on
  SQLAlchemy async (PostgreSQL via asyncpg)
"""

from esg_registry.infrastructure.adapters.sqlalchemy_mirror import (
    SqlParticipantRepository,
    SqlSubmissionRepository,
    create_schema,
    metadata,
)
from esg_registry.infrastructure.adapters.web3_ledger_client import (
    Web3LedgerClient,
    load_contract_abi,
    translate_error,
)

__all__: list[str] = [
    "SqlParticipantRepository",
    "SqlSubmissionRepository",
    "Web3LedgerClient",
    "create_schema",
    "load_contract_abi",
    "metadata",
    "translate_error",
]
