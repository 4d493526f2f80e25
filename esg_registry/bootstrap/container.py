"""Explicit dependency container.

Every adapter and service is built once here and passed down by
constructor. Nothing is looked up from module globals; the API stores the
container on ``app.state``.

Adapter selection (RuntimeConfig):
- LEDGER_BACKEND=stub -> LedgerClientStub, web3 -> Web3LedgerClient
- MIRROR_BACKEND=stub -> in-memory repositories, sql -> SQLAlchemy repositories

Usage:
    container = build_container()
    outcome = await container.submission.submit(owner_id, request)
    await container.close()
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from structlog import get_logger

from esg_registry.application.ports.ledger_client import LedgerClientProtocol
from esg_registry.application.ports.mirror_repository import (
    ParticipantRepositoryProtocol,
    SubmissionRepositoryProtocol,
)
from esg_registry.application.services import (
    CompanyRegistrationService,
    ESGSubmissionService,
    FeeEstimator,
    ParticipantService,
    ReconciliationStore,
    RecordVerificationService,
    RegistryQueryService,
    TransactionOrchestrator,
)
from esg_registry.bootstrap.database import create_session_factory
from esg_registry.config.ledger_config import FeeConfig, LedgerConfig, RuntimeConfig
from esg_registry.infrastructure.stubs import (
    LedgerClientStub,
    ParticipantRepositoryStub,
    SubmissionRepositoryStub,
)

logger = get_logger()


@dataclass
class Container:
    """All wired components of one process."""

    runtime: RuntimeConfig
    ledger_config: LedgerConfig
    fee_config: FeeConfig
    ledger: LedgerClientProtocol
    participants: ParticipantRepositoryProtocol
    submissions: SubmissionRepositoryProtocol
    fee_estimator: FeeEstimator
    orchestrator: TransactionOrchestrator
    store: ReconciliationStore
    participant_service: ParticipantService
    registration: CompanyRegistrationService
    submission: ESGSubmissionService
    verification: RecordVerificationService
    queries: RegistryQueryService
    engine: AsyncEngine | None = None

    async def close(self) -> None:
        """Release pooled database connections."""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None


def load_dotenv_file(path: str | None = None) -> None:
    """Load variables from a .env file without overriding the environment."""
    from dotenv import load_dotenv

    load_dotenv(dotenv_path=path, override=False)


def _build_ledger(runtime: RuntimeConfig, config: LedgerConfig) -> LedgerClientProtocol:
    if runtime.ledger_backend == "web3":
        from esg_registry.infrastructure.adapters.web3_ledger_client import (
            Web3LedgerClient,
        )

        return Web3LedgerClient(config)
    return LedgerClientStub()


def _build_mirror(
    runtime: RuntimeConfig,
    session_factory: async_sessionmaker[AsyncSession] | None,
) -> tuple[ParticipantRepositoryProtocol, SubmissionRepositoryProtocol, AsyncEngine | None]:
    if runtime.mirror_backend == "sql":
        from esg_registry.infrastructure.adapters.sqlalchemy_mirror import (
            SqlParticipantRepository,
            SqlSubmissionRepository,
        )

        engine: AsyncEngine | None = None
        if session_factory is None:
            engine, session_factory = create_session_factory()
        return (
            SqlParticipantRepository(session_factory),
            SqlSubmissionRepository(session_factory),
            engine,
        )
    participants = ParticipantRepositoryStub()
    return participants, SubmissionRepositoryStub(participants), None


def build_container(
    runtime: RuntimeConfig | None = None,
    ledger_config: LedgerConfig | None = None,
    fee_config: FeeConfig | None = None,
    ledger: LedgerClientProtocol | None = None,
    participants: ParticipantRepositoryProtocol | None = None,
    submissions: SubmissionRepositoryProtocol | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> Container:
    """Build the container.

    Configuration defaults to the environment. Explicitly passed adapters
    win over the configured backends, which is how tests inject stubs.
    """
    runtime = runtime or RuntimeConfig.from_environment()
    ledger_config = ledger_config or LedgerConfig.from_environment()
    fee_config = fee_config or FeeConfig.from_environment()

    ledger = ledger or _build_ledger(runtime, ledger_config)
    engine: AsyncEngine | None = None
    if participants is None or submissions is None:
        built_participants, built_submissions, engine = _build_mirror(
            runtime, session_factory
        )
        participants = participants or built_participants
        submissions = submissions or built_submissions

    fee_estimator = FeeEstimator(ledger, fee_config)
    orchestrator = TransactionOrchestrator(
        ledger, fee_estimator, ledger_config.receipt_timeout_seconds
    )
    store = ReconciliationStore(submissions, ledger_config.merge_read_timeout_seconds)

    logger.bind(component="bootstrap").info(
        "container_built",
        environment=runtime.environment,
        ledger_backend=type(ledger).__name__,
        mirror_backend=type(submissions).__name__,
    )
    return Container(
        runtime=runtime,
        ledger_config=ledger_config,
        fee_config=fee_config,
        ledger=ledger,
        participants=participants,
        submissions=submissions,
        fee_estimator=fee_estimator,
        orchestrator=orchestrator,
        store=store,
        participant_service=ParticipantService(participants),
        registration=CompanyRegistrationService(ledger, orchestrator, participants),
        submission=ESGSubmissionService(ledger, orchestrator, participants, store),
        verification=RecordVerificationService(orchestrator, participants, store),
        queries=RegistryQueryService(ledger, participants, store),
        engine=engine,
    )
