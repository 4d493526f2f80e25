"""
Integration test configuration with testcontainers.

Provides a session-scoped PostgreSQL 16 container and per-test mirror
tables:
- the container is started once per test session
- each test gets freshly created tables, dropped again afterwards
- repositories commit their own sessions, so isolation is by schema reset
  rather than transaction rollback

Usage:
    @pytest.mark.integration
    async def test_example(sql_container: Container) -> None:
        ...

Note: Docker must be running for these fixtures to work.
"""

from collections.abc import AsyncGenerator, Generator

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from testcontainers.postgres import PostgresContainer

from esg_registry.bootstrap.container import Container, build_container
from esg_registry.bootstrap.database import normalize_database_url
from esg_registry.config.ledger_config import TEST_LEDGER_CONFIG, FeeConfig, RuntimeConfig
from esg_registry.infrastructure.adapters.sqlalchemy_mirror import (
    SqlParticipantRepository,
    SqlSubmissionRepository,
    create_schema,
    metadata,
)
from esg_registry.infrastructure.stubs import LedgerClientStub


@pytest.fixture(scope="session")
def postgres_container() -> Generator[PostgresContainer, None, None]:
    """Session-scoped PostgreSQL 16 container."""
    with PostgresContainer("postgres:16-alpine") as postgres:
        yield postgres


@pytest.fixture(scope="session")
def postgres_async_url(postgres_container: PostgresContainer) -> str:
    """Async-compatible connection URL.

    testcontainers returns a psycopg2 URL by default; convert it to asyncpg.
    """
    sync_url = postgres_container.get_connection_url()
    return normalize_database_url(sync_url.replace("postgresql+psycopg2://", "postgresql://"))


@pytest.fixture
async def engine(postgres_async_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """Per-test engine over freshly created mirror tables."""
    engine = create_async_engine(postgres_async_url, echo=False)
    await create_schema(engine)
    yield engine
    async with engine.begin() as connection:
        await connection.run_sync(metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sql_participants(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlParticipantRepository:
    return SqlParticipantRepository(session_factory)


@pytest.fixture
def sql_submissions(
    session_factory: async_sessionmaker[AsyncSession],
) -> SqlSubmissionRepository:
    return SqlSubmissionRepository(session_factory)


@pytest.fixture
def sql_container(
    ledger: LedgerClientStub,
    sql_participants: SqlParticipantRepository,
    sql_submissions: SqlSubmissionRepository,
) -> Container:
    """Container wiring the stub ledger to the PostgreSQL mirror."""
    return build_container(
        runtime=RuntimeConfig(mirror_backend="sql"),
        ledger_config=TEST_LEDGER_CONFIG,
        fee_config=FeeConfig(),
        ledger=ledger,
        participants=sql_participants,
        submissions=sql_submissions,
    )
