"""
Pytest configuration and shared fixtures for ESG Registry tests.

Testing Standards:
- Async tests run in asyncio auto mode (see pyproject.toml)
- Use AsyncMock for async collaborators
- Unit tests go in tests/unit/<layer>/
- Integration tests go in tests/integration/ and are marked ``integration``
"""

from collections.abc import Iterator

import pytest
import structlog

from esg_registry.bootstrap.container import Container, build_container
from esg_registry.config.ledger_config import (
    TEST_LEDGER_CONFIG,
    FeeConfig,
    RuntimeConfig,
)
from esg_registry.infrastructure.stubs import (
    LedgerClientStub,
    ParticipantRepositoryStub,
    SubmissionRepositoryStub,
)


@pytest.fixture(autouse=True)
def _reset_structlog() -> Iterator[None]:
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def anyio_backend() -> str:
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def project_version() -> str:
    """Provide the current project version for tests."""
    from esg_registry import __version__

    return __version__


@pytest.fixture
def ledger() -> LedgerClientStub:
    """Provide an empty in-memory ledger."""
    return LedgerClientStub()


@pytest.fixture
def participants() -> ParticipantRepositoryStub:
    """Provide an empty participant repository stub."""
    return ParticipantRepositoryStub()


@pytest.fixture
def submissions(participants: ParticipantRepositoryStub) -> SubmissionRepositoryStub:
    """Provide a submission repository stub that populates owners."""
    return SubmissionRepositoryStub(participants)


@pytest.fixture
def container(
    ledger: LedgerClientStub,
    participants: ParticipantRepositoryStub,
    submissions: SubmissionRepositoryStub,
) -> Container:
    """Provide a fully wired container over the stubs."""
    return build_container(
        runtime=RuntimeConfig(),
        ledger_config=TEST_LEDGER_CONFIG,
        fee_config=FeeConfig(),
        ledger=ledger,
        participants=participants,
        submissions=submissions,
    )
