"""
Pytest fixtures for the portal kernel test suite.

Provides:
- Structured logging configured for every test, plus ``captured_logs``
- Deterministic clock and sequential identifier sources
- An in-memory store wired to every kernel service in strict mode, so a
  command that breaks an invariant fails the test through
  ``InvariantViolationError``
- Builders for the accountant / invited client fixtures most tests start from
"""

import json
import logging
from io import StringIO

import pytest

from portal_kernel.domain.clock import DeterministicClock
from portal_kernel.domain.entities import FileMeta, UserAccount, UserRole
from portal_kernel.domain.identifiers import SequentialIdentifierSource
from portal_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from portal_kernel.services.portal import Portal
from portal_kernel.services.portfolio_service import ClientPortfolioService
from portal_kernel.services.session_controller import SessionController
from portal_kernel.services.sync_engine import SynchronizationEngine
from portal_kernel.store.entity_store import EntityStore
from portal_kernel.store.files import InMemoryFileStore
from portal_kernel.store.persistence import InMemoryPersistence

ACCOUNTANT_ID = "a1"
OTHER_ACCOUNTANT_ID = "a2"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture portal_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, engine):
            engine.register_user(...)
            logs = captured_logs()
            assert any(r["message"] == "user_registered" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("portal_kernel")
    previous_level = root.level
    # test_logging.py resets the hierarchy to WARNING between its tests.
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock and identifier fixtures
# =============================================================================


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock fixed at 2024-06-01 12:00 UTC."""
    return DeterministicClock()


@pytest.fixture
def persistence():
    return InMemoryPersistence()


@pytest.fixture
def store(persistence):
    """An empty store (no demo obligations) saving to ``persistence``."""
    return EntityStore.load(persistence, seed_demo_obligations=False)


@pytest.fixture
def ids(store):
    return SequentialIdentifierSource(taken=store.all_ids())


@pytest.fixture
def file_store():
    return InMemoryFileStore()


# =============================================================================
# Service fixtures
# =============================================================================


@pytest.fixture
def engine(store, deterministic_clock, ids, file_store):
    return SynchronizationEngine(
        store,
        clock=deterministic_clock,
        ids=ids,
        file_store=file_store,
        strict_invariants=True,
    )


@pytest.fixture
def portfolio(store, deterministic_clock, ids):
    return ClientPortfolioService(
        store,
        clock=deterministic_clock,
        ids=ids,
        strict_invariants=True,
    )


@pytest.fixture
def controller(engine):
    return SessionController(engine, latency_seconds=0.0)


@pytest.fixture
def portal(store, engine, portfolio, controller):
    return Portal(store, engine, portfolio, controller)


# =============================================================================
# Data builders
# =============================================================================


@pytest.fixture
def accountant(store):
    """Accountant ``a1``, stored directly so its id is predictable."""
    user = UserAccount(
        id=ACCOUNTANT_ID,
        name="Ana Contabilista",
        email="ana@contabilidade.pt",
        role=UserRole.ACCOUNTANT,
    )
    with store.transaction():
        store.put_user(user)
    return user


@pytest.fixture
def other_accountant(store):
    user = UserAccount(
        id=OTHER_ACCOUNTANT_ID,
        name="Rui Contas",
        email="rui@contas.pt",
        role=UserRole.ACCOUNTANT,
    )
    with store.transaction():
        store.put_user(user)
    return user


@pytest.fixture
def invite(portfolio, accountant):
    """Invite a client on behalf of ``a1`` and return the record."""

    def _invite(email="c@acme.pt", company_name="Acme", accountant_id=ACCOUNTANT_ID, **kwargs):
        invitation = portfolio.invite_client(
            accountant_id,
            company_name=company_name,
            contact_person=kwargs.pop("contact_person", "Carla Acme"),
            email=email,
            **kwargs,
        )
        return invitation.record

    return _invite


@pytest.fixture
def register_client(engine):
    def _register(name="Acme Lda", email="c@acme.pt", avatar_reference=None):
        return engine.register_user(
            name, email, "secret123", UserRole.CLIENT, avatar_reference
        )

    return _register


@pytest.fixture
def upload(engine):
    def _upload(user_id, title="Fatura 001", document_type="INVOICE", **kwargs):
        return engine.upload_document(
            user_id, FileMeta(title=title, **kwargs), document_type
        )

    return _upload


@pytest.fixture
def record_of(store):
    """Fetch the current version of a client record."""

    def _record_of(record_id, accountant_id=ACCOUNTANT_ID):
        return store.client_records[accountant_id][record_id]

    return _record_of
