"""Tests for invariants.find_violations against hand-built inconsistent stores."""

from dataclasses import replace

import pytest

from portal_kernel.domain.entities import ClientRecord, ClientStatus, UserAccount, UserRole
from portal_kernel.exceptions import InvariantViolationError
from portal_kernel.invariants import PortalInvariant, find_violations
from portal_kernel.store.entity_store import EntityStore


def _record(record_id, email="c@acme.pt", status=ClientStatus.INVITED, count=0):
    return ClientRecord(
        id=record_id,
        owner_accountant_id="a1",
        company_name="Acme",
        tax_id="N/A",
        contact_person="Carla",
        email=email,
        status=status,
        pending_document_count=count,
    )


def _store(*records, users=()):
    store = EntityStore()
    with store.transaction():
        for user in users:
            store.put_user(user)
        for record in records:
            store.put_client_record(record)
    return store


def test_consistent_store_has_no_violations():
    user = UserAccount(id="u1", name="Acme", email="c@acme.pt", role=UserRole.CLIENT)
    assert find_violations(_store(_record("c1", status=ClientStatus.ACTIVE), users=[user])) == []


def test_duplicate_account_emails():
    users = [
        UserAccount(id="u1", name="A", email="c@acme.pt", role=UserRole.CLIENT),
        UserAccount(id="u2", name="B", email="C@ACME.PT", role=UserRole.ACCOUNTANT),
    ]
    violations = find_violations(_store(users=users))
    assert any(PortalInvariant.USER_EMAIL_GLOBALLY_UNIQUE.value in v for v in violations)


def test_duplicate_record_emails_within_accountant():
    violations = find_violations(_store(_record("c1"), _record("c2", email="C@acme.pt")))
    assert any(PortalInvariant.CLIENT_EMAIL_UNIQUE_PER_ACCOUNTANT.value in v for v in violations)


def test_active_record_without_client_account():
    violations = find_violations(_store(_record("c1", status=ClientStatus.ACTIVE)))
    assert violations == [
        f"{PortalInvariant.ACTIVE_RECORD_HAS_CLIENT_ACCOUNT.value}: c1 (c@acme.pt)"
    ]


def test_counter_drift():
    violations = find_violations(_store(_record("c1", count=3)))
    assert violations == [
        f"{PortalInvariant.PENDING_COUNT_MATCHES_DOCUMENTS.value}: c1 stores 3, live 0"
    ]


def test_strict_command_rolls_back_on_violation(store, engine, invite, record_of):
    record = invite()
    # Corrupt the record outside any command, then run a strict command.
    with store.transaction():
        store.put_client_record(replace(record_of(record.id), pending_document_count=5))

    with pytest.raises(InvariantViolationError) as exc_info:
        engine.register_user("Zeta", "z@zeta.pt", "secret123", UserRole.CLIENT)

    assert exc_info.value.command == "register_user"
    assert all(u.email != "z@zeta.pt" for u in store.users.values())
