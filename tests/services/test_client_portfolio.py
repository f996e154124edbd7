"""Tests for ClientPortfolioService: invite, invite link, toggle, remove."""

from datetime import date
from urllib.parse import parse_qs, urlsplit

import pytest

from portal_kernel.domain.entities import ClientStatus
from portal_kernel.exceptions import (
    ClientRecordNotFoundError,
    DuplicateEmailError,
    InvalidTransitionError,
)
from portal_kernel.services.portfolio_service import ClientPortfolioService


class TestInviteClient:
    def test_creates_invited_record(self, store, portfolio, accountant):
        invitation = portfolio.invite_client(
            "a1",
            company_name=" Acme ",
            contact_person="Carla Acme",
            email=" c@acme.pt ",
            tax_id="500100200",
            next_deadline=date(2024, 6, 20),
        )

        record = invitation.record
        assert store.client_records["a1"][record.id] == record
        assert record.status == ClientStatus.INVITED
        assert record.pending_document_count == 0
        assert record.company_name == "Acme"
        assert record.email == "c@acme.pt"
        assert record.next_deadline == date(2024, 6, 20)
        assert record.linked_user_id is None

    def test_missing_tax_id_placeholder(self, invite):
        assert invite(tax_id=None).tax_id == "N/A"
        assert invite(email="b@acme.pt", tax_id="  ").tax_id == "N/A"

    def test_duplicate_within_accountant_rejected(self, store, invite):
        invite(email="c@acme.pt")
        with pytest.raises(DuplicateEmailError) as exc_info:
            invite(email="C@ACME.pt")
        assert exc_info.value.scope == "clients of a1"
        assert len(store.records_of("a1")) == 1

    def test_same_email_allowed_for_other_accountant(self, store, invite, other_accountant):
        invite(email="c@acme.pt")
        invite(email="c@acme.pt", accountant_id=other_accountant.id)
        assert len(store.records_of("a2")) == 1

    def test_counter_starts_at_live_pending_count(self, invite, register_client, upload):
        user = register_client(email="c@acme.pt")
        upload(user.id)
        upload(user.id, title="Fatura 002")

        record = invite(email="c@acme.pt")

        assert record.pending_document_count == 2
        assert record.status == ClientStatus.INVITED

    def test_invitation_link(self, portfolio, accountant):
        invitation = portfolio.invite_client(
            "a1", company_name="Acme", contact_person="Carla", email="c@acme.pt"
        )
        parts = urlsplit(invitation.link)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://contaportal.pt/login"
        query = parse_qs(parts.query)
        assert query == {"invitedBy": ["O Seu Contabilista"], "email": ["c@acme.pt"]}
        assert "+" not in invitation.link

    def test_custom_link_settings(self, store, accountant):
        service = ClientPortfolioService(
            store,
            invite_base_url="https://portal.example/entrar",
            inviter_display_name="Gabinete Silva",
        )
        link = service.build_invite_link("c@acme.pt")
        assert link == "https://portal.example/entrar?invitedBy=Gabinete%20Silva&email=c%40acme.pt"


class TestInviteLink:
    def test_reissue_for_invited_record(self, portfolio, invite):
        record = invite()
        assert portfolio.invite_link("a1", record.id).endswith("email=c%40acme.pt")

    def test_no_link_once_active(self, portfolio, invite, register_client):
        record = invite()
        register_client()
        with pytest.raises(InvalidTransitionError):
            portfolio.invite_link("a1", record.id)

    def test_other_accountants_record_is_not_found(self, portfolio, invite, other_accountant):
        record = invite()
        with pytest.raises(ClientRecordNotFoundError) as exc_info:
            portfolio.invite_link("a2", record.id)
        assert exc_info.value.accountant_id == "a2"


class TestToggleClientStatus:
    def test_active_to_inactive_and_back(self, portfolio, invite, register_client, record_of):
        record = invite()
        register_client()

        assert portfolio.toggle_client_status("a1", record.id).status == ClientStatus.INACTIVE
        assert portfolio.toggle_client_status("a1", record.id).status == ClientStatus.ACTIVE
        assert record_of(record.id).status == ClientStatus.ACTIVE

    def test_invited_cannot_toggle(self, portfolio, invite, record_of):
        record = invite()
        with pytest.raises(InvalidTransitionError) as exc_info:
            portfolio.toggle_client_status("a1", record.id)
        assert exc_info.value.to_status == "TOGGLE"
        assert record_of(record.id).status == ClientStatus.INVITED

    def test_unknown_record(self, portfolio, accountant):
        with pytest.raises(ClientRecordNotFoundError):
            portfolio.toggle_client_status("a1", "c404")

    def test_toggle_logs_transition(self, captured_logs, portfolio, invite, register_client):
        record = invite()
        register_client()
        portfolio.toggle_client_status("a1", record.id)

        toggled = next(r for r in captured_logs() if r["message"] == "client_status_toggled")
        assert toggled["from_status"] == "ACTIVE"
        assert toggled["to_status"] == "INACTIVE"
        assert toggled["entity_id"] == record.id


class TestRemoveClient:
    def test_removes_only_the_owners_record(self, store, portfolio, invite, other_accountant):
        mine = invite()
        theirs = invite(accountant_id=other_accountant.id)

        removed = portfolio.remove_client("a1", mine.id)

        assert removed == mine
        assert mine.id not in store.client_records["a1"]
        assert store.client_records["a2"][theirs.id] == theirs

    def test_cannot_remove_other_accountants_record(self, store, portfolio, invite, other_accountant):
        theirs = invite(accountant_id=other_accountant.id)
        with pytest.raises(ClientRecordNotFoundError):
            portfolio.remove_client("a1", theirs.id)
        assert theirs.id in store.client_records["a2"]

    def test_removal_is_persisted(self, persistence, portfolio, invite):
        record = invite()
        portfolio.remove_client("a1", record.id)
        assert persistence.stored("client_records") == {"a1": []}
