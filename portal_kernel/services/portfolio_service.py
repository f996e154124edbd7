"""
ClientPortfolioService -- an accountant's management of its client records.

Covers the accountant-side commands that only touch the owner's own
collection: inviting a client company, re-issuing its invite link,
toggling it ACTIVE/INACTIVE, and removing it.

Invariants enforced:
    - A client email appears at most once per accountant; other
      accountants may hold a record for the same email.
    - The manual toggle never produces INVITED or OVERDUE, and a record
      only returns to ACTIVE while a CLIENT account matches its email.
    - Removal touches the owning accountant's collection only.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from urllib.parse import quote, urlencode

from portal_kernel.domain.clock import Clock
from portal_kernel.domain.entities import (
    ClientRecord,
    ClientStatus,
    UserRole,
    normalize_email,
)
from portal_kernel.domain.identifiers import CLIENT_PREFIX, IdentifierSource
from portal_kernel.domain.transitions import toggle_target
from portal_kernel.exceptions import (
    ClientRecordNotFoundError,
    DuplicateEmailError,
    InvalidTransitionError,
)
from portal_kernel.logging_config import get_logger
from portal_kernel.selectors.portfolio_selector import PortfolioSelector
from portal_kernel.services.base import BaseService
from portal_kernel.store.entity_store import EntityStore

logger = get_logger("services.portfolio_service")

DEFAULT_INVITE_BASE_URL = "https://contaportal.pt/login"
DEFAULT_INVITER_NAME = "O Seu Contabilista"
MISSING_TAX_ID = "N/A"


@dataclass(frozen=True)
class Invitation:
    """A freshly invited client record and the link to send it."""

    record: ClientRecord
    link: str


class ClientPortfolioService(BaseService):
    """Invite, toggle and remove an accountant's client records."""

    def __init__(
        self,
        store: EntityStore,
        clock: Clock | None = None,
        ids: IdentifierSource | None = None,
        strict_invariants: bool = False,
        invite_base_url: str = DEFAULT_INVITE_BASE_URL,
        inviter_display_name: str = DEFAULT_INVITER_NAME,
    ):
        super().__init__(store, clock, ids, strict_invariants)
        self.invite_base_url = invite_base_url
        self.inviter_display_name = inviter_display_name
        self.selector = PortfolioSelector(store)

    def _require_record(self, accountant_id: str, record_id: str) -> ClientRecord:
        record = self.store.client_records.get(accountant_id, {}).get(record_id)
        if record is None:
            raise ClientRecordNotFoundError(record_id, accountant_id)
        return record

    def build_invite_link(self, email: str) -> str:
        query = urlencode(
            {"invitedBy": self.inviter_display_name, "email": email},
            quote_via=quote,
        )
        return f"{self.invite_base_url}?{query}"

    def invite_client(
        self,
        accountant_id: str,
        company_name: str,
        contact_person: str,
        email: str,
        tax_id: str | None = None,
        next_deadline: date | None = None,
    ) -> Invitation:
        """
        Create an INVITED client record in the accountant's collection.

        The record becomes ACTIVE when an account with the same email
        registers, or at that account's next login if it already exists.
        Its pending counter starts at the live count of that account's
        PENDING documents.

        Raises:
            DuplicateEmailError: If this accountant already has a record
                for ``email``.
        """
        with self._command("invite_client", actor_id=accountant_id):
            key = normalize_email(email)
            if any(r.email_key == key for r in self.store.records_of(accountant_id)):
                raise DuplicateEmailError(email, scope=f"clients of {accountant_id}")

            record = ClientRecord(
                id=self.ids.next_id(CLIENT_PREFIX),
                owner_accountant_id=accountant_id,
                company_name=company_name.strip(),
                tax_id=(tax_id or "").strip() or MISSING_TAX_ID,
                contact_person=contact_person.strip(),
                email=email.strip(),
                status=ClientStatus.INVITED,
                next_deadline=next_deadline,
            )
            # The account may already exist and have uploaded documents.
            record = replace(
                record, pending_document_count=self.selector.live_pending_count(record)
            )
            self.store.put_client_record(record)
            logger.info(
                "client_invited",
                extra={"record_id": record.id, "accountant_id": accountant_id},
            )
            return Invitation(record=record, link=self.build_invite_link(record.email))

    def invite_link(self, accountant_id: str, record_id: str) -> str:
        """
        Re-issue the invite link of a record still waiting for registration.

        Raises:
            ClientRecordNotFoundError: If the record is not the accountant's.
            InvalidTransitionError: If the record is no longer INVITED.
        """
        record = self._require_record(accountant_id, record_id)
        if record.status != ClientStatus.INVITED:
            raise InvalidTransitionError(
                "ClientRecord", record_id, record.status.value, "INVITE_LINK"
            )
        return self.build_invite_link(record.email)

    def toggle_client_status(self, accountant_id: str, record_id: str) -> ClientRecord:
        """
        Flip a record between ACTIVE (or OVERDUE) and INACTIVE.

        Raises:
            ClientRecordNotFoundError: If the record is not the accountant's.
            InvalidTransitionError: If the record is INVITED, or would
                become ACTIVE without a matching CLIENT account.
        """
        with self._command("toggle_client_status", actor_id=accountant_id, entity_id=record_id):
            record = self._require_record(accountant_id, record_id)
            target = toggle_target(record.status)
            if target is None:
                raise InvalidTransitionError(
                    "ClientRecord", record_id, record.status.value, "TOGGLE"
                )
            if target == ClientStatus.ACTIVE:
                account = self.resolver.find_user_by_email(record.email)
                if account is None or account.role != UserRole.CLIENT:
                    raise InvalidTransitionError(
                        "ClientRecord", record_id, record.status.value, target.value
                    )

            updated = replace(record, status=target)
            self.store.put_client_record(updated)
            logger.info(
                "client_status_toggled",
                extra={
                    "record_id": record_id,
                    "from_status": record.status.value,
                    "to_status": target.value,
                },
            )
            return updated

    def remove_client(self, accountant_id: str, record_id: str) -> ClientRecord:
        """
        Delete a record from its owner's collection.

        Records other accountants hold for the same email are untouched.

        Raises:
            ClientRecordNotFoundError: If the record is not the accountant's.
        """
        with self._command("remove_client", actor_id=accountant_id, entity_id=record_id):
            self._require_record(accountant_id, record_id)
            removed = self.store.remove_client_record(accountant_id, record_id)
            logger.info(
                "client_removed",
                extra={"record_id": record_id, "accountant_id": accountant_id},
            )
            return removed
