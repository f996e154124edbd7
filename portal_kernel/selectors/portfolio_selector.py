"""
PortfolioSelector -- derived read views for the presentation layer.

Responsibility:
    Computes the views the dashboards render from the store: an
    accountant's documents, a client's documents and obligations, client
    search, and the dashboard summaries. None of these are stored fields;
    they are derived on every call.

Architecture position:
    Kernel > Selectors. Builds on ``IdentityResolver`` for every
    account/record join.

Notes:
    ``live_pending_count`` recomputes a client record's pending counter from
    the documents collection. The stored counter must always agree with it.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from portal_kernel.domain.entities import (
    ClientRecord,
    ClientStatus,
    DocumentRecord,
    DocumentStatus,
    ObligationStatus,
    TaxObligationRecord,
    normalize_email,
)
from portal_kernel.selectors.base import BaseSelector
from portal_kernel.selectors.identity_resolver import IdentityResolver
from portal_kernel.store.entity_store import EntityStore


@dataclass(frozen=True)
class AccountantDashboard:
    """KPI summary for one accountant's office."""

    accountant_id: str
    total_clients: int
    active_clients: int
    invited_clients: int
    overdue_clients: int
    total_documents: int
    pending_documents: int


@dataclass(frozen=True)
class ClientDashboard:
    """Summary for one client account."""

    user_id: str
    total_documents: int
    pending_documents: int
    outstanding_obligations: int
    outstanding_amount: Decimal


class PortfolioSelector(BaseSelector):
    """Derived views over documents, obligations and client records."""

    def __init__(self, store: EntityStore):
        super().__init__(store)
        self.resolver = IdentityResolver(store)

    def _owner_email_key(self, document: DocumentRecord) -> str | None:
        owner = self.resolver.find_user(document.owner_user_id)
        return owner.email_key if owner is not None else None

    def live_pending_count(self, record: ClientRecord) -> int:
        """PENDING documents whose owner's email resolves to ``record``."""
        key = record.email_key
        return sum(
            1
            for document in self.store.documents.values()
            if document.is_pending and self._owner_email_key(document) == key
        )

    def documents_for_accountant(self, accountant_id: str) -> list[DocumentRecord]:
        """Documents uploaded by any client of ``accountant_id``."""
        keys = {r.email_key for r in self.store.records_of(accountant_id)}
        return [
            document
            for document in self.store.documents.values()
            if self._owner_email_key(document) in keys
        ]

    def documents_for_user(self, user_id: str) -> list[DocumentRecord]:
        return [
            d for d in self.store.documents.values() if d.owner_user_id == user_id
        ]

    def obligations_for_user(self, user_id: str) -> list[TaxObligationRecord]:
        """Obligations owned by the account, earliest deadline first."""
        owned = [
            o for o in self.store.obligations.values() if o.owner_user_id == user_id
        ]
        return sorted(owned, key=lambda o: (o.deadline, o.id))

    def clients_for_accountant(
        self, accountant_id: str, search: str | None = None
    ) -> list[ClientRecord]:
        """
        The accountant's client records, optionally filtered.

        ``search`` matches company name or email case-insensitively, and
        the tax id as a plain substring.
        """
        records = self.store.records_of(accountant_id)
        if not search:
            return records
        term = normalize_email(search)
        return [
            r
            for r in records
            if term in r.company_name.casefold()
            or term in r.email_key
            or search.strip() in r.tax_id
        ]

    def accountant_dashboard(self, accountant_id: str) -> AccountantDashboard:
        records = self.store.records_of(accountant_id)
        documents = self.documents_for_accountant(accountant_id)
        return AccountantDashboard(
            accountant_id=accountant_id,
            total_clients=len(records),
            active_clients=sum(1 for r in records if r.status == ClientStatus.ACTIVE),
            invited_clients=sum(1 for r in records if r.status == ClientStatus.INVITED),
            overdue_clients=sum(1 for r in records if r.status == ClientStatus.OVERDUE),
            total_documents=len(documents),
            pending_documents=sum(
                1 for d in documents if d.status == DocumentStatus.PENDING
            ),
        )

    def client_dashboard(self, user_id: str) -> ClientDashboard:
        documents = self.documents_for_user(user_id)
        outstanding = [
            o
            for o in self.obligations_for_user(user_id)
            if o.status != ObligationStatus.PAID
        ]
        return ClientDashboard(
            user_id=user_id,
            total_documents=len(documents),
            pending_documents=sum(1 for d in documents if d.is_pending),
            outstanding_obligations=len(outstanding),
            outstanding_amount=sum((o.amount for o in outstanding), Decimal("0")),
        )
