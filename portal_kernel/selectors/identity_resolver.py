"""
IdentityResolver -- cross-entity lookups keyed by email.

Responsibility:
    Every place where the kernel needs to go from an account to the client
    records that represent it (or back) funnels through this selector.
    Client records do not carry a foreign key to accounts for matching; the
    email address, compared case-insensitively, is the join key.

Invariants relied on:
    - Account emails are globally unique, so ``find_user_by_email`` has at
      most one answer.
    - Client record emails are unique only per accountant, so
      ``find_client_records_by_email`` may return several records.

Failure modes:
    None. Absent matches are normal (a fresh accountant has no clients, a
    client may register without having been invited).
"""

from __future__ import annotations

from portal_kernel.domain.entities import ClientRecord, UserAccount, normalize_email
from portal_kernel.selectors.base import BaseSelector


class IdentityResolver(BaseSelector):
    """Read-only account and client-record lookups."""

    def find_user(self, user_id: str) -> UserAccount | None:
        return self.store.users.get(user_id)

    def find_user_by_email(self, email: str) -> UserAccount | None:
        """Case-insensitive exact match over all accounts."""
        key = normalize_email(email)
        for user in self.store.users.values():
            if user.email_key == key:
                return user
        return None

    def find_client_records_by_email(
        self, email: str
    ) -> list[tuple[str, ClientRecord]]:
        """
        Every client record, across all accountants, whose email matches.

        Returns (accountant_id, record) pairs in accountant, then insertion,
        order.
        """
        key = normalize_email(email)
        return [
            (accountant_id, record)
            for accountant_id, record in self.store.iter_client_records()
            if record.email_key == key
        ]

    def find_owning_accountant_id(self, client_record_id: str) -> str | None:
        """Reverse lookup from a client record id to its owner."""
        for accountant_id, owned in self.store.client_records.items():
            if client_record_id in owned:
                return accountant_id
        return None

    def records_for_user(self, user_id: str) -> list[tuple[str, ClientRecord]]:
        """Client records that resolve to an account, via its current email."""
        user = self.find_user(user_id)
        if user is None:
            return []
        return self.find_client_records_by_email(user.email)

    def email_in_use(self, email: str, exclude_user_id: str | None = None) -> bool:
        user = self.find_user_by_email(email)
        return user is not None and user.id != exclude_user_id
