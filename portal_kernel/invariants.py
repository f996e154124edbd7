"""
Kernel Invariants Contract.

These invariants must hold after every command completes. Enforcement is
distributed across the SynchronizationEngine, ClientPortfolioService and
SessionController; ``find_violations`` re-checks a store snapshot and is
used by the test suite and by strict mode, where a violation rolls the
command back.
"""

from __future__ import annotations

from collections import Counter
from enum import Enum, unique

from portal_kernel.domain.entities import ClientStatus, UserRole
from portal_kernel.selectors.portfolio_selector import PortfolioSelector
from portal_kernel.store.entity_store import EntityStore


@unique
class PortalInvariant(str, Enum):
    """Structural guarantees the kernel provides unconditionally."""

    CLIENT_EMAIL_UNIQUE_PER_ACCOUNTANT = "client_email_unique_per_accountant"
    """A client record email appears at most once in one accountant's
    collection. Different accountants may share a client email."""

    ACTIVE_RECORD_HAS_CLIENT_ACCOUNT = "active_record_has_client_account"
    """Every ACTIVE client record matches exactly one CLIENT account by
    email."""

    PENDING_COUNT_MATCHES_DOCUMENTS = "pending_count_matches_documents"
    """A client record's pending counter equals the live number of PENDING
    documents whose owner resolves to it by email."""

    USER_EMAIL_GLOBALLY_UNIQUE = "user_email_globally_unique"
    """No two accounts share an email, compared case-insensitively."""

    PAID_ONLY_FROM_OPEN = "paid_only_from_open"
    """An obligation reaches PAID only from PENDING or OVERDUE. Enforced at
    transition time; there is no history to re-check here."""


ALL_PORTAL_INVARIANTS: frozenset[PortalInvariant] = frozenset(PortalInvariant)

# The kernel package may not import from these packages.
# Enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = ("portal_config",)


def find_violations(store: EntityStore) -> list[str]:
    """Describe every invariant the store currently violates."""
    violations: list[str] = []
    selector = PortfolioSelector(store)

    user_keys = Counter(u.email_key for u in store.users.values())
    for key, count in user_keys.items():
        if count > 1:
            violations.append(
                f"{PortalInvariant.USER_EMAIL_GLOBALLY_UNIQUE.value}: "
                f"{count} accounts share {key}"
            )

    client_keys = Counter(
        u.email_key for u in store.users.values() if u.role == UserRole.CLIENT
    )

    for accountant_id, owned in store.client_records.items():
        record_keys = Counter(r.email_key for r in owned.values())
        for key, count in record_keys.items():
            if count > 1:
                violations.append(
                    f"{PortalInvariant.CLIENT_EMAIL_UNIQUE_PER_ACCOUNTANT.value}: "
                    f"{accountant_id} has {count} records for {key}"
                )

        for record in owned.values():
            if (
                record.status == ClientStatus.ACTIVE
                and client_keys.get(record.email_key, 0) != 1
            ):
                violations.append(
                    f"{PortalInvariant.ACTIVE_RECORD_HAS_CLIENT_ACCOUNT.value}: "
                    f"{record.id} ({record.email_key})"
                )
            live = selector.live_pending_count(record)
            if record.pending_document_count != live:
                violations.append(
                    f"{PortalInvariant.PENDING_COUNT_MATCHES_DOCUMENTS.value}: "
                    f"{record.id} stores {record.pending_document_count}, "
                    f"live {live}"
                )

    return violations
