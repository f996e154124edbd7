"""
Status state machines (``portal_kernel.domain.transitions``).

Responsibility
--------------
Declares the only legal status changes for documents, client records and
tax obligations. Services consult these tables before writing; a change
not listed here is an ``InvalidTransitionError``.

Architecture position
---------------------
**Kernel domain layer** -- pure data, zero I/O.

Invariants enforced
-------------------
* Terminal states have no outgoing edges.
* Re-stating the current status of a non-terminal document is a no-op and
  therefore listed as a self edge.
* Client records reach ACTIVE from INVITED only through activation, never
  through the manual toggle.
* Obligations reach PAID only from PENDING or OVERDUE.
"""

from __future__ import annotations

from portal_kernel.domain.entities import (
    ClientStatus,
    DocumentStatus,
    ObligationStatus,
)

# =========================================================================
# Documents
# =========================================================================

# REVIEWING is optional: APPROVED and REJECTED are reachable directly.
DOCUMENT_TRANSITIONS: dict[DocumentStatus, frozenset[DocumentStatus]] = {
    DocumentStatus.PENDING: frozenset({
        DocumentStatus.PENDING,
        DocumentStatus.REVIEWING,
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
    }),
    DocumentStatus.REVIEWING: frozenset({
        DocumentStatus.REVIEWING,
        DocumentStatus.APPROVED,
        DocumentStatus.REJECTED,
    }),
    DocumentStatus.APPROVED: frozenset(),
    DocumentStatus.REJECTED: frozenset(),
}

TERMINAL_DOCUMENT_STATUSES: frozenset[DocumentStatus] = frozenset({
    DocumentStatus.APPROVED,
    DocumentStatus.REJECTED,
})


def can_transition_document(
    current: DocumentStatus, target: DocumentStatus
) -> bool:
    return target in DOCUMENT_TRANSITIONS[current]


# =========================================================================
# Client records
# =========================================================================

# Manual accountant toggle. OVERDUE is set externally; the toggle treats it
# like ACTIVE. INACTIVE always returns to ACTIVE, never to OVERDUE.
CLIENT_TOGGLE_TARGETS: dict[ClientStatus, ClientStatus] = {
    ClientStatus.ACTIVE: ClientStatus.INACTIVE,
    ClientStatus.OVERDUE: ClientStatus.INACTIVE,
    ClientStatus.INACTIVE: ClientStatus.ACTIVE,
}


def toggle_target(current: ClientStatus) -> ClientStatus | None:
    """Status the manual toggle moves to, or None when toggling is illegal."""
    return CLIENT_TOGGLE_TARGETS.get(current)


# =========================================================================
# Tax obligations
# =========================================================================

OBLIGATION_TRANSITIONS: dict[ObligationStatus, frozenset[ObligationStatus]] = {
    ObligationStatus.PENDING: frozenset({ObligationStatus.PAID}),
    ObligationStatus.OVERDUE: frozenset({ObligationStatus.PAID}),
    ObligationStatus.PAID: frozenset(),
}


def can_transition_obligation(
    current: ObligationStatus, target: ObligationStatus
) -> bool:
    return target in OBLIGATION_TRANSITIONS[current]
