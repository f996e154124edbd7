"""
Pure domain layer.

Immutable records, status state machines and command results, with NO
dependencies on:
- Persistence
- Time/clock (injected through ``Clock``)
- Id generation (injected through ``IdentifierSource``)
- I/O
"""

from portal_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from portal_kernel.domain.entities import (
    ClientRecord,
    ClientStatus,
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    FileMeta,
    ObligationStatus,
    SessionState,
    TaxObligationRecord,
    UserAccount,
    UserRole,
    normalize_email,
    parse_amount,
    parse_choice,
    parse_date,
)
from portal_kernel.domain.identifiers import (
    IdentifierSource,
    SequentialIdentifierSource,
    UuidIdentifierSource,
)
from portal_kernel.domain.results import CommandResult

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "ClientRecord",
    "ClientStatus",
    "DocumentRecord",
    "DocumentStatus",
    "DocumentType",
    "FileMeta",
    "ObligationStatus",
    "SessionState",
    "TaxObligationRecord",
    "UserAccount",
    "UserRole",
    "normalize_email",
    "parse_amount",
    "parse_choice",
    "parse_date",
    "IdentifierSource",
    "SequentialIdentifierSource",
    "UuidIdentifierSource",
    "CommandResult",
]
