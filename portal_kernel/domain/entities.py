"""
Entities -- Immutable records held by the entity store.

Responsibility:
    Defines the four record types the portal keeps consistent (accounts,
    client records, documents, tax obligations) plus the session pointer
    and the upload metadata handed in by the presentation layer.

Architecture position:
    Kernel > Domain -- pure value objects, zero I/O. Imported by the store,
    selectors and services.

Invariants enforced:
    - Emails are compared through ``normalize_email`` only (case-insensitive,
      surrounding whitespace ignored).
    - ``ClientRecord.pending_document_count`` is never negative.
    - ``TaxObligationRecord.amount`` is a non-negative Decimal.

Records are frozen. Services produce new versions with
``dataclasses.replace`` and hand them to the store, so a snapshot of the
store's dictionaries is a complete, cheap rollback point.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, TypeVar

from portal_kernel.exceptions import InvalidAmountError, InvalidInputError

E = TypeVar("E", bound=Enum)


class UserRole(str, Enum):
    """Account roles."""

    CLIENT = "CLIENT"
    ACCOUNTANT = "ACCOUNTANT"


class ClientStatus(str, Enum):
    """Lifecycle of an accountant's client record."""

    INVITED = "INVITED"
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    OVERDUE = "OVERDUE"


class DocumentStatus(str, Enum):
    """Review lifecycle of an uploaded document."""

    PENDING = "PENDING"
    REVIEWING = "REVIEWING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class DocumentType(str, Enum):
    INVOICE = "INVOICE"
    EXPENSE = "EXPENSE"
    BANK_STATEMENT = "BANK_STATEMENT"
    SALARY = "SALARY"
    TAX_DECLARATION = "TAX_DECLARATION"


class ObligationStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    OVERDUE = "OVERDUE"


def normalize_email(email: str) -> str:
    """Canonical matching key for an email address."""
    return email.strip().casefold()


def parse_amount(value: Any) -> Decimal:
    """
    Convert a monetary input to a non-negative Decimal.

    Floats go through ``str`` so 320.5 becomes Decimal("320.5"), not its
    binary expansion.

    Raises:
        InvalidAmountError: If the value is not numeric, not finite, or
            negative.
    """
    if isinstance(value, bool):
        raise InvalidAmountError(str(value))
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(str(value)) from e
    if not amount.is_finite() or amount < 0:
        raise InvalidAmountError(str(value))
    return amount


def parse_choice(enum_type: type[E], value: Any, field: str) -> E:
    """
    Resolve ``value`` to a member of ``enum_type``.

    Raises:
        InvalidInputError: If ``value`` names no member.
    """
    try:
        return enum_type(value)
    except ValueError as e:
        accepted = ", ".join(member.value for member in enum_type)
        raise InvalidInputError(field, str(value), f"expected one of {accepted}") from e


def parse_date(value: date | str, field: str) -> date:
    """Accept a date or an ISO ``YYYY-MM-DD`` string."""
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as e:
        raise InvalidInputError(field, str(value), "expected an ISO date") from e


@dataclass(frozen=True)
class UserAccount:
    """A registered identity. Email is globally unique."""

    id: str
    name: str
    email: str
    role: UserRole
    avatar_reference: str | None = None

    @property
    def email_key(self) -> str:
        return normalize_email(self.email)

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT


@dataclass(frozen=True)
class ClientRecord:
    """
    An accountant's view of one client company.

    Owned by exactly one accountant. Linked to a client account by email;
    ``linked_user_id`` is written once, when the record is first activated,
    and is never re-resolved.
    """

    id: str
    owner_accountant_id: str
    company_name: str
    tax_id: str
    contact_person: str
    email: str
    status: ClientStatus = ClientStatus.INVITED
    avatar_reference: str | None = None
    pending_document_count: int = 0
    next_deadline: date | None = None
    linked_user_id: str | None = None

    def __post_init__(self) -> None:
        if self.pending_document_count < 0:
            raise ValueError(
                f"pending_document_count cannot be negative: "
                f"{self.pending_document_count}"
            )

    @property
    def email_key(self) -> str:
        return normalize_email(self.email)


@dataclass(frozen=True)
class DocumentRecord:
    """Metadata of one uploaded file."""

    id: str
    title: str
    document_type: DocumentType
    upload_date: date
    status: DocumentStatus
    owner_user_id: str
    file_reference: str | None = None
    amount: Decimal | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == DocumentStatus.PENDING


@dataclass(frozen=True)
class TaxObligationRecord:
    """A payment or declaration an accountant issued to one client account."""

    id: str
    owner_user_id: str
    name: str
    deadline: date
    amount: Decimal
    status: ObligationStatus = ObligationStatus.PENDING

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", parse_amount(self.amount))


@dataclass(frozen=True)
class FileMeta:
    """
    Upload metadata supplied by the presentation layer.

    ``content`` is handed to the file collaborator, which returns the opaque
    reference stored on the document. Uploads without content carry no
    reference.
    """

    title: str
    file_name: str | None = None
    content: bytes | None = None
    amount: Decimal | None = None


@dataclass(frozen=True)
class SessionState:
    """The active session pointer with its cached copy of the account."""

    user: UserAccount
    remember_me: bool = False

    @property
    def user_id(self) -> str:
        return self.user.id
