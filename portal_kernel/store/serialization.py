"""
Collection codecs -- plain-data form of the store's collections.

Each collection is encoded to JSON-compatible data (dicts, lists, strings,
numbers, None) before it is handed to the persistence collaborator, and
decoded back into frozen records on load. Dates travel as ISO strings and
amounts as decimal strings so no precision is lost.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from portal_kernel.domain.entities import (
    ClientRecord,
    ClientStatus,
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    ObligationStatus,
    TaxObligationRecord,
    UserAccount,
    UserRole,
)
from portal_kernel.exceptions import InvalidAmountError, PersistenceError

USERS = "users"
CLIENT_RECORDS = "client_records"
DOCUMENTS = "documents"
OBLIGATIONS = "obligations"
SESSION = "session"

COLLECTION_NAMES: tuple[str, ...] = (
    USERS,
    CLIENT_RECORDS,
    DOCUMENTS,
    OBLIGATIONS,
    SESSION,
)


def _date_or_none(value: str | None) -> date | None:
    return date.fromisoformat(value) if value else None


def _decimal_or_none(value: str | None) -> Decimal | None:
    return Decimal(value) if value is not None else None


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def user_to_data(user: UserAccount) -> dict[str, Any]:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role.value,
        "avatar_reference": user.avatar_reference,
    }


def user_from_data(data: dict[str, Any]) -> UserAccount:
    return UserAccount(
        id=data["id"],
        name=data["name"],
        email=data["email"],
        role=UserRole(data["role"]),
        avatar_reference=data.get("avatar_reference"),
    )


def client_record_to_data(record: ClientRecord) -> dict[str, Any]:
    return {
        "id": record.id,
        "owner_accountant_id": record.owner_accountant_id,
        "company_name": record.company_name,
        "tax_id": record.tax_id,
        "contact_person": record.contact_person,
        "email": record.email,
        "status": record.status.value,
        "avatar_reference": record.avatar_reference,
        "pending_document_count": record.pending_document_count,
        "next_deadline": (
            record.next_deadline.isoformat() if record.next_deadline else None
        ),
        "linked_user_id": record.linked_user_id,
    }


def client_record_from_data(data: dict[str, Any]) -> ClientRecord:
    return ClientRecord(
        id=data["id"],
        owner_accountant_id=data["owner_accountant_id"],
        company_name=data["company_name"],
        tax_id=data.get("tax_id", "N/A"),
        contact_person=data.get("contact_person", ""),
        email=data["email"],
        status=ClientStatus(data["status"]),
        avatar_reference=data.get("avatar_reference"),
        pending_document_count=int(data.get("pending_document_count", 0)),
        next_deadline=_date_or_none(data.get("next_deadline")),
        linked_user_id=data.get("linked_user_id"),
    )


def document_to_data(document: DocumentRecord) -> dict[str, Any]:
    return {
        "id": document.id,
        "title": document.title,
        "document_type": document.document_type.value,
        "upload_date": document.upload_date.isoformat(),
        "status": document.status.value,
        "owner_user_id": document.owner_user_id,
        "file_reference": document.file_reference,
        "amount": str(document.amount) if document.amount is not None else None,
    }


def document_from_data(data: dict[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=data["id"],
        title=data["title"],
        document_type=DocumentType(data["document_type"]),
        upload_date=date.fromisoformat(data["upload_date"]),
        status=DocumentStatus(data["status"]),
        owner_user_id=data["owner_user_id"],
        file_reference=data.get("file_reference"),
        amount=_decimal_or_none(data.get("amount")),
    )


def obligation_to_data(obligation: TaxObligationRecord) -> dict[str, Any]:
    return {
        "id": obligation.id,
        "owner_user_id": obligation.owner_user_id,
        "name": obligation.name,
        "deadline": obligation.deadline.isoformat(),
        "amount": str(obligation.amount),
        "status": obligation.status.value,
    }


def obligation_from_data(data: dict[str, Any]) -> TaxObligationRecord:
    return TaxObligationRecord(
        id=data["id"],
        owner_user_id=data["owner_user_id"],
        name=data["name"],
        deadline=date.fromisoformat(data["deadline"]),
        amount=Decimal(str(data["amount"])),
        status=ObligationStatus(data["status"]),
    )


# ---------------------------------------------------------------------------
# Collections
# ---------------------------------------------------------------------------


def encode_users(users: dict[str, UserAccount]) -> list[dict[str, Any]]:
    return [user_to_data(u) for u in users.values()]


def encode_client_records(
    records: dict[str, dict[str, ClientRecord]],
) -> dict[str, list[dict[str, Any]]]:
    return {
        accountant_id: [client_record_to_data(r) for r in owned.values()]
        for accountant_id, owned in records.items()
    }


def encode_documents(documents: dict[str, DocumentRecord]) -> list[dict[str, Any]]:
    return [document_to_data(d) for d in documents.values()]


def encode_obligations(
    obligations: dict[str, TaxObligationRecord],
) -> list[dict[str, Any]]:
    return [obligation_to_data(o) for o in obligations.values()]


def decode_users(data: Any) -> dict[str, UserAccount]:
    try:
        return {u.id: u for u in (user_from_data(item) for item in data)}
    except (KeyError, TypeError, ValueError) as e:
        raise PersistenceError(USERS, str(e)) from e


def decode_client_records(data: Any) -> dict[str, dict[str, ClientRecord]]:
    try:
        decoded: dict[str, dict[str, ClientRecord]] = {}
        for accountant_id, items in data.items():
            owned = decoded.setdefault(accountant_id, {})
            for item in items:
                record = client_record_from_data(item)
                owned[record.id] = record
        return decoded
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        raise PersistenceError(CLIENT_RECORDS, str(e)) from e


def decode_documents(data: Any) -> dict[str, DocumentRecord]:
    try:
        return {d.id: d for d in (document_from_data(item) for item in data)}
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise PersistenceError(DOCUMENTS, str(e)) from e


def decode_obligations(data: Any) -> dict[str, TaxObligationRecord]:
    try:
        return {
            o.id: o for o in (obligation_from_data(item) for item in data)
        }
    except (
        KeyError, TypeError, ValueError, ArithmeticError, InvalidAmountError
    ) as e:
        raise PersistenceError(OBLIGATIONS, str(e)) from e
