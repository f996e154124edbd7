"""
portal_kernel.services.sync_engine -- cross-collection command handlers.

Responsibility:
    Applies the commands that touch more than one collection while keeping
    them consistent: registration (with invite activation), profile updates
    (with client-record re-sync), document upload and validation (with the
    denormalized pending counters), and obligation issue/payment.

Architecture position:
    Kernel > Services. Reads through ``IdentityResolver``; writes through the
    store's ``put_*`` helpers inside one transaction per command.

Invariants enforced:
    - Account emails are globally unique (register, profile update).
    - Registration of a CLIENT activates every client record whose email
      matches, across all accountants.
    - Demonstration obligations seeded without an owner go to the first
      CLIENT that registers.
    - Pending counters move by exactly one per upload and per document
      leaving PENDING, clamped at zero, and are recounted for the affected
      records when a client's email changes.
    - Document and obligation statuses follow ``domain.transitions``.

Failure modes:
    - DuplicateEmailError, UserNotFoundError, RoleNotPermittedError,
      InvalidCredentialsError
    - DocumentNotFoundError, ObligationNotFoundError
    - InvalidTransitionError, InvalidAmountError, InvalidInputError
    Every failure is raised before the first write, and the transaction
    guarantees nothing is applied if a later step fails.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any

from portal_kernel.domain.clock import Clock
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
    DOCUMENT_PREFIX,
    OBLIGATION_PREFIX,
    USER_PREFIX,
    IdentifierSource,
)
from portal_kernel.domain.transitions import (
    can_transition_document,
    can_transition_obligation,
)
from portal_kernel.exceptions import (
    DocumentNotFoundError,
    DuplicateEmailError,
    InvalidCredentialsError,
    InvalidTransitionError,
    ObligationNotFoundError,
    RoleNotPermittedError,
)
from portal_kernel.logging_config import get_logger
from portal_kernel.selectors.portfolio_selector import PortfolioSelector
from portal_kernel.services.base import BaseService
from portal_kernel.store.entity_store import EntityStore
from portal_kernel.store.files import FileReferenceProvider
from portal_kernel.store.seed import DEMO_CLIENT_USER_ID

logger = get_logger("services.sync_engine")

DEFAULT_PASSWORD_MIN_LENGTH = 6


def check_password(email: str, password: str, min_length: int) -> None:
    """
    Apply the minimal password policy shared by registration and login.

    Raises:
        InvalidCredentialsError: If the password is empty or too short.
    """
    if not password:
        raise InvalidCredentialsError(email, "password is empty")
    if len(password) < min_length:
        raise InvalidCredentialsError(
            email, f"password shorter than {min_length} characters"
        )


class SynchronizationEngine(BaseService):
    """
    Command handlers that keep accounts, client records, documents and
    obligations mutually consistent.

    All handlers are deterministic given the store, the inputs, and the
    injected clock and identifier sources.
    """

    def __init__(
        self,
        store: EntityStore,
        clock: Clock | None = None,
        ids: IdentifierSource | None = None,
        file_store: FileReferenceProvider | None = None,
        strict_invariants: bool = False,
        password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH,
    ):
        super().__init__(store, clock, ids, strict_invariants)
        self.file_store = file_store
        self.password_min_length = password_min_length
        self.selector = PortfolioSelector(store)

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    def register_user(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole | str,
        avatar_reference: str | None = None,
    ) -> UserAccount:
        """
        Create an account and link it to any client records inviting it.

        The password must pass the same policy login applies, so every
        registered account can log in again; the kernel stores no
        credentials. The first CLIENT to register takes over the
        demonstration obligations nobody owns yet.

        Raises:
            InvalidCredentialsError: If the password fails the policy.
            InvalidInputError: If ``role`` is not a known role.
            DuplicateEmailError: If any account already uses ``email``.
        """
        with self._command("register_user"):
            check_password(email, password, self.password_min_length)
            role = parse_choice(UserRole, role, "role")
            if self.resolver.find_user_by_email(email) is not None:
                raise DuplicateEmailError(email)

            user = UserAccount(
                id=self.ids.next_id(USER_PREFIX),
                name=name.strip(),
                email=email.strip(),
                role=role,
                avatar_reference=avatar_reference,
            )
            self.store.put_user(user)

            activated: list[ClientRecord] = []
            claimed: list[TaxObligationRecord] = []
            if user.is_client:
                activated = self._sync_client_records(user, activate=True)
                claimed = self._claim_demo_obligations(user)

            self.store.set_session(SessionState(user=user))

            logger.info(
                "user_registered",
                extra={
                    "user_id": user.id,
                    "role": user.role.value,
                    "activated_records": [r.id for r in activated],
                    "claimed_obligations": [o.id for o in claimed],
                },
            )
            return user

    def update_user_profile(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
        avatar_reference: str | None = None,
    ) -> UserAccount:
        """
        Merge the provided profile fields into the account.

        For CLIENT accounts the company name and avatar are pushed to every
        client record matching the post-update email. Accountant profiles
        are never mirrored into client records. The session's cached copy
        of the account is replaced in the same command.

        Raises:
            UserNotFoundError: If ``user_id`` is unknown.
            DuplicateEmailError: If ``email`` belongs to another account.
        """
        with self._command("update_user_profile", actor_id=user_id, entity_id=user_id):
            current = self._require_user(user_id)
            if email is not None and self.resolver.email_in_use(
                email, exclude_user_id=user_id
            ):
                raise DuplicateEmailError(email)

            changes: dict[str, Any] = {}
            if name is not None:
                changes["name"] = name.strip()
            if email is not None:
                changes["email"] = email.strip()
            if avatar_reference is not None:
                changes["avatar_reference"] = avatar_reference
            updated = replace(current, **changes)
            self.store.put_user(updated)

            synced: list[ClientRecord] = []
            if updated.is_client:
                synced = self._sync_client_records(updated, activate=False)
                if updated.email_key != current.email_key:
                    self._recount_pending(current.email, updated.email)

            session = self.store.session
            if session is not None and session.user_id == user_id:
                self.store.set_session(replace(session, user=updated))

            logger.info(
                "user_profile_updated",
                extra={
                    "user_id": user_id,
                    "fields": sorted(changes),
                    "email_changed": updated.email_key != current.email_key,
                    "synced_records": [r.id for r in synced],
                },
            )
            return updated

    def accept_invitations(self, user_id: str) -> list[ClientRecord]:
        """
        Activate INVITED client records matching a client account.

        Covers invitations issued after the account registered; runs on
        every login. Records already ACTIVE, INACTIVE or OVERDUE are left
        alone.
        """
        with self._command("accept_invitations", actor_id=user_id):
            user = self._require_user(user_id)
            if not user.is_client:
                return []
            activated = self._sync_client_records(user, activate=True, only_invited=True)
            if activated:
                logger.info(
                    "invitations_accepted",
                    extra={"user_id": user_id, "records": [r.id for r in activated]},
                )
            return activated

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upload_document(
        self,
        uploader_user_id: str,
        file_meta: FileMeta,
        document_type: DocumentType | str,
    ) -> DocumentRecord:
        """
        Record a new PENDING document and bump the client's pending counter.

        A client who registered without an invitation has no client record;
        the counter update is then skipped.

        Raises:
            UserNotFoundError: If the uploader is unknown.
            RoleNotPermittedError: If the uploader is not a CLIENT.
            InvalidInputError: If ``document_type`` is not a known type.
            InvalidAmountError: If ``file_meta.amount`` is negative.
        """
        with self._command("upload_document", actor_id=uploader_user_id):
            uploader = self._require_user(uploader_user_id)
            if not uploader.is_client:
                raise RoleNotPermittedError(
                    uploader.id, uploader.role.value, "upload documents"
                )
            document_type = parse_choice(DocumentType, document_type, "document_type")
            amount = (
                parse_amount(file_meta.amount) if file_meta.amount is not None else None
            )

            reference = None
            if file_meta.content is not None and self.file_store is not None:
                reference = self.file_store.reference_for(file_meta)

            document = DocumentRecord(
                id=self.ids.next_id(DOCUMENT_PREFIX),
                title=file_meta.title,
                document_type=document_type,
                upload_date=self.clock.today(),
                status=DocumentStatus.PENDING,
                owner_user_id=uploader.id,
                file_reference=reference,
                amount=amount,
            )
            self.store.put_document(document)
            touched = self._adjust_pending(uploader.email, +1)

            logger.info(
                "document_uploaded",
                extra={
                    "document_id": document.id,
                    "document_type": document_type.value,
                    "owner_user_id": uploader.id,
                    "counted_records": [r.id for r in touched],
                },
            )
            return document

    def validate_document(
        self,
        document_id: str,
        new_status: DocumentStatus | str,
    ) -> DocumentRecord:
        """
        Move a document through review.

        Leaving PENDING decrements the owner's client-record counters by one
        (never below zero). Re-stating the current status of a non-terminal
        document changes nothing.

        Raises:
            DocumentNotFoundError: If ``document_id`` is unknown.
            InvalidInputError: If ``new_status`` is not a document status.
            InvalidTransitionError: If the document is APPROVED or REJECTED,
                or the move is not in ``DOCUMENT_TRANSITIONS``.
        """
        with self._command("validate_document", entity_id=document_id):
            document = self.store.documents.get(document_id)
            if document is None:
                raise DocumentNotFoundError(document_id)

            new_status = parse_choice(DocumentStatus, new_status, "status")
            previous = document.status
            if not can_transition_document(previous, new_status):
                raise InvalidTransitionError(
                    "Document", document_id, previous.value, new_status.value
                )
            if new_status == previous:
                return document

            updated = replace(document, status=new_status)
            self.store.put_document(updated)

            touched: list[ClientRecord] = []
            if previous == DocumentStatus.PENDING:
                owner = self.resolver.find_user(document.owner_user_id)
                if owner is not None:
                    touched = self._adjust_pending(owner.email, -1)

            logger.info(
                "document_validated",
                extra={
                    "document_id": document_id,
                    "from_status": previous.value,
                    "to_status": new_status.value,
                    "counted_records": [r.id for r in touched],
                },
            )
            return updated

    # ------------------------------------------------------------------
    # Tax obligations
    # ------------------------------------------------------------------

    def issue_obligation(
        self,
        owner_user_id: str,
        name: str,
        amount: Decimal | int | float | str,
        deadline: date | str,
    ) -> TaxObligationRecord:
        """
        Create a PENDING obligation for a client account.

        Raises:
            UserNotFoundError: If ``owner_user_id`` is unknown.
            RoleNotPermittedError: If the owner is not a CLIENT.
            InvalidAmountError: If ``amount`` is negative or not numeric.
            InvalidInputError: If ``deadline`` is not an ISO date.
        """
        with self._command("issue_obligation", entity_id=owner_user_id):
            owner = self._require_user(owner_user_id)
            if not owner.is_client:
                raise RoleNotPermittedError(
                    owner.id, owner.role.value, "receive tax obligations"
                )
            deadline = parse_date(deadline, "deadline")

            obligation = TaxObligationRecord(
                id=self.ids.next_id(OBLIGATION_PREFIX),
                owner_user_id=owner.id,
                name=name.strip(),
                deadline=deadline,
                amount=parse_amount(amount),
                status=ObligationStatus.PENDING,
            )
            self.store.put_obligation(obligation)
            logger.info(
                "obligation_issued",
                extra={
                    "obligation_id": obligation.id,
                    "owner_user_id": owner.id,
                    "amount": obligation.amount,
                    "deadline": obligation.deadline,
                },
            )
            return obligation

    def approve_obligation(self, obligation_id: str) -> TaxObligationRecord:
        """
        Mark an obligation PAID. One way: a PAID obligation never reopens.

        Raises:
            ObligationNotFoundError: If ``obligation_id`` is unknown.
            InvalidTransitionError: If the obligation is already PAID.
        """
        with self._command("approve_obligation", entity_id=obligation_id):
            obligation = self.store.obligations.get(obligation_id)
            if obligation is None:
                raise ObligationNotFoundError(obligation_id)
            if not can_transition_obligation(obligation.status, ObligationStatus.PAID):
                raise InvalidTransitionError(
                    "TaxObligation",
                    obligation_id,
                    obligation.status.value,
                    ObligationStatus.PAID.value,
                )

            updated = replace(obligation, status=ObligationStatus.PAID)
            self.store.put_obligation(updated)
            logger.info(
                "obligation_paid",
                extra={
                    "obligation_id": obligation_id,
                    "from_status": obligation.status.value,
                },
            )
            return updated

    # ------------------------------------------------------------------
    # Client-record synchronization
    # ------------------------------------------------------------------

    def _sync_client_records(
        self,
        user: UserAccount,
        activate: bool,
        only_invited: bool = False,
    ) -> list[ClientRecord]:
        """
        Mirror a client account's name and avatar into matching records.

        With ``activate`` the records also become ACTIVE and remember the
        account as ``linked_user_id`` if they had none. The avatar is only
        copied when the account has one.
        """
        updated: list[ClientRecord] = []
        for _, record in self.resolver.find_client_records_by_email(user.email):
            if only_invited and record.status != ClientStatus.INVITED:
                continue

            changes: dict[str, Any] = {"company_name": user.name}
            if user.avatar_reference:
                changes["avatar_reference"] = user.avatar_reference
            if activate:
                changes["status"] = ClientStatus.ACTIVE
                if record.linked_user_id is None:
                    changes["linked_user_id"] = user.id

            synced = replace(record, **changes)
            if synced != record:
                self.store.put_client_record(synced)
                updated.append(synced)

        if updated and activate:
            logger.info(
                "client_records_activated",
                extra={
                    "user_id": user.id,
                    "records": [
                        {"record_id": r.id, "accountant_id": r.owner_accountant_id}
                        for r in updated
                    ],
                },
            )
        return updated

    def _adjust_pending(self, owner_email: str, delta: int) -> list[ClientRecord]:
        """Shift the pending counter of every record matching the owner."""
        touched: list[ClientRecord] = []
        for _, record in self.resolver.find_client_records_by_email(owner_email):
            target = record.pending_document_count + delta
            if target < 0:
                logger.warning(
                    "pending_count_clamped",
                    extra={
                        "record_id": record.id,
                        "stored": record.pending_document_count,
                        "delta": delta,
                    },
                )
                target = 0
            adjusted = replace(record, pending_document_count=target)
            if adjusted != record:
                self.store.put_client_record(adjusted)
            touched.append(adjusted)
        return touched

    def _recount_pending(self, *emails: str) -> None:
        """Recompute counters from live documents after an email change."""
        seen: set[str] = set()
        for email in emails:
            key = normalize_email(email)
            if key in seen:
                continue
            seen.add(key)
            for _, record in self.resolver.find_client_records_by_email(email):
                live = self.selector.live_pending_count(record)
                if live != record.pending_document_count:
                    self.store.put_client_record(
                        replace(record, pending_document_count=live)
                    )

    def _claim_demo_obligations(self, user: UserAccount) -> list[TaxObligationRecord]:
        """Hand the unowned demonstration obligations to ``user``."""
        claimed = [
            replace(obligation, owner_user_id=user.id)
            for obligation in self.store.obligations.values()
            if obligation.owner_user_id == DEMO_CLIENT_USER_ID
        ]
        for obligation in claimed:
            self.store.put_obligation(obligation)
        return claimed
