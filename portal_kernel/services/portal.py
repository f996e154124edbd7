"""
Portal -- the facade the presentation layer talks to.

Every command returns a ``CommandResult``. Kernel errors become failed
results carrying the error's ``code``; the store is left as it was.
Anything that is not a ``PortalKernelError`` is a programming error and
propagates.

Read views are passed straight through to the selectors.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import date
from decimal import Decimal
from typing import Any, TypeVar

from portal_kernel.domain.clock import Clock
from portal_kernel.domain.entities import (
    ClientRecord,
    DocumentRecord,
    DocumentStatus,
    DocumentType,
    FileMeta,
    TaxObligationRecord,
    UserAccount,
    UserRole,
)
from portal_kernel.domain.identifiers import IdentifierSource
from portal_kernel.domain.results import CommandResult
from portal_kernel.exceptions import PortalKernelError
from portal_kernel.logging_config import get_logger
from portal_kernel.selectors.portfolio_selector import (
    AccountantDashboard,
    ClientDashboard,
    PortfolioSelector,
)
from portal_kernel.services.portfolio_service import (
    DEFAULT_INVITE_BASE_URL,
    DEFAULT_INVITER_NAME,
    ClientPortfolioService,
    Invitation,
)
from portal_kernel.services.session_controller import SessionController
from portal_kernel.services.sync_engine import (
    DEFAULT_PASSWORD_MIN_LENGTH,
    SynchronizationEngine,
)
from portal_kernel.store.entity_store import EntityStore
from portal_kernel.store.files import FileReferenceProvider

logger = get_logger("services.portal")

T = TypeVar("T")


class Portal:
    """Commands and views for one store."""

    def __init__(
        self,
        store: EntityStore,
        engine: SynchronizationEngine,
        portfolio: ClientPortfolioService,
        sessions: SessionController,
    ):
        self.store = store
        self.engine = engine
        self.portfolio = portfolio
        self.sessions = sessions
        self.views = PortfolioSelector(store)

    @classmethod
    def create(
        cls,
        store: EntityStore,
        clock: Clock | None = None,
        ids: IdentifierSource | None = None,
        file_store: FileReferenceProvider | None = None,
        strict_invariants: bool = False,
        password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH,
        latency_seconds: float = 0.0,
        invite_base_url: str = DEFAULT_INVITE_BASE_URL,
        inviter_display_name: str = DEFAULT_INVITER_NAME,
    ) -> Portal:
        engine = SynchronizationEngine(
            store,
            clock=clock,
            ids=ids,
            file_store=file_store,
            strict_invariants=strict_invariants,
            password_min_length=password_min_length,
        )
        portfolio = ClientPortfolioService(
            store,
            clock=engine.clock,
            ids=engine.ids,
            strict_invariants=strict_invariants,
            invite_base_url=invite_base_url,
            inviter_display_name=inviter_display_name,
        )
        sessions = SessionController(
            engine,
            password_min_length=password_min_length,
            latency_seconds=latency_seconds,
        )
        return cls(store, engine, portfolio, sessions)

    # ------------------------------------------------------------------
    # Result wrapping
    # ------------------------------------------------------------------

    def _run(self, command: str, fn: Callable[..., T], *args: Any, **kwargs: Any) -> CommandResult[T]:
        try:
            value = fn(*args, **kwargs)
        except PortalKernelError as e:
            logger.info(
                "command_failed",
                extra={"command": command, "error_code": e.code, "reason": str(e)},
            )
            return CommandResult.failed(e)
        return CommandResult.ok(value)

    async def _run_async(
        self, command: str, coro: Awaitable[T]
    ) -> CommandResult[T]:
        try:
            value = await coro
        except PortalKernelError as e:
            logger.info(
                "command_failed",
                extra={"command": command, "error_code": e.code, "reason": str(e)},
            )
            return CommandResult.failed(e)
        return CommandResult.ok(value)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def login(
        self, email: str, password: str, remember_me: bool = False
    ) -> CommandResult[UserAccount]:
        return await self._run_async(
            "login", self.sessions.login(email, password, remember_me)
        )

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole | str,
        avatar_reference: str | None = None,
        remember_me: bool = False,
    ) -> CommandResult[UserAccount]:
        return await self._run_async(
            "register",
            self.sessions.register(
                name, email, password, role, avatar_reference, remember_me
            ),
        )

    async def logout(self) -> CommandResult[None]:
        return await self._run_async("logout", self.sessions.logout())

    @property
    def current_user(self) -> UserAccount | None:
        return self.sessions.current_user

    # ------------------------------------------------------------------
    # Synchronization commands
    # ------------------------------------------------------------------

    def register_user(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole | str,
        avatar_reference: str | None = None,
    ) -> CommandResult[UserAccount]:
        return self._run(
            "register_user",
            self.engine.register_user,
            name,
            email,
            password,
            role,
            avatar_reference,
        )

    def update_user_profile(
        self,
        user_id: str,
        name: str | None = None,
        email: str | None = None,
        avatar_reference: str | None = None,
    ) -> CommandResult[UserAccount]:
        return self._run(
            "update_user_profile",
            self.engine.update_user_profile,
            user_id,
            name=name,
            email=email,
            avatar_reference=avatar_reference,
        )

    def upload_document(
        self,
        uploader_user_id: str,
        file_meta: FileMeta,
        document_type: DocumentType | str,
    ) -> CommandResult[DocumentRecord]:
        return self._run(
            "upload_document",
            self.engine.upload_document,
            uploader_user_id,
            file_meta,
            document_type,
        )

    def validate_document(
        self, document_id: str, new_status: DocumentStatus | str
    ) -> CommandResult[DocumentRecord]:
        return self._run(
            "validate_document", self.engine.validate_document, document_id, new_status
        )

    def issue_obligation(
        self,
        owner_user_id: str,
        name: str,
        amount: Decimal | int | float | str,
        deadline: date | str,
    ) -> CommandResult[TaxObligationRecord]:
        return self._run(
            "issue_obligation",
            self.engine.issue_obligation,
            owner_user_id,
            name,
            amount,
            deadline,
        )

    def approve_obligation(self, obligation_id: str) -> CommandResult[TaxObligationRecord]:
        return self._run(
            "approve_obligation", self.engine.approve_obligation, obligation_id
        )

    # ------------------------------------------------------------------
    # Client portfolio commands
    # ------------------------------------------------------------------

    def invite_client(
        self,
        accountant_id: str,
        company_name: str,
        contact_person: str,
        email: str,
        tax_id: str | None = None,
        next_deadline: date | None = None,
    ) -> CommandResult[Invitation]:
        return self._run(
            "invite_client",
            self.portfolio.invite_client,
            accountant_id,
            company_name,
            contact_person,
            email,
            tax_id=tax_id,
            next_deadline=next_deadline,
        )

    def invite_link(self, accountant_id: str, record_id: str) -> CommandResult[str]:
        return self._run(
            "invite_link", self.portfolio.invite_link, accountant_id, record_id
        )

    def toggle_client_status(
        self, accountant_id: str, record_id: str
    ) -> CommandResult[ClientRecord]:
        return self._run(
            "toggle_client_status",
            self.portfolio.toggle_client_status,
            accountant_id,
            record_id,
        )

    def remove_client(
        self, accountant_id: str, record_id: str
    ) -> CommandResult[ClientRecord]:
        return self._run(
            "remove_client", self.portfolio.remove_client, accountant_id, record_id
        )

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def clients_for_accountant(
        self, accountant_id: str, search: str | None = None
    ) -> list[ClientRecord]:
        return self.views.clients_for_accountant(accountant_id, search)

    def documents_for_accountant(self, accountant_id: str) -> list[DocumentRecord]:
        return self.views.documents_for_accountant(accountant_id)

    def documents_for_user(self, user_id: str) -> list[DocumentRecord]:
        return self.views.documents_for_user(user_id)

    def obligations_for_user(self, user_id: str) -> list[TaxObligationRecord]:
        return self.views.obligations_for_user(user_id)

    def accountant_dashboard(self, accountant_id: str) -> AccountantDashboard:
        return self.views.accountant_dashboard(accountant_id)

    def client_dashboard(self, user_id: str) -> ClientDashboard:
        return self.views.client_dashboard(user_id)
