"""
SessionController -- login, registration and logout.

Responsibility:
    Produces or clears the active session pointer. Credentials are checked
    against a minimal policy only (non-empty, minimum length), the same at
    registration and login; the kernel does not store passwords.

Concurrency:
    Each command is a coroutine with a single suspend point, the simulated
    network round-trip, taken before any read or write. Commands are
    serialized by a lock held across that suspension, and everything after
    it runs synchronously inside one store transaction. No second command
    can observe or interleave with a half-applied one.
"""

from __future__ import annotations

import asyncio

from portal_kernel.domain.entities import SessionState, UserAccount, UserRole
from portal_kernel.exceptions import UserNotFoundError
from portal_kernel.logging_config import get_logger
from portal_kernel.services.base import BaseService
from portal_kernel.services.sync_engine import (
    DEFAULT_PASSWORD_MIN_LENGTH,
    SynchronizationEngine,
    check_password,
)

logger = get_logger("services.session_controller")


class SessionController(BaseService):
    """Authentication stub over the synchronization engine."""

    def __init__(
        self,
        engine: SynchronizationEngine,
        password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH,
        latency_seconds: float = 0.0,
    ):
        super().__init__(
            engine.store, engine.clock, engine.ids, engine.strict_invariants
        )
        self.engine = engine
        self.password_min_length = password_min_length
        self.latency_seconds = latency_seconds
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    @property
    def current_user(self) -> UserAccount | None:
        session = self.store.session
        return session.user if session is not None else None

    def _command_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to one event loop; callers may use several.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def _round_trip(self) -> None:
        await asyncio.sleep(self.latency_seconds)

    def _check_password(self, email: str, password: str) -> None:
        check_password(email, password, self.password_min_length)

    async def login(
        self,
        email: str,
        password: str,
        remember_me: bool = False,
    ) -> UserAccount:
        """
        Open a session for an existing account.

        A CLIENT login also accepts any invitation issued after the account
        registered.

        Raises:
            UserNotFoundError: If no account uses ``email``.
            InvalidCredentialsError: If the password fails the policy.
        """
        async with self._command_lock():
            await self._round_trip()
            with self._command("login"):
                user = self.resolver.find_user_by_email(email)
                if user is None:
                    raise UserNotFoundError(email)
                self._check_password(email, password)

                self.store.set_session(SessionState(user=user, remember_me=remember_me))
                activated = self.engine.accept_invitations(user.id)

                logger.info(
                    "session_started",
                    extra={
                        "user_id": user.id,
                        "remember_me": remember_me,
                        "accepted_invitations": [r.id for r in activated],
                    },
                )
                return user

    async def register(
        self,
        name: str,
        email: str,
        password: str,
        role: UserRole | str,
        avatar_reference: str | None = None,
        remember_me: bool = False,
    ) -> UserAccount:
        """
        Register through the engine and start the new account's session.

        The password policy is the one login applies.

        Raises:
            InvalidCredentialsError: If the password fails the policy.
            DuplicateEmailError: If any account already uses ``email``.
        """
        async with self._command_lock():
            await self._round_trip()
            with self._command("register"):
                self._check_password(email, password)
                user = self.engine.register_user(
                    name, email, password, role, avatar_reference
                )
                if remember_me:
                    self.store.set_session(SessionState(user=user, remember_me=True))
                logger.info(
                    "session_started",
                    extra={"user_id": user.id, "remember_me": remember_me},
                )
                return user

    async def logout(self) -> None:
        """Clear the session and the persisted remember-me pointer."""
        async with self._command_lock():
            await self._round_trip()
            with self._command("logout"):
                previous = self.current_user
                self.store.set_session(None)
                logger.info(
                    "session_ended",
                    extra={"user_id": previous.id if previous else None},
                )
