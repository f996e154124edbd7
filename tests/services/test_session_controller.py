"""
Tests for SessionController.

The controller's commands are coroutines; tests drive them with
``asyncio.run`` so no event-loop plugin is needed.
"""

import asyncio

import pytest

from portal_kernel.domain.entities import ClientStatus, UserRole
from portal_kernel.exceptions import InvalidCredentialsError, UserNotFoundError
from portal_kernel.services.session_controller import SessionController


class TestLogin:
    def test_login_opens_session(self, store, controller, register_client):
        user = register_client()
        asyncio.run(controller.logout())

        logged_in = asyncio.run(controller.login("C@acme.pt", "secret123"))

        assert logged_in == user
        assert controller.current_user == user
        assert store.session.remember_me is False

    def test_unknown_email(self, store, controller):
        with pytest.raises(UserNotFoundError):
            asyncio.run(controller.login("ghost@acme.pt", "secret123"))
        assert store.session is None

    @pytest.mark.parametrize("password", ["", "12345"])
    def test_password_policy(self, store, controller, register_client, password):
        register_client()
        asyncio.run(controller.logout())

        with pytest.raises(InvalidCredentialsError) as exc_info:
            asyncio.run(controller.login("c@acme.pt", password))

        assert exc_info.value.code == "INVALID_CREDENTIALS"
        assert store.session is None

    def test_configurable_minimum_length(self, engine, register_client):
        register_client()
        strict_controller = SessionController(engine, password_min_length=10)
        with pytest.raises(InvalidCredentialsError):
            asyncio.run(strict_controller.login("c@acme.pt", "secret123"))

    def test_login_accepts_pending_invitations(
        self, controller, invite, register_client, record_of
    ):
        register_client()
        record = invite()

        asyncio.run(controller.login("c@acme.pt", "secret123"))

        assert record_of(record.id).status == ClientStatus.ACTIVE
        assert record_of(record.id).company_name == "Acme Lda"

    def test_remember_me_persists_pointer(self, persistence, controller, register_client):
        user = register_client()
        asyncio.run(controller.login("c@acme.pt", "secret123", remember_me=True))
        assert persistence.stored("session") == {"user_id": user.id, "remember_me": True}


class TestRegister:
    def test_register_starts_session(self, controller):
        user = asyncio.run(
            controller.register("Acme Lda", "c@acme.pt", "secret123", UserRole.CLIENT)
        )
        assert controller.current_user == user

    def test_short_password_rejected_at_registration(self, store, controller):
        with pytest.raises(InvalidCredentialsError):
            asyncio.run(controller.register("Acme Lda", "c@acme.pt", "a", UserRole.CLIENT))
        assert store.users == {}
        assert controller.current_user is None

    def test_registered_password_always_logs_in(self, engine):
        controller = SessionController(engine, password_min_length=8)
        with pytest.raises(InvalidCredentialsError):
            asyncio.run(controller.register("Acme Lda", "c@acme.pt", "1234567", "CLIENT"))

        user = asyncio.run(controller.register("Acme Lda", "c@acme.pt", "12345678", "CLIENT"))
        asyncio.run(controller.logout())
        assert asyncio.run(controller.login("c@acme.pt", "12345678")) == user

    def test_register_with_remember_me(self, store, persistence, controller):
        user = asyncio.run(
            controller.register(
                "Acme Lda", "c@acme.pt", "secret123", "CLIENT", remember_me=True
            )
        )
        assert store.session.remember_me is True
        assert persistence.stored("session")["user_id"] == user.id


class TestLogout:
    def test_logout_clears_session_and_pointer(self, store, persistence, controller, register_client):
        register_client()
        asyncio.run(controller.login("c@acme.pt", "secret123", remember_me=True))
        users_before = dict(store.users)

        asyncio.run(controller.logout())

        assert controller.current_user is None
        assert persistence.stored("session") is None
        assert store.users == users_before

    def test_logout_without_session(self, controller):
        asyncio.run(controller.logout())
        assert controller.current_user is None


class TestSerialization:
    def test_concurrent_commands_do_not_interleave(self, engine, register_client):
        register_client(email="first@acme.pt")
        register_client(email="second@acme.pt")
        controller = SessionController(engine, latency_seconds=0.01)
        order: list[str] = []
        original = controller._round_trip

        async def tracked_round_trip():
            order.append("suspend")
            await original()
            order.append("resume")

        controller._round_trip = tracked_round_trip

        async def both():
            return await asyncio.gather(
                controller.login("first@acme.pt", "secret123"),
                controller.login("second@acme.pt", "secret123"),
            )

        first, second = asyncio.run(both())

        assert order == ["suspend", "resume", "suspend", "resume"]
        assert controller.current_user == second
        assert first.email == "first@acme.pt"

    def test_lock_survives_separate_event_loops(self, controller, register_client):
        register_client()
        asyncio.run(controller.login("c@acme.pt", "secret123"))
        asyncio.run(controller.logout())
        asyncio.run(controller.login("c@acme.pt", "secret123"))
        assert controller.current_user is not None
