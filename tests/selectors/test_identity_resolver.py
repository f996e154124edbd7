"""Tests for IdentityResolver -- the email-keyed joins."""

from portal_kernel.selectors.identity_resolver import IdentityResolver


class TestIdentityResolver:
    def test_find_user_by_email_is_case_insensitive(self, store, register_client):
        user = register_client(email="c@acme.pt")
        resolver = IdentityResolver(store)
        assert resolver.find_user_by_email("  C@ACME.pt ") == user
        assert resolver.find_user_by_email("other@acme.pt") is None

    def test_find_user_by_id(self, store, register_client):
        user = register_client()
        resolver = IdentityResolver(store)
        assert resolver.find_user(user.id) == user
        assert resolver.find_user("missing") is None

    def test_client_records_across_accountants(self, store, invite, other_accountant):
        first = invite(email="c@acme.pt")
        second = invite(email="C@acme.pt", accountant_id=other_accountant.id)
        invite(email="z@zeta.pt")

        matches = IdentityResolver(store).find_client_records_by_email("c@acme.pt")
        assert matches == [("a1", first), ("a2", second)]

    def test_no_records_is_not_an_error(self, store):
        assert IdentityResolver(store).find_client_records_by_email("c@acme.pt") == []

    def test_find_owning_accountant_id(self, store, invite, other_accountant):
        record = invite(accountant_id=other_accountant.id)
        resolver = IdentityResolver(store)
        assert resolver.find_owning_accountant_id(record.id) == "a2"
        assert resolver.find_owning_accountant_id("c999") is None

    def test_records_for_user_follow_current_email(self, store, invite, register_client):
        record = invite(email="c@acme.pt")
        user = register_client(email="c@acme.pt")
        resolver = IdentityResolver(store)
        assert [r.id for _, r in resolver.records_for_user(user.id)] == [record.id]
        assert resolver.records_for_user("missing") == []

    def test_email_in_use_excludes_self(self, store, register_client):
        user = register_client(email="c@acme.pt")
        resolver = IdentityResolver(store)
        assert resolver.email_in_use("c@acme.pt")
        assert not resolver.email_in_use("c@acme.pt", exclude_user_id=user.id)
        assert not resolver.email_in_use("free@acme.pt")
