"""
EntityStore -- the four collections plus the active session pointer.

Responsibility:
    Holds users, accountant-owned client records, documents and tax
    obligations in memory, and the active session. Provides the
    transactional scope every command runs in.

Architecture position:
    Kernel > Store. Pure data holder: no business rules live here. Services
    mutate through the ``put_*`` / ``remove_*`` helpers, selectors read the
    public dictionaries.

Invariants enforced:
    - Atomicity: ``transaction()`` snapshots every collection on entry. An
      exception inside the scope restores the snapshot and re-raises, so a
      command either applies completely or not at all.
    - Save-after-mutation: before the scope commits, every collection
      touched in it is handed to the persistence collaborator exactly once.
      A failed save rolls the scope back like any other exception, and
      collections already saved in that scope are rewritten from the
      restored state.

Failure modes:
    - ``PersistenceError`` from ``load`` when a stored collection cannot be
      decoded.
    - ``PersistenceError`` from a commit whose save failed; an ``OSError``
      from the collaborator is wrapped. The in-memory state is rolled back.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from portal_kernel.domain.entities import (
    ClientRecord,
    DocumentRecord,
    SessionState,
    TaxObligationRecord,
    UserAccount,
)
from portal_kernel.exceptions import PersistenceError
from portal_kernel.logging_config import get_logger
from portal_kernel.store import serialization as codec
from portal_kernel.store.persistence import PersistenceGateway
from portal_kernel.store.seed import DEMO_CLIENT_USER_ID, demo_obligations

logger = get_logger("store.entity_store")


class EntityStore:
    """
    In-memory collections shared by every command handler.

    Contract:
        Client records are grouped by owning accountant:
        ``client_records[accountant_id][record_id]``. Records are frozen;
        updating one means putting a new version under the same id.

    Non-goals:
        - Does NOT validate records against each other (services do).
        - Does NOT serialize concurrent writers; commands are run one at a
          time by construction.
    """

    def __init__(self, persistence: PersistenceGateway | None = None):
        self.users: dict[str, UserAccount] = {}
        self.client_records: dict[str, dict[str, ClientRecord]] = {}
        self.documents: dict[str, DocumentRecord] = {}
        self.obligations: dict[str, TaxObligationRecord] = {}
        self.session: SessionState | None = None
        self._persistence = persistence
        self._dirty: set[str] = set()
        self._in_transaction = False

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    @classmethod
    def load(
        cls,
        persistence: PersistenceGateway,
        seed_demo_obligations: bool = True,
        demo_owner_user_id: str | None = None,
    ) -> EntityStore:
        """
        Build a store from the persistence collaborator.

        Absent collections start empty, except obligations, which receive
        the demonstration dataset when ``seed_demo_obligations`` is set. The
        seed belongs to ``demo_owner_user_id`` when given; otherwise it waits
        for the first CLIENT to register. A stored remember-me pointer
        restores the session when its account still exists.
        """
        store = cls(persistence)

        users = persistence.load_collection(codec.USERS)
        if users is not None:
            store.users = codec.decode_users(users)

        records = persistence.load_collection(codec.CLIENT_RECORDS)
        if records is not None:
            store.client_records = codec.decode_client_records(records)

        documents = persistence.load_collection(codec.DOCUMENTS)
        if documents is not None:
            store.documents = codec.decode_documents(documents)

        obligations = persistence.load_collection(codec.OBLIGATIONS)
        if obligations is not None:
            store.obligations = codec.decode_obligations(obligations)
        elif seed_demo_obligations:
            store.obligations = demo_obligations(demo_owner_user_id or DEMO_CLIENT_USER_ID)

        pointer = persistence.load_collection(codec.SESSION)
        if pointer:
            user = store.users.get(pointer.get("user_id", ""))
            if user is not None:
                store.session = SessionState(user=user, remember_me=True)

        logger.info(
            "store_loaded",
            extra={
                "users": len(store.users),
                "accountants": len(store.client_records),
                "client_records": sum(
                    len(owned) for owned in store.client_records.values()
                ),
                "documents": len(store.documents),
                "obligations": len(store.obligations),
                "session_restored": store.session is not None,
            },
        )
        return store

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def records_of(self, accountant_id: str) -> list[ClientRecord]:
        """An accountant's client records in insertion order."""
        return list(self.client_records.get(accountant_id, {}).values())

    def iter_client_records(self) -> Iterator[tuple[str, ClientRecord]]:
        for accountant_id, owned in self.client_records.items():
            for record in owned.values():
                yield accountant_id, record

    def all_ids(self) -> set[str]:
        """Every record id currently in use, across all collections."""
        ids = set(self.users) | set(self.documents) | set(self.obligations)
        for _, record in self.iter_client_records():
            ids.add(record.id)
        return ids

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def put_user(self, user: UserAccount) -> None:
        self.users[user.id] = user
        self._dirty.add(codec.USERS)

    def put_client_record(self, record: ClientRecord) -> None:
        owned = self.client_records.setdefault(record.owner_accountant_id, {})
        owned[record.id] = record
        self._dirty.add(codec.CLIENT_RECORDS)

    def remove_client_record(self, accountant_id: str, record_id: str) -> ClientRecord:
        removed = self.client_records[accountant_id].pop(record_id)
        self._dirty.add(codec.CLIENT_RECORDS)
        return removed

    def put_document(self, document: DocumentRecord) -> None:
        self.documents[document.id] = document
        self._dirty.add(codec.DOCUMENTS)

    def put_obligation(self, obligation: TaxObligationRecord) -> None:
        self.obligations[obligation.id] = obligation
        self._dirty.add(codec.OBLIGATIONS)

    def set_session(self, session: SessionState | None) -> None:
        self.session = session
        self._dirty.add(codec.SESSION)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[EntityStore]:
        """
        Provide an all-or-nothing scope around one command.

        Postconditions: On normal exit, touched collections are saved. On
            exception, including a failed save, every collection and the
            session are restored to their state at entry and the exception
            is re-raised.

        A nested ``transaction()`` joins the outer scope.

        Usage:
            with store.transaction():
                store.put_user(user)
                store.put_client_record(record)
        """
        if self._in_transaction:
            yield self
            return

        snapshot = self._snapshot()
        self._in_transaction = True
        self._dirty.clear()
        saved: list[str] = []
        try:
            yield self
            dirty = sorted(self._dirty)
            self._flush(dirty, saved)
        except Exception:
            self._restore(snapshot)
            logger.warning("transaction_rolled_back", exc_info=True)
            if saved:
                self._rewrite_saved(saved)
            raise
        finally:
            self._dirty.clear()
            self._in_transaction = False
        logger.debug("transaction_committed", extra={"collections": dirty})

    def _snapshot(self) -> dict[str, Any]:
        # Records are frozen, so copying the containers is enough.
        return {
            codec.USERS: dict(self.users),
            codec.CLIENT_RECORDS: {
                accountant_id: dict(owned)
                for accountant_id, owned in self.client_records.items()
            },
            codec.DOCUMENTS: dict(self.documents),
            codec.OBLIGATIONS: dict(self.obligations),
            codec.SESSION: self.session,
        }

    def _restore(self, snapshot: dict[str, Any]) -> None:
        self.users = snapshot[codec.USERS]
        self.client_records = snapshot[codec.CLIENT_RECORDS]
        self.documents = snapshot[codec.DOCUMENTS]
        self.obligations = snapshot[codec.OBLIGATIONS]
        self.session = snapshot[codec.SESSION]

    def _flush(self, names: list[str], saved: list[str]) -> None:
        if self._persistence is None:
            return
        for name in names:
            try:
                self._persistence.save_collection(name, self.encode(name))
            except OSError as e:
                raise PersistenceError(name, str(e), operation="save") from e
            saved.append(name)

    def _rewrite_saved(self, names: list[str]) -> None:
        # Collections saved before a failing one go back to the restored state.
        try:
            self._flush(names, [])
        except PersistenceError:
            logger.error(
                "rollback_save_failed", extra={"collections": names}, exc_info=True
            )

    def encode(self, name: str) -> Any | None:
        """JSON-compatible form of one collection."""
        if name == codec.USERS:
            return codec.encode_users(self.users)
        if name == codec.CLIENT_RECORDS:
            return codec.encode_client_records(self.client_records)
        if name == codec.DOCUMENTS:
            return codec.encode_documents(self.documents)
        if name == codec.OBLIGATIONS:
            return codec.encode_obligations(self.obligations)
        if name == codec.SESSION:
            # Only a remember-me session survives a restart.
            if self.session is None or not self.session.remember_me:
                return None
            return {"user_id": self.session.user_id, "remember_me": True}
        raise KeyError(f"Unknown collection: {name}")
