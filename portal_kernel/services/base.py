"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and command-scope contract for every
    service that mutates the entity store. A command runs inside
    ``_command()``, which binds the log context, opens a store transaction
    and, in strict mode, re-checks every invariant before committing.

Architecture position:
    Kernel > Services -- imperative shell over the store.

Invariants enforced:
    - Atomicity: a command that raises leaves the store exactly as it found
      it (delegated to ``EntityStore.transaction``).
    - Strict mode: an invariant violation raises ``InvariantViolationError``
      inside the transaction, which rolls the command back.
"""

from __future__ import annotations

from abc import ABC
from collections.abc import Iterator
from contextlib import contextmanager

from portal_kernel.domain.clock import Clock, SystemClock
from portal_kernel.domain.entities import UserAccount
from portal_kernel.domain.identifiers import IdentifierSource, UuidIdentifierSource
from portal_kernel.exceptions import InvariantViolationError, UserNotFoundError
from portal_kernel.invariants import find_violations
from portal_kernel.logging_config import LogContext
from portal_kernel.selectors.identity_resolver import IdentityResolver
from portal_kernel.store.entity_store import EntityStore


class BaseService(ABC):
    """
    Abstract base class for all kernel services.

    Contract:
        Receives the shared ``EntityStore`` plus injected clock and
        identifier sources. Services never read wall-clock time or generate
        random ids themselves. Ids already in the store are reserved
        with the identifier source on construction.
    """

    def __init__(
        self,
        store: EntityStore,
        clock: Clock | None = None,
        ids: IdentifierSource | None = None,
        strict_invariants: bool = False,
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self.ids = ids or UuidIdentifierSource()
        self.ids.reserve(store.all_ids())
        self.strict_invariants = strict_invariants
        self.resolver = IdentityResolver(store)

    @contextmanager
    def _command(
        self,
        name: str,
        actor_id: str | None = None,
        entity_id: str | None = None,
    ) -> Iterator[EntityStore]:
        """Run one command atomically with its log context bound."""
        with LogContext.bind(command=name, actor_id=actor_id, entity_id=entity_id):
            with self.store.transaction() as store:
                yield store
                if self.strict_invariants:
                    violations = find_violations(store)
                    if violations:
                        raise InvariantViolationError(name, violations)

    def _require_user(self, user_id: str) -> UserAccount:
        user = self.resolver.find_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user
