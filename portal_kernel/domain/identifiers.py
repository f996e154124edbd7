"""
Identifier sources -- injectable record id generation.

Services never call ``uuid4()`` directly; they ask an ``IdentifierSource``
for the next id of a given kind. Production uses random UUIDs, tests use a
sequential source so that identical command sequences yield identical
stores.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from collections.abc import Iterable
from uuid import uuid4

# Id prefixes per record kind, matching the ids used by the portal front end.
USER_PREFIX = "u"
CLIENT_PREFIX = "c"
DOCUMENT_PREFIX = "d"
OBLIGATION_PREFIX = "t"


class IdentifierSource(ABC):
    """Produces fresh, unique record ids."""

    @abstractmethod
    def next_id(self, prefix: str) -> str:
        ...

    def reserve(self, taken: Iterable[str]) -> None:
        """Mark ids already present in a store as unavailable."""


class UuidIdentifierSource(IdentifierSource):
    """Random ids of the form ``<prefix>-<32 hex chars>``."""

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{uuid4().hex}"


class SequentialIdentifierSource(IdentifierSource):
    """
    Deterministic ids ``<prefix><n>`` with one counter per prefix.

    ``taken`` (or a later ``reserve``) lets a source resume after ids
    already present in a loaded store so it never hands out a duplicate.
    Services reserve their store's ids when they are built.
    """

    def __init__(self, start: int = 1, taken: set[str] | None = None):
        self._counters: dict[str, int] = defaultdict(lambda: start)
        self._taken = set(taken or ())

    def next_id(self, prefix: str) -> str:
        while True:
            candidate = f"{prefix}{self._counters[prefix]}"
            self._counters[prefix] += 1
            if candidate not in self._taken:
                self._taken.add(candidate)
                return candidate

    def reserve(self, taken: Iterable[str]) -> None:
        self._taken.update(taken)
