"""
Module: portal_kernel.selectors.base
Responsibility: Abstract base class for all read-only selectors. Selectors
    form the query side of the kernel, giving structured read access to the
    entity store without mutation capability.
Architecture position: Kernel > Selectors. May import from store/ and
    domain/. MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors never call the store's ``put_*``,
      ``remove_*`` or ``set_session`` helpers.
    - No match is a normal outcome: selectors return None or an empty list
      instead of raising.
"""

from abc import ABC

from portal_kernel.store.entity_store import EntityStore


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors receive the store from the caller and return records or
        computed views. They MUST NOT mutate the store.
    """

    def __init__(self, store: EntityStore):
        self.store = store
