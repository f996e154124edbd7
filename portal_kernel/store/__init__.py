"""
Entity store and its persistence collaborators.
"""

from portal_kernel.store.entity_store import EntityStore
from portal_kernel.store.persistence import (
    InMemoryPersistence,
    JsonDirectoryPersistence,
    PersistenceGateway,
)

__all__ = [
    "EntityStore",
    "InMemoryPersistence",
    "JsonDirectoryPersistence",
    "PersistenceGateway",
]
