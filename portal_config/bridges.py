"""
Config → Kernel Bridges.

Functions that turn a ``PortalConfig`` into wired kernel objects. These
live in portal_config because the kernel must NEVER import portal_config.

Usage:
    from portal_config import get_active_config
    from portal_config.bridges import build_portal

    portal = build_portal(get_active_config())
"""

from __future__ import annotations

from pathlib import Path

from portal_config.schema import PortalConfig
from portal_kernel.domain.clock import Clock
from portal_kernel.domain.identifiers import IdentifierSource
from portal_kernel.logging_config import configure_logging
from portal_kernel.services.portal import Portal
from portal_kernel.store.entity_store import EntityStore
from portal_kernel.store.files import (
    FileReferenceProvider,
    InMemoryFileStore,
    LocalFileStore,
)
from portal_kernel.store.persistence import (
    InMemoryPersistence,
    JsonDirectoryPersistence,
    PersistenceGateway,
)


def build_persistence(config: PortalConfig) -> PersistenceGateway:
    """JSON files under ``data_dir`` when set, otherwise process memory."""
    if config.data_dir:
        return JsonDirectoryPersistence(Path(config.data_dir))
    return InMemoryPersistence()


def build_file_store(config: PortalConfig) -> FileReferenceProvider:
    if config.upload_dir:
        return LocalFileStore(Path(config.upload_dir))
    return InMemoryFileStore()


def build_portal(
    config: PortalConfig,
    persistence: PersistenceGateway | None = None,
    file_store: FileReferenceProvider | None = None,
    clock: Clock | None = None,
    ids: IdentifierSource | None = None,
) -> Portal:
    """Load the store and wire every kernel service from ``config``.

    Explicit collaborators take precedence over the ones the config
    would build; tests pass in-memory ones.
    """
    configure_logging(level=config.log_level)

    store = EntityStore.load(
        persistence if persistence is not None else build_persistence(config),
        seed_demo_obligations=config.seed_demo_obligations,
        demo_owner_user_id=config.demo_owner_user_id,
    )
    return Portal.create(
        store,
        clock=clock,
        ids=ids,
        file_store=file_store if file_store is not None else build_file_store(config),
        strict_invariants=config.strict_invariants,
        password_min_length=config.password_min_length,
        latency_seconds=config.auth_latency_seconds,
        invite_base_url=config.invite_base_url,
        inviter_display_name=config.inviter_display_name,
    )
