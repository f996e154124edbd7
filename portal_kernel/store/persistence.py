"""
Persistence collaborators.

The kernel needs exactly two things from durable storage: load a named
collection at startup, and save it after every successful mutation. The
stored format is the adapter's business; the kernel hands over
JSON-compatible data produced by ``portal_kernel.store.serialization``.

``None`` is both "nothing stored" on load and "clear the stored value" on
save (used by logout to drop the remember-me pointer).
"""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Protocol

from portal_kernel.exceptions import PersistenceError
from portal_kernel.logging_config import get_logger

logger = get_logger("store.persistence")


class PersistenceGateway(Protocol):
    """Durable storage for the store's named collections."""

    def load_collection(self, name: str) -> Any | None:
        """Return the stored data for ``name`` or None when absent."""
        ...

    def save_collection(self, name: str, data: Any | None) -> None:
        """Replace the stored data for ``name``; None removes it."""
        ...


class InMemoryPersistence:
    """
    Dictionary-backed persistence for tests and ephemeral sessions.

    Keeps a deep copy of every save so later mutations of the caller's data
    cannot leak into the stored value. ``save_log`` records the collection
    names in save order.
    """

    def __init__(self, initial: dict[str, Any] | None = None):
        self._collections: dict[str, Any] = copy.deepcopy(initial or {})
        self.save_log: list[str] = []

    def load_collection(self, name: str) -> Any | None:
        return copy.deepcopy(self._collections.get(name))

    def save_collection(self, name: str, data: Any | None) -> None:
        self.save_log.append(name)
        if data is None:
            self._collections.pop(name, None)
        else:
            self._collections[name] = copy.deepcopy(data)

    def stored(self, name: str) -> Any | None:
        return self._collections.get(name)


class JsonDirectoryPersistence:
    """
    One ``<name>.json`` file per collection inside ``root``.

    Writes go to a temporary sibling file first and are moved into place
    with ``os.replace``, so a reader never sees a half-written collection.
    File-system errors surface as ``PersistenceError``.
    """

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def load_collection(self, name: str) -> Any | None:
        path = self._path(name)
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise PersistenceError(name, f"malformed JSON in {path}: {e}") from e
        except OSError as e:
            raise PersistenceError(name, f"{path}: {e}") from e

    def save_collection(self, name: str, data: Any | None) -> None:
        path = self._path(name)
        try:
            if data is None:
                path.unlink(missing_ok=True)
                logger.debug("collection_cleared", extra={"collection": name})
                return

            self.root.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceError(name, f"{path}: {e}", operation="save") from e
        logger.debug("collection_saved", extra={"collection": name})
