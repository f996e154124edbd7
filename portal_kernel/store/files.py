"""
File collaborators -- turn uploaded bytes into opaque file references.

The kernel never interprets a reference; it only stores it on the document.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol
from uuid import uuid4

from portal_kernel.domain.entities import FileMeta
from portal_kernel.logging_config import get_logger

logger = get_logger("store.files")


class FileReferenceProvider(Protocol):
    """Stores an uploaded file and returns a stable, dereferenceable reference."""

    def reference_for(self, file_meta: FileMeta) -> str:
        ...


def _safe_name(file_meta: FileMeta) -> str:
    # Drop any directory part a browser may send along.
    name = Path(file_meta.file_name or "upload").name
    return name or "upload"


class InMemoryFileStore:
    """Keeps uploads in a dict under ``memory://<n>/<name>`` references."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}

    def reference_for(self, file_meta: FileMeta) -> str:
        reference = f"memory://{len(self._blobs) + 1}/{_safe_name(file_meta)}"
        self._blobs[reference] = file_meta.content or b""
        return reference

    def open(self, reference: str) -> bytes:
        return self._blobs[reference]


class LocalFileStore:
    """Writes uploads under ``root`` and returns ``file://`` URIs."""

    def __init__(self, root: Path | str):
        self.root = Path(root)

    def reference_for(self, file_meta: FileMeta) -> str:
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / f"{uuid4().hex}-{_safe_name(file_meta)}"
        path.write_bytes(file_meta.content or b"")
        logger.debug(
            "file_stored",
            extra={"path": str(path), "size": len(file_meta.content or b"")},
        )
        return path.resolve().as_uri()
