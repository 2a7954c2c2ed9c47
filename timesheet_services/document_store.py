"""
timesheet_services.document_store -- Uploaded document storage.

Responsibility:
    Stores uploaded report and invoice files under a root directory.
    Paths handed to the store are relative; the store refuses any path that
    would resolve outside its root.

    The document reporting path writes in two steps so a rejected upload
    never leaves a file behind: ``stage`` writes bytes under a per-attempt
    name, and ``promote`` atomically moves the staged file to its final
    name once validation and persistence have succeeded.

Architecture position:
    Services layer.  The sole file-system boundary of the system.

Failure modes:
    - ``DocumentStorageError`` wrapping any ``OSError``, or a path escaping
      the root.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol, runtime_checkable
from uuid import uuid4

from timesheet_kernel.exceptions import DocumentStorageError
from timesheet_kernel.logging_config import get_logger

logger = get_logger("services.document_store")

_STAGING_DIR = ".staging"


@runtime_checkable
class DocumentStore(Protocol):
    """Pluggable storage for uploaded files."""

    def write(self, relative_path: str, content: bytes) -> str: ...

    def read(self, relative_path: str) -> bytes: ...

    def exists(self, relative_path: str) -> bool: ...

    def delete(self, relative_path: str) -> bool: ...

    def stage(self, content: bytes, suffix: str = "") -> str: ...

    def promote(self, staged_path: str, relative_path: str) -> str: ...


class LocalDocumentStore:
    """DocumentStore on the local file system."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).resolve()

    @property
    def root(self) -> Path:
        return self._root

    def _resolve(self, relative_path: str) -> Path:
        target = (self._root / relative_path).resolve()
        if target != self._root and self._root not in target.parents:
            raise DocumentStorageError(relative_path, "path escapes storage root")
        return target

    def write(self, relative_path: str, content: bytes) -> str:
        """Write ``content`` to ``relative_path`` (replacing any existing file)."""
        target = self._resolve(relative_path)
        tmp = target.with_name(f".{target.name}.{uuid4().hex}.tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with tmp.open("wb") as handle:
                handle.write(content)
            os.replace(tmp, target)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise DocumentStorageError(relative_path, str(exc)) from exc
        logger.debug(
            "document_written",
            extra={"path": relative_path, "size_bytes": len(content)},
        )
        return relative_path

    def read(self, relative_path: str) -> bytes:
        target = self._resolve(relative_path)
        try:
            return target.read_bytes()
        except OSError as exc:
            raise DocumentStorageError(relative_path, str(exc)) from exc

    def exists(self, relative_path: str) -> bool:
        return self._resolve(relative_path).is_file()

    def delete(self, relative_path: str) -> bool:
        """Remove a file; returns False if it was not there."""
        target = self._resolve(relative_path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise DocumentStorageError(relative_path, str(exc)) from exc
        logger.debug("document_deleted", extra={"path": relative_path})
        return True

    def stage(self, content: bytes, suffix: str = "") -> str:
        """Write ``content`` under a fresh staging name and return that name."""
        staged = f"{_STAGING_DIR}/{uuid4().hex}{suffix}"
        return self.write(staged, content)

    def promote(self, staged_path: str, relative_path: str) -> str:
        """Atomically move a staged file to its final name."""
        source = self._resolve(staged_path)
        target = self._resolve(relative_path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(source, target)
        except OSError as exc:
            raise DocumentStorageError(relative_path, str(exc)) from exc
        logger.debug(
            "document_promoted",
            extra={"staged_path": staged_path, "path": relative_path},
        )
        return relative_path
