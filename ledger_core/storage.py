"""Persistence backends for the ledger store."""

from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .exceptions import PersistenceError

Document = Dict[str, Any]


class JSONStorage:
    """File-based JSON storage with crash-safe writes.

    Each resource is a single JSON object holding every table, so replacing
    the file commits all rows of a ledger operation at once.
    """

    def __init__(self, base_path: Path) -> None:
        self._base_path = Path(base_path)
        self._base_path.mkdir(parents=True, exist_ok=True)

    def load(self, resource: str) -> Optional[Document]:
        path = self._base_path / resource
        if not path.exists():
            return None
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupted JSON data in {path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read from {path}") from exc

        if not isinstance(payload, dict):
            raise PersistenceError(f"Expected object payload in {path}")
        return payload

    def save(self, resource: str, document: Document) -> None:
        path = self._base_path / resource
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(document, handle, indent=2)
                handle.flush()
                os.fsync(handle.fileno())
            # Path.replace is an atomic rename on POSIX.
            temp_path.replace(path)
        except (OSError, TypeError, ValueError) as exc:
            raise PersistenceError(f"Unable to write to {path}") from exc

    @property
    def base_path(self) -> Path:
        return self._base_path


class MemoryStorage:
    """In-process storage keeping deep copies of saved documents."""

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}

    def load(self, resource: str) -> Optional[Document]:
        document = self._documents.get(resource)
        return copy.deepcopy(document) if document is not None else None

    def save(self, resource: str, document: Document) -> None:
        self._documents[resource] = copy.deepcopy(document)
