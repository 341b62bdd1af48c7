# carelink/db/store.py
# Single JSON document store (load whole / save whole)
from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Protocol

from carelink.config.settings import settings

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

COLLECTIONS = (
    "users",
    "patients",
    "caretakers",
    "notifications",
    "locationHistory",
    "meds",
    "journals",
    "appointments",
    "webpushSubscriptions",
    "medHistory",
)


def empty_document() -> Document:
    return {name: [] for name in COLLECTIONS}


def normalize_document(doc: Any) -> Document:
    """
    Fill in any missing top-level sequence.
    Unknown keys are kept as they are.
    """
    if not isinstance(doc, dict):
        raise ValueError("document root must be a JSON object")
    for name in COLLECTIONS:
        if not isinstance(doc.get(name), list):
            doc[name] = []
    return doc


class DocumentStore(Protocol):
    def load(self) -> Document: ...

    def save(self, doc: Document) -> None: ...

    def transaction(self) -> Any: ...


class JsonDocumentStore:
    """
    The whole document lives in one JSON file.

    - load(): read and parse the file. Missing file -> empty document (written out).
      Unparsable file -> moved aside to <name>.corrupt-<ms>, empty document.
    - save(): serialize everything, write to a temp file, os.replace over the target.
    - transaction(): load -> yield -> save, all under one lock so concurrent
      handlers in this process never lose each other's updates.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)
        self._lock = threading.RLock()

    def load(self) -> Document:
        with self._lock:
            try:
                raw = self.path.read_text(encoding="utf-8")
            except FileNotFoundError:
                logger.info("[store] %s not found, initializing empty document", self.path)
                doc = empty_document()
                self.save(doc)
                return doc

            try:
                return normalize_document(json.loads(raw))
            except ValueError as e:
                backup = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time() * 1000)}")
                os.replace(self.path, backup)
                logger.warning(
                    "[store] unreadable document %s (%s); moved to %s and reset to empty",
                    self.path, e, backup,
                )
                doc = empty_document()
                self.save(doc)
                return doc

    def save(self, doc: Document) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(doc, f, indent=2, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        with self._lock:
            doc = self.load()
            yield doc
            self.save(doc)


def _build_store() -> DocumentStore:
    if settings.store_backend == "sql":
        from carelink.db.database import SqlDocumentStore

        return SqlDocumentStore(settings.database_url)
    return JsonDocumentStore(settings.data_file)


store: DocumentStore = _build_store()


# FastAPI dependency
def get_store() -> DocumentStore:
    return store
