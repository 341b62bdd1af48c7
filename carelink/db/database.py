# carelink/db/database.py
# SQL-backed document store (same load/save/transaction contract as the JSON file)
from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from carelink.db.store import Document, empty_document, normalize_document

logger = logging.getLogger(__name__)

Base = declarative_base()

DOCUMENT_NAME = "main"


class SqlDocumentStore:
    """
    Keeps the whole document as one JSON row in the `documents` table.
    transaction() runs load -> mutate -> save inside a single DB transaction
    (row locked with SELECT ... FOR UPDATE where the dialect supports it).
    """

    def __init__(self, url: str):
        # model import registers the table on Base.metadata
        from carelink.models.document_row import DocumentRow  # noqa: F401

        self.engine = create_engine(url, pool_pre_ping=True)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        Base.metadata.create_all(bind=self.engine)

    def _get_row(self, db: Session, for_update: bool = False):
        from carelink.models.document_row import DocumentRow

        stmt = select(DocumentRow).where(DocumentRow.name == DOCUMENT_NAME)
        if for_update:
            stmt = stmt.with_for_update()
        return db.execute(stmt).scalars().first()

    def _read(self, db: Session, for_update: bool = False) -> Document:
        row = self._get_row(db, for_update=for_update)
        if row is None:
            return empty_document()
        try:
            return normalize_document(json.loads(row.body))
        except ValueError as e:
            logger.warning("[store] unreadable document row (%s); reset to empty", e)
            return empty_document()

    def _write(self, db: Session, doc: Document) -> None:
        from carelink.models.document_row import DocumentRow

        body = json.dumps(doc, ensure_ascii=False)
        row = self._get_row(db)
        if row:
            row.body = body
        else:
            db.add(DocumentRow(name=DOCUMENT_NAME, body=body))

    def load(self) -> Document:
        with self.SessionLocal() as db:
            return self._read(db)

    def save(self, doc: Document) -> None:
        with self.SessionLocal() as db:
            try:
                self._write(db, doc)
                db.commit()
            except Exception:
                db.rollback()
                raise

    @contextmanager
    def transaction(self) -> Iterator[Document]:
        with self.SessionLocal() as db:
            try:
                doc = self._read(db, for_update=True)
                yield doc
                self._write(db, doc)
                db.commit()
            except Exception:
                db.rollback()
                raise
