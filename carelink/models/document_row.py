# carelink/models/document_row.py
from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from carelink.db.database import Base


class DocumentRow(Base):
    __tablename__ = "documents"

    name: Mapped[str] = mapped_column(String(64), primary_key=True)

    # JSON text of the whole document
    body: Mapped[str] = mapped_column(Text, nullable=False)

    updated_at: Mapped[dt.datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )
