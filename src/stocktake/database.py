"""SQLAlchemy backed key-value blob store."""
from __future__ import annotations

from datetime import datetime, timezone
import json
from typing import Any, Optional

from sqlalchemy import DateTime, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""


class Blob(Base):
    __tablename__ = "blobs"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )


class SqlBlobStore:
    """Store JSON values as text rows keyed by name."""

    def __init__(self, database_url: str, *, echo: bool = False, engine: Optional[Engine] = None) -> None:
        self.engine = engine or create_engine(database_url, echo=echo)
        self.SessionFactory = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)

    def load(self, key: str) -> Any:
        with self.SessionFactory() as session:
            row = session.execute(select(Blob).where(Blob.key == key)).scalar_one_or_none()
            if row is None:
                return None
            return json.loads(row.value)

    def save(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self.SessionFactory.begin() as session:
            row = session.get(Blob, key)
            if row is None:
                session.add(Blob(key=key, value=payload))
            else:
                row.value = payload

    def delete(self, key: str) -> None:
        with self.SessionFactory.begin() as session:
            row = session.get(Blob, key)
            if row is not None:
                session.delete(row)

    def close(self) -> None:
        self.engine.dispose()


__all__ = ["Base", "Blob", "SqlBlobStore"]
