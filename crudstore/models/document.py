"""StoredDocument ORM — one row per record of the reference document store.

Invariants:
    - (collection, key) is unique; key mirrors the document's "_id"
    - body holds the full document, "_id" included
    - pk is monotonically increasing: insertion order is recoverable, but the
      store never promises it to callers

Design Decisions:
    - JSON column for body: records are schemaless dicts, queried in Python
    - Many collections share one table, partitioned by the collection column
"""

from sqlalchemy import Integer, String, JSON, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from crudstore.db.base import Base


class StoredDocument(Base):
    """A schemaless record stored as JSON."""
    __tablename__ = "documents"
    __table_args__ = (
        UniqueConstraint("collection", "key", name="uq_documents_collection_key"),
    )

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    collection: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(200), nullable=False)
    body: Mapped[dict] = mapped_column(JSON, nullable=False)
