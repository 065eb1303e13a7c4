from sqlalchemy import JSON, Column, DateTime, Index, Integer, String
from sqlalchemy.dialects.postgresql import JSONB

from cia_api.database import Base
from cia_api.utils import utcnow


class Document(Base):
    """One document of any collection.

    ``collection`` is a path: top-level collections are plain names
    (``clients``), sub-collections are nested (``surveys/<id>/responses``).
    """

    __tablename__ = "documents"

    collection = Column(String(255), primary_key=True)
    id = Column(String(64), primary_key=True)
    data = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=dict)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_documents_collection_created_at", "collection", "created_at"),
    )
