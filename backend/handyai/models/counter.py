from sqlalchemy import Column, String, Integer

from handyai.db.base_class import Base


class DocumentCounter(Base):
    """Last issued sequence number per document kind and year, e.g. scope 'ang:2026'."""

    __tablename__ = "document_counters"  # type: ignore[assignment]

    scope = Column(String(32), primary_key=True)
    value = Column(Integer, nullable=False, default=0)
