from sqlalchemy import Column, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship

from handyai.db.base_class import Base
from handyai.models._common import generate_id, utcnow


class Appointment(Base):
    __tablename__ = "appointments"  # type: ignore[assignment]

    id = Column(String(32), primary_key=True, default=generate_id)
    customer_id = Column(String(32), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime(timezone=True), nullable=False, index=True)
    notes = Column(Text, nullable=True)
    photos = Column(Text, nullable=True)  # free text, e.g. comma-separated URLs
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="appointments")
