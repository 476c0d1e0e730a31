import enum

from sqlalchemy import Column, String, DateTime, Float, Text, ForeignKey
from sqlalchemy.orm import relationship

from handyai.db.base_class import Base
from handyai.models._common import generate_id, utcnow


class OfferStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class Offer(Base):
    __tablename__ = "offers"  # type: ignore[assignment]

    id = Column(String(32), primary_key=True, default=generate_id)
    customer_id = Column(String(32), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    offer_number = Column(String(32), nullable=False, unique=True)
    job_description = Column(Text, nullable=True)
    measurements = Column(Text, nullable=True)
    materials_cost = Column(Float, nullable=False, default=0.0)
    labor_cost = Column(Float, nullable=False, default=0.0)
    total_cost = Column(Float, nullable=False, default=0.0)
    status = Column(String(16), nullable=False, default=OfferStatus.DRAFT.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="offers")
    invoice = relationship("Invoice", back_populates="offer", uselist=False, passive_deletes=True)
