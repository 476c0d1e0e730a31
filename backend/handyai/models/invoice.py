import enum

from sqlalchemy import Column, String, DateTime, Float, ForeignKey
from sqlalchemy.orm import relationship

from handyai.db.base_class import Base
from handyai.models._common import generate_id, utcnow


class InvoiceStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    SENT = "SENT"
    PAID = "PAID"


class Invoice(Base):
    __tablename__ = "invoices"  # type: ignore[assignment]

    id = Column(String(32), primary_key=True, default=generate_id)
    customer_id = Column(String(32), ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    # One invoice per offer
    offer_id = Column(String(32), ForeignKey("offers.id", ondelete="CASCADE"), nullable=False, unique=True)
    invoice_number = Column(String(32), nullable=False, unique=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    status = Column(String(16), nullable=False, default=InvoiceStatus.DRAFT.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="invoices")
    offer = relationship("Offer", back_populates="invoice")
