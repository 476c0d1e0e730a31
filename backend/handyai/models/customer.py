from sqlalchemy import Column, String, DateTime, Boolean, Text
from sqlalchemy.orm import relationship

from handyai.db.base_class import Base
from handyai.models._common import generate_id, utcnow


class Customer(Base):
    __tablename__ = "customers"  # type: ignore[assignment]

    id = Column(String(32), primary_key=True, default=generate_id)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=True, index=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    is_prospect = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow, index=True)

    offers = relationship("Offer", back_populates="customer", passive_deletes=True)
    invoices = relationship("Invoice", back_populates="customer", passive_deletes=True)
    appointments = relationship("Appointment", back_populates="customer", passive_deletes=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
