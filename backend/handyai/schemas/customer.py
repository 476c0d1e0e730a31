from datetime import datetime
from typing import List, Optional

from pydantic import EmailStr, Field, field_validator

from handyai.schemas.common import CamelModel, blank_to_none
from handyai.schemas.offer import OfferRead
from handyai.schemas.invoice import InvoiceRead
from handyai.schemas.appointment import AppointmentRead


class CustomerCreate(CamelModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    is_prospect: bool = True

    @field_validator("email", "phone", "address", mode="before")
    @classmethod
    def _clear_blank(cls, value):
        return blank_to_none(value)


class CustomerUpdate(CamelModel):
    """Partial update: only fields present in the payload are written."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    is_prospect: Optional[bool] = None

    @field_validator("email", "phone", "address", mode="before")
    @classmethod
    def _clear_blank(cls, value):
        return blank_to_none(value)

    @field_validator("first_name", "last_name", "is_prospect")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class CustomerRead(CamelModel):
    id: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_prospect: bool
    created_at: datetime
    updated_at: datetime


class RelationCounts(CamelModel):
    offers: int = 0
    invoices: int = 0
    appointments: int = 0


class CustomerListItem(CustomerRead):
    relation_counts: RelationCounts = Field(
        default_factory=RelationCounts,
        validation_alias="_count",
        serialization_alias="_count",
    )

    @classmethod
    def from_summary(cls, summary) -> "CustomerListItem":
        item = cls.model_validate(summary.customer)
        item.relation_counts = RelationCounts(
            offers=summary.offers,
            invoices=summary.invoices,
            appointments=summary.appointments,
        )
        return item


class CustomerDetail(CustomerRead):
    offers: List[OfferRead] = []
    invoices: List[InvoiceRead] = []
    appointments: List[AppointmentRead] = []
