from datetime import datetime

from pydantic import Field

from handyai.models.invoice import InvoiceStatus
from handyai.schemas.common import CamelModel


class InvoiceCreate(CamelModel):
    offer_id: str = Field(..., min_length=1)


class InvoiceUpdate(CamelModel):
    status: InvoiceStatus


class InvoiceRead(CamelModel):
    id: str
    customer_id: str
    offer_id: str
    invoice_number: str
    total_amount: float
    status: InvoiceStatus
    created_at: datetime
    updated_at: datetime
