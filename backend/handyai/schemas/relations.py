"""Records with joined relations. Only build these from rows whose relations were eagerly loaded."""

from typing import Optional

from handyai.schemas.customer import CustomerRead
from handyai.schemas.invoice import InvoiceRead
from handyai.schemas.offer import OfferRead


class OfferWithCustomer(OfferRead):
    customer: CustomerRead


class OfferDetail(OfferWithCustomer):
    invoice: Optional[InvoiceRead] = None


class InvoiceWithRelations(InvoiceRead):
    customer: CustomerRead
    offer: OfferRead
