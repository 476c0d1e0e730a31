"""Argument models for the CRM tools. Field names are validated in their camelCase form."""

from typing import Optional

from pydantic import Field

from handyai.schemas.appointment import AppointmentCreate
from handyai.schemas.common import CamelModel
from handyai.schemas.customer import CustomerCreate, CustomerUpdate
from handyai.schemas.invoice import InvoiceCreate, InvoiceUpdate
from handyai.schemas.offer import OfferCreate, OfferUpdate

# German labels used in validation messages shown to the user
FIELD_LABELS = {
    "id": "ID",
    "firstName": "Vorname",
    "lastName": "Nachname",
    "email": "E-Mail-Adresse",
    "phone": "Telefonnummer",
    "address": "Adresse",
    "isProspect": "Interessent-Status",
    "search": "Suchbegriff",
    "customerId": "Kunden-ID",
    "offerId": "Angebots-ID",
    "jobDescription": "Arbeitsbeschreibung",
    "measurements": "Maße",
    "materialsCost": "Materialkosten",
    "laborCost": "Arbeitskosten",
    "totalCost": "Gesamtkosten",
    "status": "Status",
    "date": "Datum",
    "notes": "Notizen",
    "photos": "Fotos",
}


class CreateCustomerInput(CustomerCreate):
    pass


class GetCustomersInput(CamelModel):
    search: Optional[str] = None


class UpdateCustomerInput(CustomerUpdate):
    id: str = Field(..., min_length=1)


class DeleteCustomerInput(CamelModel):
    id: str = Field(..., min_length=1)


class CreateOfferInput(OfferCreate):
    pass


class GetOffersInput(CamelModel):
    customer_id: Optional[str] = None


class UpdateOfferInput(OfferUpdate):
    id: str = Field(..., min_length=1)


class CreateInvoiceInput(InvoiceCreate):
    pass


class GetInvoicesInput(CamelModel):
    customer_id: Optional[str] = None


class UpdateInvoiceStatusInput(InvoiceUpdate):
    id: str = Field(..., min_length=1)


class CreateAppointmentInput(AppointmentCreate):
    pass


class GetStatisticsInput(CamelModel):
    pass
