"""
CRM Tools - customer, offer, invoice and appointment operations for the assistant

Each tool is a definition (argument model with the LLM-facing JSON schema
derived from it, render template, German failure message) plus an async
handler. Handlers receive the CRMStore and the validated arguments, make the
one store call the tool stands for and return a success envelope. Business failures are raised as CRMError
and turned into failure envelopes by the ToolExecutor.
"""

from typing import Dict, Any, List, Tuple
import logging

from handyai.schemas.appointment import AppointmentRead
from handyai.schemas.customer import CustomerListItem, CustomerRead
from handyai.schemas.relations import InvoiceWithRelations, OfferWithCustomer
from handyai.schemas.tools import (
    CreateAppointmentInput,
    CreateCustomerInput,
    CreateInvoiceInput,
    CreateOfferInput,
    DeleteCustomerInput,
    GetCustomersInput,
    GetInvoicesInput,
    GetOffersInput,
    GetStatisticsInput,
    UpdateCustomerInput,
    UpdateInvoiceStatusInput,
    UpdateOfferInput,
)
from handyai.services.crm.status import INVOICE_STATUS_LABELS, OFFER_STATUS_LABELS
from handyai.services.crm.store import CRMStore
from handyai.services.tools.registry import ToolHandler, ToolRegistry
from handyai.services.tools.schema import (
    ToolCategory,
    ToolDefinition,
    ToolSchema,
    parameters_from_model,
    success_envelope,
)
from handyai.services.tools.templates import (
    SummaryTemplate,
    TableTemplate,
    TemplateField,
    format_customer_type,
    format_date,
    format_datetime,
    format_euro,
    format_status,
)

logger = logging.getLogger("handyai.tools.crm")

_CATALOG: List[Tuple[ToolDefinition, ToolHandler]] = []

_CUSTOMER_NAME = "{customer[firstName]} {customer[lastName]}"


def _tool(definition: ToolDefinition):
    """Add the decorated handler to the CRM catalog."""
    def decorator(func: ToolHandler) -> ToolHandler:
        _CATALOG.append((definition, func))
        return func
    return decorator


def build_crm_registry() -> ToolRegistry:
    """Create a registry holding every CRM tool."""
    registry = ToolRegistry()
    for definition, handler in _CATALOG:
        registry.register_tool(definition, handler)
    logger.info(f"CRM tool registry built with {len(registry)} tools")
    return registry


# =============================================================================
# Customers
# =============================================================================

CREATE_CUSTOMER_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="create_customer",
        description=(
            "Erstellt einen neuen Kunden oder Interessenten. "
            "Verwenden, wenn der Nutzer neue Kundendaten mit mindestens Vor- und Nachname nennt."
        ),
        parameters=parameters_from_model(CreateCustomerInput, {
            "firstName": "Vorname des Kunden (erforderlich)",
            "lastName": "Nachname des Kunden (erforderlich)",
            "email": "E-Mail-Adresse (optional)",
            "phone": "Telefonnummer (optional)",
            "address": "Adresse (optional)",
            "isProspect": "true = Interessent, false = Kunde (Standard: true)",
        }),
    ),
    category=ToolCategory.CUSTOMER,
    input_model=CreateCustomerInput,
    render_template=SummaryTemplate(
        entity_key="customer",
        fields=[
            TemplateField("Typ", "isProspect", format_customer_type),
            TemplateField("E-Mail", "email"),
            TemplateField("Telefon", "phone"),
            TemplateField("Adresse", "address"),
        ],
    ),
    failure_message="Es gab einen Fehler beim Erstellen des Kunden.",
)


@_tool(CREATE_CUSTOMER_DEF)
async def create_customer(store: CRMStore, params: CreateCustomerInput) -> Dict[str, Any]:
    customer = await store.create_customer(params)
    kind = format_customer_type(customer.is_prospect)
    return success_envelope(
        f'{kind} "{customer.full_name}" wurde erfolgreich erstellt.',
        customer=CustomerRead.model_validate(customer).to_json(),
    )


GET_CUSTOMERS_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="get_customers",
        description=(
            "Lädt alle Kunden oder sucht nach bestimmten Kunden (Name oder E-Mail, ohne Beachtung "
            "der Groß-/Kleinschreibung). Verwenden für \"Zeige Kunden\" oder \"Suche nach Name\" "
            "und um eine Kunden-ID zu ermitteln."
        ),
        parameters=parameters_from_model(GetCustomersInput, {
            "search": "Suchbegriff für Name oder E-Mail (optional, leer = alle Kunden)",
        }),
    ),
    category=ToolCategory.CUSTOMER,
    input_model=GetCustomersInput,
    render_template=TableTemplate(
        collection_key="customers",
        columns=[
            TemplateField("Vorname", "firstName"),
            TemplateField("Nachname", "lastName"),
            TemplateField("E-Mail", "email"),
            TemplateField("Telefon", "phone"),
            TemplateField("Typ", "isProspect", format_customer_type),
            TemplateField("Angebote", "_count.offers"),
        ],
        empty_text="Keine Kunden gefunden.",
    ),
    failure_message="Es gab einen Fehler beim Laden der Kundendaten.",
)


@_tool(GET_CUSTOMERS_DEF)
async def get_customers(store: CRMStore, params: GetCustomersInput) -> Dict[str, Any]:
    summaries = await store.list_customers(params.search)
    customers = [CustomerListItem.from_summary(s).to_json() for s in summaries]
    found = "gefundene " if params.search and params.search.strip() else ""
    return success_envelope(
        f"{len(customers)} {found}Kunden/Interessenten geladen.",
        customers=customers,
        count=len(customers),
    )


UPDATE_CUSTOMER_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="update_customer",
        description=(
            "Aktualisiert einen bestehenden Kunden. Nur die angegebenen Felder werden geändert. "
            "Zuerst die Kunden-ID mit get_customers ermitteln."
        ),
        parameters=parameters_from_model(UpdateCustomerInput, {
            "id": "Kunden-ID (von get_customers)",
            "firstName": "Neuer Vorname (optional)",
            "lastName": "Neuer Nachname (optional)",
            "email": "Neue E-Mail, leer = entfernen (optional)",
            "phone": "Neue Telefonnummer (optional)",
            "address": "Neue Adresse (optional)",
            "isProspect": "Status ändern: true = Interessent, false = Kunde (optional)",
        }),
    ),
    category=ToolCategory.CUSTOMER,
    input_model=UpdateCustomerInput,
    render_template=SummaryTemplate(
        entity_key="customer",
        fields=[
            TemplateField("Typ", "isProspect", format_customer_type),
            TemplateField("E-Mail", "email"),
            TemplateField("Telefon", "phone"),
            TemplateField("Adresse", "address"),
        ],
    ),
    failure_message="Es gab einen Fehler beim Aktualisieren der Kundendaten.",
)


@_tool(UPDATE_CUSTOMER_DEF)
async def update_customer(store: CRMStore, params: UpdateCustomerInput) -> Dict[str, Any]:
    changes = params.model_dump(exclude_unset=True, exclude={"id"})
    customer = await store.update_customer(params.id, changes)
    return success_envelope(
        f'Kunde "{customer.full_name}" wurde aktualisiert.',
        customer=CustomerRead.model_validate(customer).to_json(),
    )


DELETE_CUSTOMER_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="delete_customer",
        description=(
            "Löscht einen Kunden endgültig, inklusive seiner Angebote, Rechnungen und Termine. "
            "Nur nach ausdrücklicher Bestätigung durch den Nutzer verwenden."
        ),
        parameters=parameters_from_model(DeleteCustomerInput, {
            "id": "Kunden-ID (von get_customers)",
        }),
    ),
    category=ToolCategory.CUSTOMER,
    input_model=DeleteCustomerInput,
    render_template=SummaryTemplate(entity_key="customer", icon="🗑️"),
    failure_message="Es gab einen Fehler beim Löschen des Kunden.",
)


@_tool(DELETE_CUSTOMER_DEF)
async def delete_customer(store: CRMStore, params: DeleteCustomerInput) -> Dict[str, Any]:
    customer = await store.delete_customer(params.id)
    return success_envelope(
        f'Kunde "{customer.full_name}" wurde gelöscht.',
        customer=CustomerRead.model_validate(customer).to_json(),
    )


# =============================================================================
# Offers
# =============================================================================

CREATE_OFFER_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="create_offer",
        description=(
            "Erstellt ein neues Angebot für einen bestehenden Kunden. "
            "Zuerst die Kunden-ID mit get_customers ermitteln. "
            "Gesamtkosten selbst angeben (in der Regel Materialkosten + Arbeitskosten)."
        ),
        parameters=parameters_from_model(CreateOfferInput, {
            "customerId": "Kunden-ID (von get_customers)",
            "jobDescription": "Arbeitsbeschreibung (optional)",
            "measurements": "Maße und Details (optional)",
            "materialsCost": "Materialkosten in Euro (Standard: 0)",
            "laborCost": "Arbeitskosten in Euro (Standard: 0)",
            "totalCost": "Gesamtkosten in Euro (Standard: 0)",
        }),
    ),
    category=ToolCategory.OFFER,
    input_model=CreateOfferInput,
    render_template=SummaryTemplate(
        entity_key="offer",
        title="Angebot {offerNumber} erstellt",
        fields=[
            TemplateField("Kunde", _CUSTOMER_NAME),
            TemplateField("Arbeitsbeschreibung", "jobDescription"),
            TemplateField("Maße", "measurements"),
            TemplateField("Materialkosten", "materialsCost", format_euro),
            TemplateField("Arbeitskosten", "laborCost", format_euro),
            TemplateField("Gesamtbetrag", "totalCost", format_euro),
            TemplateField("Status", "status", format_status),
        ],
    ),
    failure_message="Es gab einen Fehler beim Erstellen des Angebots.",
)


@_tool(CREATE_OFFER_DEF)
async def create_offer(store: CRMStore, params: CreateOfferInput) -> Dict[str, Any]:
    offer = await store.create_offer(params)
    return success_envelope(
        f"Angebot {offer.offer_number} für {offer.customer.full_name} wurde erstellt.",
        offer=OfferWithCustomer.model_validate(offer).to_json(),
    )


GET_OFFERS_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="get_offers",
        description="Lädt alle Angebote oder die Angebote eines bestimmten Kunden, neueste zuerst.",
        parameters=parameters_from_model(GetOffersInput, {
            "customerId": "Kunden-ID für Filter (optional, leer = alle Angebote)",
        }),
    ),
    category=ToolCategory.OFFER,
    input_model=GetOffersInput,
    render_template=TableTemplate(
        collection_key="offers",
        columns=[
            TemplateField("Nummer", "offerNumber"),
            TemplateField("Kunde", _CUSTOMER_NAME),
            TemplateField("Beschreibung", "jobDescription"),
            TemplateField("Gesamtbetrag", "totalCost", format_euro),
            TemplateField("Status", "status", format_status),
            TemplateField("Datum", "createdAt", format_date),
        ],
        empty_text="Keine Angebote vorhanden.",
    ),
    failure_message="Es gab einen Fehler beim Laden der Angebote.",
)


@_tool(GET_OFFERS_DEF)
async def get_offers(store: CRMStore, params: GetOffersInput) -> Dict[str, Any]:
    offers = await store.list_offers(params.customer_id)
    suffix = " für diesen Kunden" if params.customer_id else ""
    return success_envelope(
        f"{len(offers)} Angebote{suffix} geladen.",
        offers=[OfferWithCustomer.model_validate(o).to_json() for o in offers],
        count=len(offers),
    )


UPDATE_OFFER_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="update_offer",
        description=(
            "Aktualisiert ein Angebot, z. B. den Status (DRAFT → SENT → ACCEPTED/DECLINED) oder die Kosten. "
            "Angenommene oder abgelehnte Angebote können nicht mehr zurückgesetzt werden."
        ),
        parameters=parameters_from_model(UpdateOfferInput, {
            "id": "Angebots-ID (von get_offers)",
            "status": "Neuer Status (optional)",
            "jobDescription": "Neue Arbeitsbeschreibung (optional)",
            "measurements": "Neue Maße (optional)",
            "materialsCost": "Neue Materialkosten in Euro (optional)",
            "laborCost": "Neue Arbeitskosten in Euro (optional)",
            "totalCost": "Neue Gesamtkosten in Euro (optional)",
        }),
    ),
    category=ToolCategory.OFFER,
    input_model=UpdateOfferInput,
    render_template=SummaryTemplate(
        entity_key="offer",
        fields=[
            TemplateField("Kunde", _CUSTOMER_NAME),
            TemplateField("Status", "status", format_status),
            TemplateField("Gesamtbetrag", "totalCost", format_euro),
        ],
    ),
    failure_message="Es gab einen Fehler beim Aktualisieren des Angebots.",
)


@_tool(UPDATE_OFFER_DEF)
async def update_offer(store: CRMStore, params: UpdateOfferInput) -> Dict[str, Any]:
    changes = params.model_dump(exclude_unset=True, exclude={"id"})
    offer = await store.update_offer(params.id, changes)
    if "status" in changes:
        message = f"Angebot {offer.offer_number} hat jetzt den Status \"{OFFER_STATUS_LABELS[params.status]}\"."
    else:
        message = f"Angebot {offer.offer_number} wurde aktualisiert."
    return success_envelope(message, offer=OfferWithCustomer.model_validate(offer).to_json())


# =============================================================================
# Invoices
# =============================================================================

CREATE_INVOICE_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="create_invoice",
        description=(
            "Erstellt eine Rechnung aus einem angenommenen Angebot (Status ACCEPTED). "
            "Der Rechnungsbetrag wird aus dem Angebot übernommen. Pro Angebot gibt es höchstens eine Rechnung."
        ),
        parameters=parameters_from_model(CreateInvoiceInput, {
            "offerId": "Angebots-ID (von get_offers)",
        }),
    ),
    category=ToolCategory.INVOICE,
    input_model=CreateInvoiceInput,
    render_template=SummaryTemplate(
        entity_key="invoice",
        title="Rechnung {invoiceNumber} erstellt",
        fields=[
            TemplateField("Kunde", _CUSTOMER_NAME),
            TemplateField("Angebot", "offer.offerNumber"),
            TemplateField("Rechnungsbetrag", "totalAmount", format_euro),
            TemplateField("Status", "status", format_status),
        ],
    ),
    failure_message="Es gab einen Fehler beim Erstellen der Rechnung.",
)


@_tool(CREATE_INVOICE_DEF)
async def create_invoice(store: CRMStore, params: CreateInvoiceInput) -> Dict[str, Any]:
    invoice = await store.create_invoice(params.offer_id)
    return success_envelope(
        f"Rechnung {invoice.invoice_number} für {invoice.customer.full_name} wurde erstellt.",
        invoice=InvoiceWithRelations.model_validate(invoice).to_json(),
    )


GET_INVOICES_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="get_invoices",
        description="Lädt alle Rechnungen oder die Rechnungen eines bestimmten Kunden, neueste zuerst.",
        parameters=parameters_from_model(GetInvoicesInput, {
            "customerId": "Kunden-ID für Filter (optional, leer = alle Rechnungen)",
        }),
    ),
    category=ToolCategory.INVOICE,
    input_model=GetInvoicesInput,
    render_template=TableTemplate(
        collection_key="invoices",
        columns=[
            TemplateField("Nummer", "invoiceNumber"),
            TemplateField("Kunde", _CUSTOMER_NAME),
            TemplateField("Angebot", "offer.offerNumber"),
            TemplateField("Betrag", "totalAmount", format_euro),
            TemplateField("Status", "status", format_status),
            TemplateField("Datum", "createdAt", format_date),
        ],
        empty_text="Keine Rechnungen vorhanden.",
    ),
    failure_message="Es gab einen Fehler beim Laden der Rechnungen.",
)


@_tool(GET_INVOICES_DEF)
async def get_invoices(store: CRMStore, params: GetInvoicesInput) -> Dict[str, Any]:
    invoices = await store.list_invoices(params.customer_id)
    suffix = " für diesen Kunden" if params.customer_id else ""
    return success_envelope(
        f"{len(invoices)} Rechnungen{suffix} geladen.",
        invoices=[InvoiceWithRelations.model_validate(i).to_json() for i in invoices],
        count=len(invoices),
    )


UPDATE_INVOICE_STATUS_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="update_invoice_status",
        description=(
            "Ändert den Status einer Rechnung (DRAFT → SENT → PAID). "
            "Bezahlte Rechnungen können nicht zurückgesetzt werden."
        ),
        parameters=parameters_from_model(UpdateInvoiceStatusInput, {
            "id": "Rechnungs-ID (von get_invoices)",
            "status": "Neuer Status",
        }),
    ),
    category=ToolCategory.INVOICE,
    input_model=UpdateInvoiceStatusInput,
    render_template=SummaryTemplate(
        entity_key="invoice",
        fields=[
            TemplateField("Kunde", _CUSTOMER_NAME),
            TemplateField("Status", "status", format_status),
            TemplateField("Rechnungsbetrag", "totalAmount", format_euro),
        ],
    ),
    failure_message="Es gab einen Fehler beim Aktualisieren der Rechnung.",
)


@_tool(UPDATE_INVOICE_STATUS_DEF)
async def update_invoice_status(store: CRMStore, params: UpdateInvoiceStatusInput) -> Dict[str, Any]:
    invoice = await store.update_invoice_status(params.id, params.status)
    return success_envelope(
        f"Rechnung {invoice.invoice_number} hat jetzt den Status \"{INVOICE_STATUS_LABELS[params.status]}\".",
        invoice=InvoiceWithRelations.model_validate(invoice).to_json(),
    )


# =============================================================================
# Appointments & reporting
# =============================================================================

CREATE_APPOINTMENT_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="create_appointment",
        description="Legt einen Termin (z. B. Besichtigung oder Aufmaß) für einen bestehenden Kunden an.",
        parameters=parameters_from_model(CreateAppointmentInput, {
            "customerId": "Kunden-ID (von get_customers)",
            "date": "Datum und Uhrzeit im ISO-Format, z. B. 2026-05-04T09:30:00",
            "notes": "Notizen zum Termin (optional)",
            "photos": "Foto-Links, kommagetrennt (optional)",
        }),
    ),
    category=ToolCategory.APPOINTMENT,
    input_model=CreateAppointmentInput,
    render_template=SummaryTemplate(
        entity_key="appointment",
        fields=[
            TemplateField("Termin", "date", format_datetime),
            TemplateField("Notizen", "notes"),
        ],
    ),
    failure_message="Es gab einen Fehler beim Anlegen des Termins.",
)


@_tool(CREATE_APPOINTMENT_DEF)
async def create_appointment(store: CRMStore, params: CreateAppointmentInput) -> Dict[str, Any]:
    appointment = await store.create_appointment(params)
    return success_envelope(
        f"Termin am {format_datetime(appointment.date)} wurde angelegt.",
        appointment=AppointmentRead.model_validate(appointment).to_json(),
    )


GET_STATISTICS_DEF = ToolDefinition(
    tool_schema=ToolSchema(
        name="get_statistics",
        description="Lädt Kennzahlen des CRM: Kunden, Interessenten, Angebote, Rechnungen, Umsatz und Konversionsrate.",
        parameters=parameters_from_model(GetStatisticsInput),
    ),
    category=ToolCategory.REPORTING,
    input_model=GetStatisticsInput,
    render_template=SummaryTemplate(
        entity_key="statistics",
        title="CRM-Übersicht",
        icon="📊",
        fields=[
            TemplateField("Kunden", "customers.total"),
            TemplateField("Interessenten", "customers.prospects"),
            TemplateField("Neue Kontakte (30 Tage)", "customers.recent"),
            TemplateField("Angebote", "offers.total"),
            TemplateField("Neue Angebote (30 Tage)", "offers.recent"),
            TemplateField("Rechnungen", "invoices.total"),
            TemplateField("Umsatz", "revenue.total", format_euro),
            TemplateField("Konversionsrate", "{conversionRate} %"),
        ],
    ),
    failure_message="Es gab einen Fehler beim Laden der Statistiken.",
)


@_tool(GET_STATISTICS_DEF)
async def get_statistics(store: CRMStore, params: GetStatisticsInput) -> Dict[str, Any]:
    statistics = await store.get_statistics()
    return success_envelope("CRM-Statistiken erfolgreich geladen.", statistics=statistics)
