from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from handyai.api.deps import get_store
from handyai.api.errors import http_error
from handyai.schemas.invoice import InvoiceCreate, InvoiceUpdate
from handyai.schemas.relations import InvoiceWithRelations
from handyai.services.crm.errors import CRMError
from handyai.services.crm.store import CRMStore
from handyai.services.documents.pdf_renderer import render_invoice_pdf

router = APIRouter()


@router.get("", response_model=List[InvoiceWithRelations])
async def list_invoices(
    customer_id: Optional[str] = Query(None, alias="customerId"),
    store: CRMStore = Depends(get_store)
):
    return await store.list_invoices(customer_id)


@router.post("", response_model=InvoiceWithRelations, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    store: CRMStore = Depends(get_store)
):
    """
    Create the invoice for an accepted offer.

    - 404 if the offer does not exist
    - 400 if the offer is not ACCEPTED or already has an invoice
    """
    try:
        return await store.create_invoice(payload.offer_id)
    except CRMError as e:
        raise http_error(e)


@router.get("/{invoice_id}", response_model=InvoiceWithRelations)
async def get_invoice(
    invoice_id: str,
    store: CRMStore = Depends(get_store)
):
    try:
        return await store.get_invoice(invoice_id)
    except CRMError as e:
        raise http_error(e)


@router.put("/{invoice_id}", response_model=InvoiceWithRelations)
async def update_invoice(
    invoice_id: str,
    payload: InvoiceUpdate,
    store: CRMStore = Depends(get_store)
):
    try:
        return await store.update_invoice_status(invoice_id, payload.status)
    except CRMError as e:
        raise http_error(e)


@router.get("/{invoice_id}/pdf")
async def get_invoice_pdf(
    invoice_id: str,
    store: CRMStore = Depends(get_store)
):
    try:
        invoice = await store.get_invoice(invoice_id)
    except CRMError as e:
        raise http_error(e)

    return Response(
        content=render_invoice_pdf(invoice),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Rechnung-{invoice.invoice_number}.pdf"'},
    )
