from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from handyai.api.deps import get_store
from handyai.api.errors import http_error
from handyai.schemas.offer import OfferCreate, OfferUpdate
from handyai.schemas.relations import OfferDetail, OfferWithCustomer
from handyai.services.crm.errors import CRMError
from handyai.services.crm.store import CRMStore
from handyai.services.documents.pdf_renderer import render_offer_pdf

router = APIRouter()


@router.get("", response_model=List[OfferWithCustomer])
async def list_offers(
    customer_id: Optional[str] = Query(None, alias="customerId"),
    store: CRMStore = Depends(get_store)
):
    """List offers, newest first, optionally for one customer."""
    return await store.list_offers(customer_id)


@router.post("", response_model=OfferWithCustomer, status_code=status.HTTP_201_CREATED)
async def create_offer(
    payload: OfferCreate,
    store: CRMStore = Depends(get_store)
):
    """Create an offer; the offer number is assigned by the server."""
    try:
        return await store.create_offer(payload)
    except CRMError as e:
        raise http_error(e)


@router.get("/{offer_id}", response_model=OfferDetail)
async def get_offer(
    offer_id: str,
    store: CRMStore = Depends(get_store)
):
    try:
        return await store.get_offer(offer_id)
    except CRMError as e:
        raise http_error(e)


@router.put("/{offer_id}", response_model=OfferWithCustomer)
async def update_offer(
    offer_id: str,
    payload: OfferUpdate,
    store: CRMStore = Depends(get_store)
):
    """
    Partial update of an offer.

    A status change must follow DRAFT → SENT → ACCEPTED/DECLINED; anything else is a 400.
    """
    try:
        return await store.update_offer(offer_id, payload.model_dump(exclude_unset=True))
    except CRMError as e:
        raise http_error(e)


@router.get("/{offer_id}/pdf")
async def get_offer_pdf(
    offer_id: str,
    store: CRMStore = Depends(get_store)
):
    try:
        offer = await store.get_offer(offer_id)
    except CRMError as e:
        raise http_error(e)

    return Response(
        content=render_offer_pdf(offer),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="Angebot-{offer.offer_number}.pdf"'},
    )
