from typing import List, Optional

from fastapi import APIRouter, Depends, status

from handyai.api.deps import get_store
from handyai.api.errors import http_error
from handyai.schemas.customer import (
    CustomerCreate,
    CustomerDetail,
    CustomerListItem,
    CustomerRead,
    CustomerUpdate,
)
from handyai.services.crm.errors import CRMError
from handyai.services.crm.store import CRMStore

router = APIRouter()


@router.get("", response_model=List[CustomerListItem])
async def list_customers(
    search: Optional[str] = None,
    store: CRMStore = Depends(get_store)
):
    """
    List customers and prospects, most recently updated first.

    - **search**: Case-insensitive match on first name, last name or email
    """
    summaries = await store.list_customers(search)
    return [CustomerListItem.from_summary(s) for s in summaries]


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
async def create_customer(
    payload: CustomerCreate,
    store: CRMStore = Depends(get_store)
):
    return await store.create_customer(payload)


@router.get("/{customer_id}", response_model=CustomerDetail)
async def get_customer(
    customer_id: str,
    store: CRMStore = Depends(get_store)
):
    """Get a customer with their offers, invoices and appointments."""
    try:
        return await store.get_customer(customer_id, with_relations=True)
    except CRMError as e:
        raise http_error(e)


@router.put("/{customer_id}", response_model=CustomerRead)
async def update_customer(
    customer_id: str,
    payload: CustomerUpdate,
    store: CRMStore = Depends(get_store)
):
    """Partial update; fields missing from the body are left unchanged."""
    try:
        return await store.update_customer(customer_id, payload.model_dump(exclude_unset=True))
    except CRMError as e:
        raise http_error(e)


@router.delete("/{customer_id}")
async def delete_customer(
    customer_id: str,
    store: CRMStore = Depends(get_store)
):
    try:
        await store.delete_customer(customer_id)
    except CRMError as e:
        raise http_error(e)
    return {"success": True}
