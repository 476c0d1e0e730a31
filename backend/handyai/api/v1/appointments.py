from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from handyai.api.deps import get_store
from handyai.api.errors import http_error
from handyai.schemas.appointment import AppointmentCreate, AppointmentRead
from handyai.services.crm.errors import CRMError
from handyai.services.crm.store import CRMStore

router = APIRouter()


@router.get("", response_model=List[AppointmentRead])
async def list_appointments(
    customer_id: Optional[str] = Query(None, alias="customerId"),
    store: CRMStore = Depends(get_store)
):
    return await store.list_appointments(customer_id)


@router.post("", response_model=AppointmentRead, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    store: CRMStore = Depends(get_store)
):
    try:
        return await store.create_appointment(payload)
    except CRMError as e:
        raise http_error(e)
