from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from handyai.schemas.common import CamelModel, blank_to_none


class AppointmentCreate(CamelModel):
    customer_id: str = Field(..., min_length=1)
    date: datetime
    notes: Optional[str] = None
    photos: Optional[str] = None

    @field_validator("notes", "photos", mode="before")
    @classmethod
    def _clear_blank(cls, value):
        return blank_to_none(value)


class AppointmentRead(CamelModel):
    id: str
    customer_id: str
    date: datetime
    notes: Optional[str] = None
    photos: Optional[str] = None
    created_at: datetime
