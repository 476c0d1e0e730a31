from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from handyai.models.offer import OfferStatus
from handyai.schemas.common import CamelModel, blank_to_none


class OfferCreate(CamelModel):
    customer_id: str = Field(..., min_length=1)
    job_description: Optional[str] = None
    measurements: Optional[str] = None
    # Stored exactly as supplied; the total is never recomputed from materials + labor
    materials_cost: float = Field(0, ge=0)
    labor_cost: float = Field(0, ge=0)
    total_cost: float = Field(0, ge=0)

    @field_validator("job_description", "measurements", mode="before")
    @classmethod
    def _clear_blank(cls, value):
        return blank_to_none(value)


class OfferUpdate(CamelModel):
    status: Optional[OfferStatus] = None
    job_description: Optional[str] = None
    measurements: Optional[str] = None
    materials_cost: Optional[float] = Field(None, ge=0)
    labor_cost: Optional[float] = Field(None, ge=0)
    total_cost: Optional[float] = Field(None, ge=0)

    @field_validator("job_description", "measurements", mode="before")
    @classmethod
    def _clear_blank(cls, value):
        return blank_to_none(value)

    @field_validator("status", "materials_cost", "labor_cost", "total_cost")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("must not be null")
        return value


class OfferRead(CamelModel):
    id: str
    customer_id: str
    offer_number: str
    job_description: Optional[str] = None
    measurements: Optional[str] = None
    materials_cost: float
    labor_cost: float
    total_cost: float
    status: OfferStatus
    created_at: datetime
    updated_at: datetime
