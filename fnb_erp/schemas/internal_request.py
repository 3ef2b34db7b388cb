from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from fnb_erp.schemas.common import PaginationMeta


class InternalRequestLineIn(BaseModel):
    item_id: str
    requested_qty: Decimal = Field(gt=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class InternalRequestCreateIn(BaseModel):
    lines: list[InternalRequestLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class FulfillLineIn(BaseModel):
    id: str
    issued_qty: Decimal = Field(ge=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class InternalRequestFulfillIn(BaseModel):
    location_id: str
    lines: list[FulfillLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class ConfirmLineIn(BaseModel):
    id: str
    confirmed_qty: Decimal = Field(ge=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class InternalRequestConfirmIn(BaseModel):
    lines: list[ConfirmLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)
    has_discrepancy: bool = False


class InternalRequestCancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class InternalRequestLineOut(BaseModel):
    id: str
    position: int
    item_id: str
    requested_qty: float
    issued_qty: float
    confirmed_qty: float | None = None
    notes: str | None = None


class InternalRequestOut(BaseModel):
    id: str
    request_number: str
    status: str
    notes: str | None = None
    location_id: str | None = None
    has_discrepancy: bool
    created_by_id: str
    fulfilled_by_id: str | None = None
    fulfilled_at: datetime | None = None
    confirmed_by_id: str | None = None
    confirmed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    lines: list[InternalRequestLineOut]


class InternalRequestListOut(BaseModel):
    items: list[InternalRequestOut]
    pagination: PaginationMeta
