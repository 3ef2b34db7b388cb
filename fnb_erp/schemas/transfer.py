from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from fnb_erp.schemas.common import PaginationMeta


class TransferLineIn(BaseModel):
    item_id: str
    quantity: Decimal = Field(gt=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class TransferCreateIn(BaseModel):
    from_location_id: str
    to_location_id: str
    lines: list[TransferLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class TransferApproveIn(BaseModel):
    action: Literal["approve", "reject"]
    reason: str | None = Field(default=None, max_length=500)


class TransferFulfillIn(BaseModel):
    notes: str | None = Field(default=None, max_length=2000)


class TransferReceiveLineIn(BaseModel):
    id: str
    received_qty: Decimal = Field(ge=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class TransferReceiveIn(BaseModel):
    lines: list[TransferReceiveLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class TransferLineOut(BaseModel):
    id: str
    position: int
    item_id: str
    quantity: float
    received_qty: float
    unit_cost: float
    notes: str | None = None


class TransferOut(BaseModel):
    id: str
    transfer_number: str
    from_location_id: str
    to_location_id: str
    status: str
    estimated_value: float
    notes: str | None = None
    created_by_id: str
    approved_by_id: str | None = None
    approved_at: datetime | None = None
    fulfilled_by_id: str | None = None
    fulfilled_at: datetime | None = None
    received_by_id: str | None = None
    received_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    lines: list[TransferLineOut]


class TransferListOut(BaseModel):
    items: list[TransferOut]
    pagination: PaginationMeta
