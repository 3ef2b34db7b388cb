from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from fnb_erp.schemas.common import PaginationMeta


class InventoryPositionOut(BaseModel):
    item_id: str
    location_id: str
    quantity: float
    average_cost: float
    value: float
    updated_at: datetime | None = None


class InventoryPositionListOut(BaseModel):
    items: list[InventoryPositionOut]
    pagination: PaginationMeta


class InventoryTransactionOut(BaseModel):
    id: str
    item_id: str
    location_id: str
    type: str
    quantity: float
    qty_delta: float
    unit_cost: float | None = None
    reference_type: str
    reference_id: str | None = None
    notes: str | None = None
    created_by_id: str | None = None
    created_at: datetime


class InventoryTransactionListOut(BaseModel):
    items: list[InventoryTransactionOut]
    pagination: PaginationMeta


class ValuationBucketOut(BaseModel):
    id: str | None = None
    name: str
    quantity: float
    value: float
    positions: int


class InventoryValuationOut(BaseModel):
    group_by: str
    total_quantity: float
    total_value: float
    buckets: list[ValuationBucketOut]


class InventoryAdjustIn(BaseModel):
    item_id: str
    location_id: str
    qty_delta: Decimal = Field(max_digits=14, decimal_places=3)
    unit_cost: Decimal | None = Field(default=None, ge=0, max_digits=14, decimal_places=4)
    reason: str = Field(min_length=3, max_length=500)

    @field_validator("qty_delta")
    @classmethod
    def validate_non_zero_qty_delta(cls, value: Decimal) -> Decimal:
        if value == 0:
            raise ValueError("qty_delta cannot be zero")
        return value
