from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from fnb_erp.schemas.common import PaginationMeta


class PurchaseOrderLineIn(BaseModel):
    item_id: str
    quantity: Decimal = Field(gt=0, max_digits=14, decimal_places=3)
    unit_cost: Decimal = Field(gt=0, max_digits=14, decimal_places=4)
    notes: str | None = Field(default=None, max_length=255)


class PurchaseOrderCreateIn(BaseModel):
    supplier_id: str
    lines: list[PurchaseOrderLineIn] = Field(min_length=1)
    expected_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)
    currency: str | None = Field(default=None, min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip().upper()


class PurchaseOrderUpdateIn(BaseModel):
    supplier_id: str | None = None
    expected_date: date | None = None
    notes: str | None = Field(default=None, max_length=2000)
    lines: list[PurchaseOrderLineIn] | None = Field(default=None, min_length=1)

    @model_validator(mode="after")
    def validate_any_field_present(self) -> "PurchaseOrderUpdateIn":
        if not self.model_fields_set:
            raise ValueError("At least one field must be provided")
        return self


class PurchaseOrderApproveIn(BaseModel):
    action: Literal["approve", "reject"]
    reason: str | None = Field(default=None, max_length=500)


class PurchaseOrderCancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class PurchaseOrderLineOut(BaseModel):
    id: str
    position: int
    item_id: str
    quantity: float
    unit_cost: float
    total_cost: float
    received_qty: float
    outstanding_qty: float
    notes: str | None = None


class PurchaseOrderOut(BaseModel):
    id: str
    po_number: str
    supplier_id: str
    status: str
    total_amount: float
    currency: str
    expected_date: date | None = None
    notes: str | None = None
    created_by_id: str
    approved_by_id: str | None = None
    approved_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    lines: list[PurchaseOrderLineOut]


class PurchaseOrderListOut(BaseModel):
    items: list[PurchaseOrderOut]
    pagination: PaginationMeta
