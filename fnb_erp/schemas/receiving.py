from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from fnb_erp.models.receiving import QCResult
from fnb_erp.schemas.common import PaginationMeta


class ReceivingLineIn(BaseModel):
    purchase_order_line_id: str
    received_qty: Decimal = Field(gt=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class ReceivingCreateIn(BaseModel):
    purchase_order_id: str
    lines: list[ReceivingLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class QCLineIn(BaseModel):
    id: str
    accepted_qty: Decimal = Field(ge=0, max_digits=14, decimal_places=3)
    rejected_qty: Decimal = Field(ge=0, max_digits=14, decimal_places=3)
    notes: str | None = Field(default=None, max_length=500)


class QCInspectIn(BaseModel):
    qc_result: QCResult
    lines: list[QCLineIn] = Field(min_length=1)
    notes: str | None = Field(default=None, max_length=2000)


class WarehouseReceiveIn(BaseModel):
    location_id: str
    batch_number: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)


class ReceivingCancelIn(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class ReceivingLineOut(BaseModel):
    id: str
    purchase_order_line_id: str
    position: int
    item_id: str
    expected_qty: float
    received_qty: float
    accepted_qty: float
    rejected_qty: float
    unit_cost: float
    notes: str | None = None


class ReceivingOut(BaseModel):
    id: str
    receiving_number: str
    purchase_order_id: str
    status: str
    proc_verified_by_id: str | None = None
    proc_verified_at: datetime | None = None
    proc_notes: str | None = None
    qc_inspected_by_id: str | None = None
    qc_inspected_at: datetime | None = None
    qc_result: str | None = None
    qc_notes: str | None = None
    warehouse_received_by_id: str | None = None
    warehouse_received_at: datetime | None = None
    location_id: str | None = None
    batch_number: str | None = None
    warehouse_notes: str | None = None
    created_at: datetime
    updated_at: datetime
    lines: list[ReceivingLineOut]


class ReceivingListOut(BaseModel):
    items: list[ReceivingOut]
    pagination: PaginationMeta
