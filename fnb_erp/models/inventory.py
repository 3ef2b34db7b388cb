from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from fnb_erp.db.base import Base, enum_type


class TransactionType(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"
    TRANSFER_IN = "TRANSFER_IN"
    TRANSFER_OUT = "TRANSFER_OUT"
    ADJUSTMENT = "ADJUSTMENT"


INCREASE_TYPES = frozenset({TransactionType.INBOUND, TransactionType.TRANSFER_IN, TransactionType.ADJUSTMENT})
DECREASE_TYPES = frozenset({TransactionType.OUTBOUND, TransactionType.TRANSFER_OUT, TransactionType.ADJUSTMENT})


class ReferenceType(str, Enum):
    PURCHASE_ORDER = "PURCHASE_ORDER"
    RECEIVING = "RECEIVING"
    INTERNAL_REQUEST = "INTERNAL_REQUEST"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"


@dataclass(frozen=True)
class InventoryReference:
    """The workflow document a ledger movement belongs to."""

    type: ReferenceType
    id: str | None = None


class InventoryPosition(Base):
    """
    Current quantity and weighted-average cost of one item at one location.
    Only fnb_erp.services.inventory_service writes these rows.
    """
    __tablename__ = "inventory_positions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String(36), ForeignKey("items.id"), nullable=False, index=True)
    location_id: Mapped[str] = mapped_column(String(36), ForeignKey("locations.id"), nullable=False, index=True)

    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("0"))
    average_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False, default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "item_id", "location_id", name="uq_inventory_positions_tenant_item_location"),
        Index("ix_inventory_positions_tenant_location", "tenant_id", "location_id"),
    )


class InventoryTransaction(Base):
    """
    One row per stock movement. quantity is always positive; qty_delta carries
    the sign (positive = stock in, negative = stock out).
    """
    __tablename__ = "inventory_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    item_id: Mapped[str] = mapped_column(String(36), ForeignKey("items.id"), nullable=False, index=True)
    location_id: Mapped[str] = mapped_column(String(36), ForeignKey("locations.id"), nullable=False, index=True)

    type: Mapped[TransactionType] = mapped_column(enum_type(TransactionType, 20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    qty_delta: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    unit_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 4), nullable=True)

    reference_type: Mapped[ReferenceType] = mapped_column(enum_type(ReferenceType), nullable=False)
    reference_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    created_by_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_inventory_transactions_tenant_created_at", "tenant_id", "created_at"),
        Index(
            "ix_inventory_transactions_tenant_item_location_created_at",
            "tenant_id",
            "item_id",
            "location_id",
            "created_at",
        ),
        Index("ix_inventory_transactions_reference", "reference_type", "reference_id"),
    )

    @property
    def reference(self) -> InventoryReference:
        return InventoryReference(type=self.reference_type, id=self.reference_id)
