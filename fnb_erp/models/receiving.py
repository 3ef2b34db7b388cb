from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fnb_erp.db.base import Base, enum_type


class ReceivingStatus(str, Enum):
    PENDING = "PENDING"
    PROC_VERIFIED = "PROC_VERIFIED"
    QC_APPROVED = "QC_APPROVED"
    QC_REJECTED = "QC_REJECTED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class QCResult(str, Enum):
    ACCEPTED = "ACCEPTED"
    PARTIAL = "PARTIAL"
    REJECTED = "REJECTED"


class Receiving(Base):
    """
    One delivery against a purchase order, moved through procurement
    verification, QC inspection and warehouse receipt by three different people.
    """
    __tablename__ = "receivings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    receiving_number: Mapped[str] = mapped_column(String(30), nullable=False)
    purchase_order_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("purchase_orders.id"),
        nullable=False,
        index=True,
    )
    status: Mapped[ReceivingStatus] = mapped_column(enum_type(ReceivingStatus), nullable=False)

    proc_verified_by_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    proc_verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    proc_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    qc_inspected_by_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    qc_inspected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    qc_result: Mapped[Optional[QCResult]] = mapped_column(enum_type(QCResult, 20), nullable=True)
    qc_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    warehouse_received_by_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    warehouse_received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("locations.id"), nullable=True)
    batch_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    warehouse_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    lines: Mapped[list["ReceivingLine"]] = relationship(
        back_populates="receiving",
        cascade="all, delete-orphan",
        order_by="ReceivingLine.position",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "receiving_number", name="uq_receivings_tenant_number"),
        Index("ix_receivings_tenant_status_created_at", "tenant_id", "status", "created_at"),
    )


class ReceivingLine(Base):
    __tablename__ = "receiving_lines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    receiving_id: Mapped[str] = mapped_column(String(36), ForeignKey("receivings.id"), nullable=False, index=True)
    purchase_order_line_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("purchase_order_lines.id"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    item_id: Mapped[str] = mapped_column(String(36), ForeignKey("items.id"), nullable=False, index=True)
    expected_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    received_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    accepted_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("0"))
    rejected_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("0"))
    unit_cost: Mapped[Decimal] = mapped_column(Numeric(14, 4), nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    receiving: Mapped[Receiving] = relationship(back_populates="lines")
