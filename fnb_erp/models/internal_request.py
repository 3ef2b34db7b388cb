from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Numeric, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fnb_erp.db.base import Base, enum_type


class InternalRequestStatus(str, Enum):
    PENDING = "PENDING"
    ISSUED = "ISSUED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class InternalRequest(Base):
    __tablename__ = "internal_requests"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    request_number: Mapped[str] = mapped_column(String(30), nullable=False)
    status: Mapped[InternalRequestStatus] = mapped_column(
        enum_type(InternalRequestStatus),
        nullable=False,
        default=InternalRequestStatus.PENDING,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_by_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    fulfilled_by_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    fulfilled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("locations.id"), nullable=True)
    confirmed_by_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    has_discrepancy: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="0")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    lines: Mapped[list["InternalRequestLine"]] = relationship(
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="InternalRequestLine.position",
    )

    __table_args__ = (
        UniqueConstraint("tenant_id", "request_number", name="uq_internal_requests_tenant_number"),
        Index("ix_internal_requests_tenant_status_created_at", "tenant_id", "status", "created_at"),
    )


class InternalRequestLine(Base):
    __tablename__ = "internal_request_lines"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    request_id: Mapped[str] = mapped_column(String(36), ForeignKey("internal_requests.id"), nullable=False, index=True)
    position: Mapped[int] = mapped_column(nullable=False, default=0)
    item_id: Mapped[str] = mapped_column(String(36), ForeignKey("items.id"), nullable=False, index=True)
    requested_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    issued_qty: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("0"))
    confirmed_qty: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    request: Mapped[InternalRequest] = relationship(back_populates="lines")
