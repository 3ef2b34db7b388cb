from sqlalchemy import BigInteger, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fnb_erp.db.base import Base


class SequenceCounter(Base):
    """
    Named per-tenant counter behind the human-readable document numbers.
    Rows are locked FOR UPDATE while a number is allocated.
    """
    __tablename__ = "sequence_counters"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    # e.g. "purchase_order", "receiving:20260214"
    name: Mapped[str] = mapped_column(String(60), nullable=False)
    current_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("tenant_id", "name", name="uq_sequence_counters_tenant_name"),
    )
