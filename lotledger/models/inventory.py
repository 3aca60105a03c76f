from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from lotledger.db.base import Base

INBOUND_PENDING = "pending_review"
INBOUND_APPROVED = "approved"
INBOUND_REJECTED = "rejected"
INBOUND_STATUSES = (INBOUND_PENDING, INBOUND_APPROVED, INBOUND_REJECTED)

OUTBOUND_APPROVED = "approved"


class InboundMovement(Base):
    """
    One receipt event. Contributes to balance only while approved; the
    applied_* columns hold the contribution currently booked in
    inventory_balance on its behalf (null when nothing is booked).
    """
    __tablename__ = "inventory_inbound"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inventory_categories.id"), nullable=False, index=True
    )
    batch_no: Mapped[str] = mapped_column(String(64), nullable=False)

    serial_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    vehicle_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    dispatch_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    inbound_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    dispatch_qty: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dispatch_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)

    actual_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    actual_weight: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("0"))
    broken_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    dirty_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    wet_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    shortage_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    excess_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    bill_of_lading: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    contract_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    loading_method: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    content_percent: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    extra_fields: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=INBOUND_PENDING)
    source: Mapped[str] = mapped_column(String(10), nullable=False)  # "admin", "agent"
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    approved_by: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    applied_category_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    applied_batch_no: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    applied_qty: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    applied_weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(14, 3), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    __table_args__ = (
        Index("ix_inventory_inbound_tenant_status_created_at", "tenant_id", "status", "created_at"),
        Index("ix_inventory_inbound_tenant_category_batch", "tenant_id", "category_id", "batch_no"),
        Index("ix_inventory_inbound_tenant_inbound_date", "tenant_id", "inbound_date"),
    )


class InboundAttachment(Base):
    """Reference to a photo held by the external object store."""
    __tablename__ = "inventory_inbound_attachments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    inbound_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("inventory_inbound.id"), nullable=False, index=True
    )
    storage_key: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())


class OutboundMovement(Base):
    """
    One shipment drawn from a single inbound lot. Created approved, never
    edited. category_id/batch_no are copied from the lot.
    """
    __tablename__ = "inventory_outbound"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    # Nullable only so legacy rows can be loaded and reported by diagnostics.
    inbound_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("inventory_inbound.id"), nullable=True, index=True
    )
    category_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    batch_no: Mapped[str] = mapped_column(String(64), nullable=False)

    outbound_qty: Mapped[int] = mapped_column(Integer, nullable=False)
    outbound_weight: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False)
    outbound_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    destination: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    remarks: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OUTBOUND_APPROVED)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    approved_by: Mapped[str] = mapped_column(String(64), nullable=False)
    approved_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_inventory_outbound_tenant_created_at", "tenant_id", "created_at"),
        Index("ix_inventory_outbound_tenant_category_batch", "tenant_id", "category_id", "batch_no"),
    )


class InventoryBalance(Base):
    """
    Cached running balance per tenant/category/batch. Written only by
    BalanceReconciler.apply_delta.
    """
    __tablename__ = "inventory_balance"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    category_id: Mapped[str] = mapped_column(String(36), nullable=False)
    batch_no: Mapped[str] = mapped_column(String(64), nullable=False)
    available_qty: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    available_weight: Mapped[Decimal] = mapped_column(Numeric(14, 3), nullable=False, default=Decimal("0"))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("tenant_id", "category_id", "batch_no", name="uq_inventory_balance_key"),
    )
