from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column

from lotledger.db.base import Base


class RecordHistory(Base):
    """
    Append-only audit trail. One row per workflow transition of an inbound
    or outbound movement; rows are never updated or deleted.
    """
    __tablename__ = "record_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    tenant_id: Mapped[str] = mapped_column(String(36), ForeignKey("tenants.id"), nullable=False, index=True)
    record_type: Mapped[str] = mapped_column(String(20), nullable=False)  # "inbound", "outbound"
    record_id: Mapped[str] = mapped_column(String(36), nullable=False)
    action: Mapped[str] = mapped_column(String(20), nullable=False)  # "create", "update", "approve", "reject"
    before: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    after: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    operator: Mapped[str] = mapped_column(String(64), nullable=False)
    operator_role: Mapped[str] = mapped_column(String(20), nullable=False)
    trace_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        Index("ix_record_history_record", "record_type", "record_id", "created_at"),
        Index("ix_record_history_tenant_created_at", "tenant_id", "created_at"),
    )
