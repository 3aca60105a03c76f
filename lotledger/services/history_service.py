import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from lotledger.core.observability import get_request_id
from lotledger.core.security_current import Actor
from lotledger.models.history import RecordHistory
from lotledger.services.movement_store import utcnow

RECORD_INBOUND = "inbound"
RECORD_OUTBOUND = "outbound"
RECORD_TYPES = (RECORD_INBOUND, RECORD_OUTBOUND)

ACTION_CREATE = "create"
ACTION_UPDATE = "update"
ACTION_APPROVE = "approve"
ACTION_REJECT = "reject"


def _json_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def snapshot(record: Any) -> dict[str, Any]:
    """Column values of an ORM row as JSON-safe data."""
    return {
        column.key: _json_value(getattr(record, column.key))
        for column in record.__table__.columns
    }


def record_history(
    db: Session,
    *,
    tenant_id: str,
    record_type: str,
    record_id: str,
    action: str,
    actor: Actor,
    before: dict[str, Any] | None,
    after: dict[str, Any] | None,
) -> RecordHistory:
    entry = RecordHistory(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        record_type=record_type,
        record_id=record_id,
        action=action,
        before=before,
        after=after,
        operator=actor.id,
        operator_role=actor.role,
        trace_id=get_request_id(),
        created_at=utcnow(),
    )
    db.add(entry)
    return entry


def list_history(
    db: Session,
    *,
    tenant_id: str,
    record_type: str,
    record_id: str,
) -> list[RecordHistory]:
    rows = db.execute(
        select(RecordHistory)
        .where(
            RecordHistory.tenant_id == tenant_id,
            RecordHistory.record_type == record_type,
            RecordHistory.record_id == record_id,
        )
        .order_by(RecordHistory.created_at.asc(), RecordHistory.id.asc())
    ).scalars().all()
    return list(rows)
