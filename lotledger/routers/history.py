from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from lotledger.core.api_docs import error_responses
from lotledger.core.deps import get_db
from lotledger.core.security_current import Actor, get_current_actor
from lotledger.schemas.history import HistoryEntryOut, HistoryListOut
from lotledger.services.history_service import RECORD_TYPES, list_history

router = APIRouter(prefix="/tenants/{tenant_id}/history", tags=["history"])


@router.get(
    "/{record_type}/{record_id}",
    response_model=HistoryListOut,
    summary="Audit trail of one inbound or outbound movement",
    responses=error_responses(400, 401, 422, 500),
)
def get_history_endpoint(
    tenant_id: str,
    record_type: str,
    record_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    if record_type not in RECORD_TYPES:
        raise HTTPException(status_code=400, detail=f"record_type must be one of: {', '.join(RECORD_TYPES)}")

    rows = list_history(db, tenant_id=tenant_id, record_type=record_type, record_id=record_id)
    return HistoryListOut(
        items=[
            HistoryEntryOut(
                id=row.id,
                record_type=row.record_type,
                record_id=row.record_id,
                action=row.action,
                before=row.before,
                after=row.after,
                operator=row.operator,
                operator_role=row.operator_role,
                trace_id=row.trace_id,
                created_at=row.created_at,
            )
            for row in rows
        ]
    )
