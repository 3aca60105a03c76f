from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lotledger.core.api_docs import error_responses
from lotledger.core.deps import get_db
from lotledger.core.security_current import Actor, get_current_actor, require_admin
from lotledger.models.inventory import OutboundMovement
from lotledger.schemas.common import PaginationMeta
from lotledger.schemas.inventory import (
    OutboundCreateIn,
    OutboundCreateOut,
    OutboundListOut,
    OutboundOut,
)
from lotledger.services.movement_store import commit_ledger
from lotledger.services.outbound_service import create_outbound, list_outbound

router = APIRouter(prefix="/tenants/{tenant_id}/outbound", tags=["outbound"])


def outbound_out(row: OutboundMovement) -> OutboundOut:
    return OutboundOut(
        id=row.id,
        inbound_id=row.inbound_id,
        category_id=row.category_id,
        batch_no=row.batch_no,
        outbound_qty=row.outbound_qty,
        outbound_weight=float(row.outbound_weight),
        outbound_date=row.outbound_date,
        destination=row.destination,
        remarks=row.remarks,
        status=row.status,
        created_by=row.created_by,
        approved_by=row.approved_by,
        approved_at=row.approved_at,
        created_at=row.created_at,
    )


@router.post(
    "",
    response_model=OutboundCreateOut,
    summary="Ship goods out of an approved inbound lot",
    responses={
        200: {
            "description": "Outbound recorded; remaining lot figures after the allocation",
            "content": {
                "application/json": {
                    "example": {"id": "outbound-id", "remaining_qty": 60, "remaining_weight": 3.0}
                }
            },
        },
        **error_responses(400, 401, 403, 404, 409, 422, 500, 503),
    },
)
def create_outbound_endpoint(
    tenant_id: str,
    payload: OutboundCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    result = create_outbound(
        db,
        actor=actor,
        tenant_id=tenant_id,
        inbound_id=payload.inbound_id,
        qty=payload.qty,
        weight=payload.weight,
        outbound_date=payload.outbound_date,
        destination=payload.destination,
        remarks=payload.remarks,
    )
    commit_ledger(db, operation="outbound.create")
    return OutboundCreateOut(
        id=result.outbound.id,
        remaining_qty=result.remaining_qty,
        remaining_weight=float(result.remaining_weight),
    )


@router.get(
    "",
    response_model=OutboundListOut,
    summary="List outbound movements",
    responses=error_responses(401, 422, 500),
)
def list_outbound_endpoint(
    tenant_id: str,
    inbound_id: str | None = Query(default=None, description="Only shipments drawn from this lot"),
    category_id: str | None = Query(default=None),
    batch_no: str | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    total, rows = list_outbound(
        db,
        tenant_id=tenant_id,
        inbound_id=inbound_id,
        category_id=category_id,
        batch_no=batch_no,
        limit=limit,
        offset=offset,
    )
    items = [outbound_out(row) for row in rows]
    count = len(items)
    return OutboundListOut(
        items=items,
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total,
        ),
    )
