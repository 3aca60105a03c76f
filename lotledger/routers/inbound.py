from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from lotledger.core.api_docs import error_responses
from lotledger.core.deps import get_db
from lotledger.core.security_current import Actor, get_current_actor, require_admin
from lotledger.models.inventory import INBOUND_STATUSES, InboundAttachment, InboundMovement
from lotledger.schemas.common import PaginationMeta
from lotledger.schemas.inventory import (
    AttachmentIn,
    AttachmentOut,
    InboundApproveOut,
    InboundCreateIn,
    InboundImportIn,
    InboundImportOut,
    InboundListOut,
    InboundOut,
    InboundRejectOut,
    InboundStatsOut,
    InboundStatusOut,
    InboundUpdateIn,
)
from lotledger.services.inbound_service import (
    AttachmentRef,
    approve_inbound,
    create_inbound,
    get_inbound_stats,
    import_inbound,
    list_attachments,
    list_inbound,
    reject_inbound,
    update_inbound,
)
from lotledger.services.movement_store import commit_ledger, get_inbound

router = APIRouter(prefix="/tenants/{tenant_id}/inbound", tags=["inbound"])


def _attachment_ref(attachment: AttachmentIn | None) -> AttachmentRef | None:
    if attachment is None:
        return None
    return AttachmentRef(storage_key=attachment.storage_key, content_type=attachment.content_type)


def _attachment_out(row: InboundAttachment) -> AttachmentOut:
    return AttachmentOut(
        id=row.id,
        storage_key=row.storage_key,
        content_type=row.content_type,
        created_by=row.created_by,
        created_at=row.created_at,
    )


def inbound_out(
    movement: InboundMovement,
    attachments: list[InboundAttachment] | None = None,
) -> InboundOut:
    return InboundOut(
        id=movement.id,
        category_id=movement.category_id,
        batch_no=movement.batch_no,
        serial_no=movement.serial_no,
        vehicle_no=movement.vehicle_no,
        dispatch_date=movement.dispatch_date,
        inbound_date=movement.inbound_date,
        dispatch_qty=movement.dispatch_qty,
        dispatch_weight=float(movement.dispatch_weight) if movement.dispatch_weight is not None else None,
        actual_qty=movement.actual_qty,
        actual_weight=float(movement.actual_weight),
        broken_qty=movement.broken_qty,
        dirty_qty=movement.dirty_qty,
        wet_qty=movement.wet_qty,
        shortage_qty=movement.shortage_qty,
        excess_qty=movement.excess_qty,
        bill_of_lading=movement.bill_of_lading,
        contract_no=movement.contract_no,
        loading_method=movement.loading_method,
        content_percent=movement.content_percent,
        remarks=movement.remarks,
        extra_fields=movement.extra_fields,
        status=movement.status,
        source=movement.source,
        created_by=movement.created_by,
        updated_by=movement.updated_by,
        approved_by=movement.approved_by,
        approved_at=movement.approved_at,
        created_at=movement.created_at,
        updated_at=movement.updated_at,
        attachments=[_attachment_out(row) for row in attachments] if attachments is not None else None,
    )


@router.post(
    "",
    response_model=InboundStatusOut,
    summary="Record an inbound movement",
    description=(
        "Administrators create approved movements that count toward balance immediately. "
        "Agents create movements pending review and must attach a photo reference."
    ),
    responses=error_responses(400, 401, 404, 422, 500, 503),
)
def create_inbound_endpoint(
    tenant_id: str,
    payload: InboundCreateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    values = payload.model_dump(exclude={"attachment"}, exclude_none=True)
    movement = create_inbound(
        db,
        actor=actor,
        tenant_id=tenant_id,
        values=values,
        attachment=_attachment_ref(payload.attachment),
    )
    commit_ledger(db, operation="inbound.create")
    return InboundStatusOut(id=movement.id, status=movement.status)


@router.get(
    "",
    response_model=InboundListOut,
    summary="List inbound movements",
    responses=error_responses(400, 401, 422, 500),
)
def list_inbound_endpoint(
    tenant_id: str,
    status: str | None = Query(default=None, description="pending_review, approved or rejected"),
    source: str | None = Query(default=None, description="admin or agent"),
    category_id: str | None = Query(default=None),
    batch: str | None = Query(default=None, description="Batch number contains"),
    vehicle: str | None = Query(default=None, description="Vehicle/container number contains"),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=20, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    if status and status not in INBOUND_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unknown status '{status}'")
    if start_date and end_date and end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date cannot be before start_date")

    total, rows = list_inbound(
        db,
        tenant_id=tenant_id,
        status=status,
        source=source,
        category_id=category_id,
        batch=batch,
        vehicle=vehicle,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    items = [inbound_out(row) for row in rows]
    count = len(items)
    return InboundListOut(
        items=items,
        pagination=PaginationMeta(
            total=total,
            limit=limit,
            offset=offset,
            count=count,
            has_next=(offset + count) < total,
        ),
    )


@router.get(
    "/stats",
    response_model=InboundStatsOut,
    summary="Inbound counts and weights by status",
    responses=error_responses(401, 403, 422, 500),
)
def inbound_stats_endpoint(
    tenant_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    stats = get_inbound_stats(db, tenant_id=tenant_id)
    return InboundStatsOut(
        total_records=stats.total_records,
        pending_count=stats.pending_count,
        approved_count=stats.approved_count,
        rejected_count=stats.rejected_count,
        total_weight=float(stats.total_weight),
        approved_weight=float(stats.approved_weight),
    )


@router.post(
    "/import",
    response_model=InboundImportOut,
    summary="Import historical inbound movements as approved",
    responses=error_responses(400, 401, 403, 404, 422, 500, 503),
)
def import_inbound_endpoint(
    tenant_id: str,
    payload: InboundImportIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    records = [record.model_dump(exclude_none=True) for record in payload.records]
    imported = import_inbound(db, actor=actor, tenant_id=tenant_id, records=records)
    commit_ledger(db, operation="inbound.import")
    return InboundImportOut(imported=len(imported), ids=[movement.id for movement in imported])


@router.get(
    "/{inbound_id}",
    response_model=InboundOut,
    summary="Get an inbound movement",
    responses=error_responses(401, 404, 422, 500),
)
def get_inbound_endpoint(
    tenant_id: str,
    inbound_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    movement = get_inbound(db, tenant_id=tenant_id, inbound_id=inbound_id)
    return inbound_out(movement, list_attachments(db, tenant_id=tenant_id, inbound_id=movement.id))


@router.patch(
    "/{inbound_id}",
    response_model=InboundStatusOut,
    summary="Edit an inbound movement",
    description=(
        "Administrator edits re-approve the movement and move its balance contribution. "
        "Agent edits send it back to review without touching balance."
    ),
    responses=error_responses(400, 401, 404, 422, 500, 503),
)
def update_inbound_endpoint(
    tenant_id: str,
    inbound_id: str,
    payload: InboundUpdateIn,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    changes = payload.model_dump(exclude={"attachment"}, exclude_unset=True)
    movement = update_inbound(
        db,
        actor=actor,
        tenant_id=tenant_id,
        inbound_id=inbound_id,
        changes=changes,
        attachment=_attachment_ref(payload.attachment),
    )
    commit_ledger(db, operation="inbound.update")
    return InboundStatusOut(id=movement.id, status=movement.status)


@router.post(
    "/{inbound_id}/approve",
    response_model=InboundApproveOut,
    summary="Approve a pending inbound movement",
    responses=error_responses(401, 403, 404, 422, 500, 503),
)
def approve_inbound_endpoint(
    tenant_id: str,
    inbound_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    result = approve_inbound(db, actor=actor, tenant_id=tenant_id, inbound_id=inbound_id)
    if not result.already:
        commit_ledger(db, operation="inbound.approve")
    return InboundApproveOut(approved=result.approved, already=result.already)


@router.post(
    "/{inbound_id}/reject",
    response_model=InboundRejectOut,
    summary="Reject a pending inbound movement",
    responses=error_responses(401, 403, 404, 422, 500, 503),
)
def reject_inbound_endpoint(
    tenant_id: str,
    inbound_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    rejected = reject_inbound(db, actor=actor, tenant_id=tenant_id, inbound_id=inbound_id)
    commit_ledger(db, operation="inbound.reject")
    return InboundRejectOut(rejected=rejected)
