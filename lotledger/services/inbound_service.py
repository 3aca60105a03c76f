"""
Inbound workflow: create, edit, approve and reject receipt movements.

Status rules
    admin create / admin edit  -> approved, contribution booked
    agent create / agent edit  -> pending_review, balance untouched
    approve (pending_review)   -> approved, contribution booked once
    reject  (pending_review)   -> rejected (terminal)

A movement's booked contribution is tracked on the row itself
(applied_category_id, applied_batch_no, applied_qty, applied_weight), so
re-booking always releases the previous contribution at its own key first.
"""

import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from lotledger.core.config import settings
from lotledger.core.errors import Forbidden, NotFound, ValidationError
from lotledger.core.observability import log_ledger_event
from lotledger.core.quantities import to_weight
from lotledger.core.security_current import ROLE_ADMIN, ROLE_AGENT, Actor
from lotledger.models.inventory import (
    INBOUND_APPROVED,
    INBOUND_PENDING,
    INBOUND_REJECTED,
    InboundAttachment,
    InboundMovement,
)
from lotledger.services.balance_service import BalanceReconciler
from lotledger.services.category_service import validate_extra_fields
from lotledger.services.history_service import (
    ACTION_APPROVE,
    ACTION_CREATE,
    ACTION_REJECT,
    ACTION_UPDATE,
    RECORD_INBOUND,
    record_history,
    snapshot,
)
from lotledger.services.movement_store import get_category, get_inbound, get_lot_usage, utcnow

EDITABLE_FIELDS = (
    "category_id",
    "batch_no",
    "serial_no",
    "vehicle_no",
    "dispatch_date",
    "inbound_date",
    "dispatch_qty",
    "dispatch_weight",
    "actual_qty",
    "actual_weight",
    "broken_qty",
    "dirty_qty",
    "wet_qty",
    "shortage_qty",
    "excess_qty",
    "bill_of_lading",
    "contract_no",
    "loading_method",
    "content_percent",
    "remarks",
    "extra_fields",
)

_COUNTER_FIELDS = ("actual_qty", "broken_qty", "dirty_qty", "wet_qty", "shortage_qty", "excess_qty")


@dataclass(frozen=True)
class AttachmentRef:
    storage_key: str
    content_type: str | None = None


@dataclass(frozen=True)
class ApprovalResult:
    approved: bool
    already: bool


@dataclass(frozen=True)
class InboundStats:
    total_records: int
    pending_count: int
    approved_count: int
    rejected_count: int
    total_weight: Decimal
    approved_weight: Decimal


def _require_admin(actor: Actor, action: str) -> None:
    if actor.role != ROLE_ADMIN:
        raise Forbidden(f"Only administrators can {action} inbound movements")


def _normalize_values(values: dict[str, Any]) -> dict[str, Any]:
    cleaned = {key: value for key, value in values.items() if key in EDITABLE_FIELDS}

    if "batch_no" in cleaned:
        batch_no = str(cleaned["batch_no"] or "").strip()
        if not batch_no:
            raise ValidationError("batch_no is required")
        cleaned["batch_no"] = batch_no
    if "category_id" in cleaned and not str(cleaned["category_id"] or "").strip():
        raise ValidationError("category_id is required")

    for field in ("actual_qty", "actual_weight"):
        if field in cleaned and cleaned[field] is None:
            raise ValidationError(f"{field} cannot be null")
    for field in _COUNTER_FIELDS:
        if field in cleaned:
            if cleaned[field] is None:
                cleaned[field] = 0
            if int(cleaned[field]) < 0:
                raise ValidationError(f"{field} cannot be negative")
            cleaned[field] = int(cleaned[field])
    if "actual_weight" in cleaned:
        weight = to_weight(cleaned["actual_weight"])
        if weight < 0:
            raise ValidationError("actual_weight cannot be negative")
        cleaned["actual_weight"] = weight
    if cleaned.get("dispatch_weight") is not None:
        cleaned["dispatch_weight"] = to_weight(cleaned["dispatch_weight"])
    if cleaned.get("dispatch_qty") is not None and int(cleaned["dispatch_qty"]) < 0:
        raise ValidationError("dispatch_qty cannot be negative")
    return cleaned


def _book_contribution(reconciler: BalanceReconciler, movement: InboundMovement) -> None:
    reconciler.apply_delta(
        tenant_id=movement.tenant_id,
        category_id=movement.category_id,
        batch_no=movement.batch_no,
        qty_delta=movement.actual_qty,
        weight_delta=movement.actual_weight,
    )
    movement.applied_category_id = movement.category_id
    movement.applied_batch_no = movement.batch_no
    movement.applied_qty = movement.actual_qty
    movement.applied_weight = to_weight(movement.actual_weight)


def _release_contribution(reconciler: BalanceReconciler, movement: InboundMovement) -> None:
    if movement.applied_qty is None:
        return
    reconciler.apply_delta(
        tenant_id=movement.tenant_id,
        category_id=movement.applied_category_id,
        batch_no=movement.applied_batch_no,
        qty_delta=-movement.applied_qty,
        weight_delta=-to_weight(movement.applied_weight),
    )
    movement.applied_category_id = None
    movement.applied_batch_no = None
    movement.applied_qty = None
    movement.applied_weight = None


def _add_attachment(
    db: Session,
    *,
    movement: InboundMovement,
    attachment: AttachmentRef,
    actor: Actor,
) -> InboundAttachment:
    storage_key = attachment.storage_key.strip()
    if not storage_key:
        raise ValidationError("Attachment storage key cannot be empty")
    row = InboundAttachment(
        id=str(uuid.uuid4()),
        tenant_id=movement.tenant_id,
        inbound_id=movement.id,
        storage_key=storage_key,
        content_type=attachment.content_type,
        created_by=actor.id,
        created_at=utcnow(),
    )
    db.add(row)
    return row


def create_inbound(
    db: Session,
    *,
    actor: Actor,
    tenant_id: str,
    values: dict[str, Any],
    attachment: AttachmentRef | None = None,
) -> InboundMovement:
    if not str(values.get("category_id") or "").strip():
        raise ValidationError("category_id is required")
    if not str(values.get("batch_no") or "").strip():
        raise ValidationError("batch_no is required")
    if actor.role == ROLE_AGENT and (attachment is None or not attachment.storage_key.strip()):
        raise ValidationError("Agents must attach a photo of the received goods")

    cleaned = _normalize_values(values)
    category = get_category(db, tenant_id=tenant_id, category_id=cleaned["category_id"])
    if not category.is_active:
        raise ValidationError(f"Category {category.code} is inactive")
    cleaned["extra_fields"] = validate_extra_fields(category, cleaned.get("extra_fields"))
    cleaned.setdefault("actual_qty", 0)
    cleaned.setdefault("actual_weight", to_weight(0))
    if cleaned.get("loading_method") is None:
        cleaned["loading_method"] = settings.default_loading_method
    if cleaned.get("content_percent") is None:
        cleaned["content_percent"] = settings.default_content_percent

    now = utcnow()
    is_admin = actor.role == ROLE_ADMIN
    movement = InboundMovement(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        status=INBOUND_APPROVED if is_admin else INBOUND_PENDING,
        source=actor.role,
        created_by=actor.id,
        approved_by=actor.id if is_admin else None,
        approved_at=now if is_admin else None,
        created_at=now,
        updated_at=now,
        **cleaned,
    )
    db.add(movement)
    if attachment is not None:
        _add_attachment(db, movement=movement, attachment=attachment, actor=actor)

    if is_admin:
        _book_contribution(BalanceReconciler(db), movement)

    db.flush()
    record_history(
        db,
        tenant_id=tenant_id,
        record_type=RECORD_INBOUND,
        record_id=movement.id,
        action=ACTION_CREATE,
        actor=actor,
        before=None,
        after=snapshot(movement),
    )
    log_ledger_event(
        "inbound.create",
        tenant_id=tenant_id,
        inbound_id=movement.id,
        status=movement.status,
        actor=actor.id,
        role=actor.role,
    )
    return movement


def update_inbound(
    db: Session,
    *,
    actor: Actor,
    tenant_id: str,
    inbound_id: str,
    changes: dict[str, Any],
    attachment: AttachmentRef | None = None,
) -> InboundMovement:
    movement = get_inbound(db, tenant_id=tenant_id, inbound_id=inbound_id, for_update=True)
    if movement.status == INBOUND_REJECTED:
        raise NotFound("Inbound movement is rejected and can no longer be edited")

    cleaned = _normalize_values(changes)
    if not cleaned and attachment is None:
        raise ValidationError("No fields to update")

    category_id = cleaned.get("category_id", movement.category_id)
    if "category_id" in cleaned or "extra_fields" in cleaned:
        category = get_category(db, tenant_id=tenant_id, category_id=category_id)
        if "category_id" in cleaned and category_id != movement.category_id and not category.is_active:
            raise ValidationError(f"Category {category.code} is inactive")
        cleaned["extra_fields"] = validate_extra_fields(
            category, cleaned.get("extra_fields", movement.extra_fields)
        )

    usage = get_lot_usage(db, movement.id)
    if usage.outbound_count:
        new_qty = cleaned.get("actual_qty", movement.actual_qty)
        new_weight = cleaned.get("actual_weight", to_weight(movement.actual_weight))
        if new_qty < usage.used_qty or new_weight < usage.used_weight:
            raise ValidationError(
                "Lot quantities cannot drop below what has already been shipped",
                details={"used_qty": usage.used_qty, "used_weight": str(usage.used_weight)},
            )
        new_batch = cleaned.get("batch_no", movement.batch_no)
        if category_id != movement.category_id or new_batch != movement.batch_no:
            raise ValidationError("Lot has outbound allocations; category and batch are fixed")

    before = snapshot(movement)
    now = utcnow()
    for field, value in cleaned.items():
        setattr(movement, field, value)
    movement.updated_by = actor.id
    movement.updated_at = now
    if attachment is not None:
        _add_attachment(db, movement=movement, attachment=attachment, actor=actor)

    if actor.role == ROLE_ADMIN:
        movement.status = INBOUND_APPROVED
        movement.approved_by = actor.id
        movement.approved_at = now
        reconciler = BalanceReconciler(db)
        # Old key first: category or batch may have changed.
        _release_contribution(reconciler, movement)
        _book_contribution(reconciler, movement)
    else:
        # Agent edits never move live stock; any booked contribution stays
        # until an administrator approves or rejects the edit.
        movement.status = INBOUND_PENDING
        movement.approved_by = None
        movement.approved_at = None

    db.flush()
    record_history(
        db,
        tenant_id=tenant_id,
        record_type=RECORD_INBOUND,
        record_id=movement.id,
        action=ACTION_UPDATE,
        actor=actor,
        before=before,
        after=snapshot(movement),
    )
    log_ledger_event(
        "inbound.update",
        tenant_id=tenant_id,
        inbound_id=movement.id,
        previous_status=before["status"],
        status=movement.status,
        actor=actor.id,
        role=actor.role,
    )
    return movement


def approve_inbound(db: Session, *, actor: Actor, tenant_id: str, inbound_id: str) -> ApprovalResult:
    _require_admin(actor, "approve")
    movement = get_inbound(db, tenant_id=tenant_id, inbound_id=inbound_id)
    if movement.status == INBOUND_APPROVED:
        return ApprovalResult(approved=True, already=True)
    if movement.status != INBOUND_PENDING:
        raise NotFound("Inbound movement not found or not pending review")

    before = snapshot(movement)
    now = utcnow()
    result = db.execute(
        update(InboundMovement)
        .where(
            InboundMovement.id == movement.id,
            InboundMovement.tenant_id == tenant_id,
            InboundMovement.status == INBOUND_PENDING,
        )
        .values(
            status=INBOUND_APPROVED,
            approved_by=actor.id,
            approved_at=now,
            updated_by=actor.id,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(movement)
    if result.rowcount == 0:
        # Another approver won the conditional write; nothing left to book.
        if movement.status == INBOUND_APPROVED:
            return ApprovalResult(approved=True, already=True)
        raise NotFound("Inbound movement not found or not pending review")

    reconciler = BalanceReconciler(db)
    _release_contribution(reconciler, movement)
    _book_contribution(reconciler, movement)
    db.flush()

    record_history(
        db,
        tenant_id=tenant_id,
        record_type=RECORD_INBOUND,
        record_id=movement.id,
        action=ACTION_APPROVE,
        actor=actor,
        before=before,
        after=snapshot(movement),
    )
    log_ledger_event(
        "inbound.approve",
        tenant_id=tenant_id,
        inbound_id=movement.id,
        qty=movement.actual_qty,
        weight=movement.actual_weight,
        actor=actor.id,
    )
    return ApprovalResult(approved=True, already=False)


def reject_inbound(db: Session, *, actor: Actor, tenant_id: str, inbound_id: str) -> bool:
    _require_admin(actor, "reject")
    movement = get_inbound(db, tenant_id=tenant_id, inbound_id=inbound_id)
    if movement.status != INBOUND_PENDING:
        raise NotFound("Inbound movement not found or not pending review")
    usage = get_lot_usage(db, movement.id)
    if usage.outbound_count:
        raise ValidationError(
            "Lot has outbound allocations and cannot be rejected",
            details={"used_qty": usage.used_qty, "used_weight": str(usage.used_weight)},
        )

    before = snapshot(movement)
    now = utcnow()
    result = db.execute(
        update(InboundMovement)
        .where(
            InboundMovement.id == movement.id,
            InboundMovement.tenant_id == tenant_id,
            InboundMovement.status == INBOUND_PENDING,
        )
        .values(
            status=INBOUND_REJECTED,
            approved_by=actor.id,
            approved_at=now,
            updated_by=actor.id,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    db.refresh(movement)
    if result.rowcount == 0:
        raise NotFound("Inbound movement not found or not pending review")

    # A demoted edit may still carry its earlier booking; rejected rows never contribute.
    _release_contribution(BalanceReconciler(db), movement)
    db.flush()

    record_history(
        db,
        tenant_id=tenant_id,
        record_type=RECORD_INBOUND,
        record_id=movement.id,
        action=ACTION_REJECT,
        actor=actor,
        before=before,
        after=snapshot(movement),
    )
    log_ledger_event("inbound.reject", tenant_id=tenant_id, inbound_id=movement.id, actor=actor.id)
    return True


def import_inbound(
    db: Session,
    *,
    actor: Actor,
    tenant_id: str,
    records: list[dict[str, Any]],
) -> list[InboundMovement]:
    """Bulk-load historical receipts; every record goes through the admin create path."""
    _require_admin(actor, "import")
    if not records:
        raise ValidationError("records must contain at least one entry")
    if len(records) > settings.import_max_records:
        raise ValidationError(f"At most {settings.import_max_records} records can be imported at once")

    imported = []
    for index, values in enumerate(records):
        try:
            imported.append(create_inbound(db, actor=actor, tenant_id=tenant_id, values=values))
        except ValidationError as exc:
            raise ValidationError(f"Record {index}: {exc.message}", details=exc.details) from exc
    return imported


def list_inbound(
    db: Session,
    *,
    tenant_id: str,
    status: str | None = None,
    source: str | None = None,
    category_id: str | None = None,
    batch: str | None = None,
    vehicle: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[int, list[InboundMovement]]:
    filters = [InboundMovement.tenant_id == tenant_id]
    if status:
        filters.append(InboundMovement.status == status)
    if source:
        filters.append(InboundMovement.source == source)
    if category_id:
        filters.append(InboundMovement.category_id == category_id)
    if batch:
        filters.append(InboundMovement.batch_no.contains(batch, autoescape=True))
    if vehicle:
        filters.append(InboundMovement.vehicle_no.contains(vehicle, autoescape=True))
    if start_date:
        filters.append(InboundMovement.inbound_date >= start_date)
    if end_date:
        filters.append(InboundMovement.inbound_date <= end_date)

    total = int(db.execute(select(func.count(InboundMovement.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(InboundMovement)
        .where(*filters)
        .order_by(InboundMovement.created_at.desc(), InboundMovement.id.asc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return total, list(rows)


def list_attachments(db: Session, *, tenant_id: str, inbound_id: str) -> list[InboundAttachment]:
    rows = db.execute(
        select(InboundAttachment)
        .where(InboundAttachment.tenant_id == tenant_id, InboundAttachment.inbound_id == inbound_id)
        .order_by(InboundAttachment.created_at.asc())
    ).scalars().all()
    return list(rows)


def get_inbound_stats(db: Session, *, tenant_id: str) -> InboundStats:
    row = db.execute(
        select(
            func.count(InboundMovement.id),
            func.coalesce(func.sum(case((InboundMovement.status == INBOUND_PENDING, 1), else_=0)), 0),
            func.coalesce(func.sum(case((InboundMovement.status == INBOUND_APPROVED, 1), else_=0)), 0),
            func.coalesce(func.sum(case((InboundMovement.status == INBOUND_REJECTED, 1), else_=0)), 0),
            func.coalesce(func.sum(InboundMovement.actual_weight), 0),
            func.coalesce(
                func.sum(
                    case(
                        (InboundMovement.status == INBOUND_APPROVED, InboundMovement.actual_weight),
                        else_=0,
                    )
                ),
                0,
            ),
        ).where(InboundMovement.tenant_id == tenant_id)
    ).one()
    total, pending, approved, rejected, total_weight, approved_weight = row
    return InboundStats(
        total_records=int(total),
        pending_count=int(pending),
        approved_count=int(approved),
        rejected_count=int(rejected),
        total_weight=to_weight(total_weight),
        approved_weight=to_weight(approved_weight),
    )
