import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lotledger.core.errors import CapacityExceeded, Forbidden, NotFound, ValidationError
from lotledger.core.observability import log_ledger_event
from lotledger.core.quantities import to_weight
from lotledger.core.security_current import ROLE_ADMIN, Actor
from lotledger.models.inventory import INBOUND_APPROVED, OUTBOUND_APPROVED, OutboundMovement
from lotledger.services.balance_service import BalanceReconciler
from lotledger.services.history_service import ACTION_CREATE, RECORD_OUTBOUND, record_history, snapshot
from lotledger.services.movement_store import get_inbound, get_lot_usage, utcnow


@dataclass(frozen=True)
class AllocationResult:
    outbound: OutboundMovement
    remaining_qty: int
    remaining_weight: Decimal


def create_outbound(
    db: Session,
    *,
    actor: Actor,
    tenant_id: str,
    inbound_id: str,
    qty: int,
    weight: Decimal | int | str,
    outbound_date: date | None = None,
    destination: str | None = None,
    remarks: str | None = None,
) -> AllocationResult:
    """
    Ship `qty`/`weight` out of one approved inbound lot.

    The lot row is read FOR UPDATE, so on databases with row locks two
    allocations against the same lot cannot both pass the remaining check.
    """
    if actor.role != ROLE_ADMIN:
        raise Forbidden("Only administrators can record outbound movements")

    weight = to_weight(weight)
    if qty is None or int(qty) <= 0:
        raise ValidationError("outbound qty must be greater than 0")
    if weight <= 0:
        raise ValidationError("outbound weight must be greater than 0")
    qty = int(qty)

    try:
        lot = get_inbound(db, tenant_id=tenant_id, inbound_id=inbound_id, for_update=True)
    except NotFound:
        raise NotFound("Inbound lot not found or not approved") from None
    if lot.status != INBOUND_APPROVED:
        raise NotFound("Inbound lot not found or not approved")

    usage = get_lot_usage(db, lot.id)
    remaining_qty = lot.actual_qty - usage.used_qty
    remaining_weight = to_weight(lot.actual_weight) - usage.used_weight
    if remaining_qty <= 0 or qty > remaining_qty or weight > remaining_weight:
        log_ledger_event(
            "outbound.capacity_exceeded",
            tenant_id=tenant_id,
            inbound_id=lot.id,
            requested_qty=qty,
            requested_weight=weight,
            remaining_qty=remaining_qty,
            remaining_weight=remaining_weight,
        )
        raise CapacityExceeded(
            "Requested quantity exceeds what remains in this lot",
            remaining_qty=remaining_qty,
            remaining_weight=str(remaining_weight),
            requested_qty=qty,
            requested_weight=str(weight),
        )

    now = utcnow()
    outbound = OutboundMovement(
        id=str(uuid.uuid4()),
        tenant_id=tenant_id,
        inbound_id=lot.id,
        category_id=lot.category_id,
        batch_no=lot.batch_no,
        outbound_qty=qty,
        outbound_weight=weight,
        outbound_date=outbound_date,
        destination=destination,
        remarks=remarks,
        status=OUTBOUND_APPROVED,
        created_by=actor.id,
        approved_by=actor.id,
        approved_at=now,
        created_at=now,
    )
    db.add(outbound)
    BalanceReconciler(db).apply_delta(
        tenant_id=tenant_id,
        category_id=lot.category_id,
        batch_no=lot.batch_no,
        qty_delta=-qty,
        weight_delta=-weight,
    )
    db.flush()

    record_history(
        db,
        tenant_id=tenant_id,
        record_type=RECORD_OUTBOUND,
        record_id=outbound.id,
        action=ACTION_CREATE,
        actor=actor,
        before=None,
        after=snapshot(outbound),
    )
    log_ledger_event(
        "outbound.create",
        tenant_id=tenant_id,
        outbound_id=outbound.id,
        inbound_id=lot.id,
        qty=qty,
        weight=weight,
        actor=actor.id,
    )
    return AllocationResult(
        outbound=outbound,
        remaining_qty=remaining_qty - qty,
        remaining_weight=remaining_weight - weight,
    )


def list_outbound(
    db: Session,
    *,
    tenant_id: str,
    inbound_id: str | None = None,
    category_id: str | None = None,
    batch_no: str | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[int, list[OutboundMovement]]:
    filters = [OutboundMovement.tenant_id == tenant_id]
    if inbound_id:
        filters.append(OutboundMovement.inbound_id == inbound_id)
    if category_id:
        filters.append(OutboundMovement.category_id == category_id)
    if batch_no:
        filters.append(OutboundMovement.batch_no == batch_no)

    total = int(db.execute(select(func.count(OutboundMovement.id)).where(*filters)).scalar_one())
    rows = db.execute(
        select(OutboundMovement)
        .where(*filters)
        .order_by(OutboundMovement.created_at.desc(), OutboundMovement.id.asc())
        .offset(offset)
        .limit(limit)
    ).scalars().all()
    return total, list(rows)
