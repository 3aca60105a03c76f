from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lotledger.core.observability import log_ledger_event
from lotledger.core.quantities import to_weight
from lotledger.models.inventory import (
    INBOUND_APPROVED,
    INBOUND_REJECTED,
    InboundMovement,
    OutboundMovement,
)
from lotledger.services.diagnostics_service import (
    QUERY_FAILED,
    DiagnosticsReport,
    check_lot_references,
    new_report,
)
from lotledger.services.movement_store import LotUsage, empty_usage, get_lot_usage_map


@dataclass(frozen=True)
class AvailableLot:
    inbound: InboundMovement
    usage: LotUsage
    remaining_qty: int
    remaining_weight: Decimal


@dataclass
class LedgerEntry:
    inbound: InboundMovement
    usage: LotUsage
    remaining_qty: int
    remaining_weight: Decimal
    outbounds: list[OutboundMovement] = field(default_factory=list)


def _remaining(lot: InboundMovement, usage: LotUsage) -> tuple[int, Decimal]:
    return lot.actual_qty - usage.used_qty, to_weight(lot.actual_weight) - usage.used_weight


def _degrade(db: Session, report: DiagnosticsReport, *, tenant_id: str, query: str, exc: Exception) -> None:
    db.rollback()
    report.warn(QUERY_FAILED, f"{query} query failed: {exc.__class__.__name__}")
    log_ledger_event(
        "query.degraded",
        trace_id=report.trace_id,
        tenant_id=tenant_id,
        query=query,
        error=str(exc),
    )


def list_available_inbound(
    db: Session,
    *,
    tenant_id: str,
    category_id: str | None = None,
) -> tuple[list[AvailableLot], DiagnosticsReport]:
    """Approved lots that still have quantity and weight left to ship."""
    report = new_report()
    check_lot_references(db, tenant_id=tenant_id, report=report)
    try:
        stmt = select(InboundMovement).where(
            InboundMovement.tenant_id == tenant_id,
            InboundMovement.status == INBOUND_APPROVED,
        )
        if category_id:
            stmt = stmt.where(InboundMovement.category_id == category_id)
        lots = db.execute(
            stmt.order_by(
                InboundMovement.inbound_date.asc(),
                InboundMovement.created_at.asc(),
                InboundMovement.id.asc(),
            )
        ).scalars().all()
        usage_map = get_lot_usage_map(db, [lot.id for lot in lots])
    except SQLAlchemyError as exc:
        _degrade(db, report, tenant_id=tenant_id, query="available_inbound", exc=exc)
        return [], report

    available = []
    for lot in lots:
        usage = usage_map.get(lot.id, empty_usage())
        remaining_qty, remaining_weight = _remaining(lot, usage)
        if remaining_qty <= 0 or remaining_weight <= 0:
            continue
        available.append(
            AvailableLot(
                inbound=lot,
                usage=usage,
                remaining_qty=remaining_qty,
                remaining_weight=remaining_weight,
            )
        )
    return available, report


def get_ledger(
    db: Session,
    *,
    tenant_id: str,
    category_id: str | None = None,
) -> tuple[list[LedgerEntry], DiagnosticsReport]:
    """Every non-rejected inbound movement with the outbound movements drawn from it."""
    report = new_report()
    check_lot_references(db, tenant_id=tenant_id, report=report)
    try:
        stmt = select(InboundMovement).where(
            InboundMovement.tenant_id == tenant_id,
            InboundMovement.status != INBOUND_REJECTED,
        )
        if category_id:
            stmt = stmt.where(InboundMovement.category_id == category_id)
        lots = db.execute(
            stmt.order_by(
                InboundMovement.inbound_date.asc(),
                InboundMovement.created_at.asc(),
                InboundMovement.id.asc(),
            )
        ).scalars().all()
        lot_ids = [lot.id for lot in lots]
        usage_map = get_lot_usage_map(db, lot_ids)
        outbounds = []
        if lot_ids:
            outbounds = db.execute(
                select(OutboundMovement)
                .where(
                    OutboundMovement.tenant_id == tenant_id,
                    OutboundMovement.inbound_id.in_(lot_ids),
                )
                .order_by(OutboundMovement.created_at.asc(), OutboundMovement.id.asc())
            ).scalars().all()
    except SQLAlchemyError as exc:
        _degrade(db, report, tenant_id=tenant_id, query="ledger", exc=exc)
        return [], report

    by_lot: dict[str, list[OutboundMovement]] = {}
    for outbound in outbounds:
        by_lot.setdefault(outbound.inbound_id, []).append(outbound)

    entries = []
    for lot in lots:
        usage = usage_map.get(lot.id, empty_usage())
        remaining_qty, remaining_weight = _remaining(lot, usage)
        entries.append(
            LedgerEntry(
                inbound=lot,
                usage=usage,
                remaining_qty=remaining_qty,
                remaining_weight=remaining_weight,
                outbounds=by_lot.get(lot.id, []),
            )
        )
    return entries, report
