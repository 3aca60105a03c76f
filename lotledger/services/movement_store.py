from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lotledger.core.errors import NotFound, StoreFailure
from lotledger.core.observability import log_ledger_event
from lotledger.core.quantities import to_weight
from lotledger.models.category import Category
from lotledger.models.inventory import InboundMovement, OutboundMovement


@dataclass(frozen=True)
class LotUsage:
    used_qty: int
    used_weight: Decimal
    outbound_count: int


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def get_inbound(
    db: Session,
    *,
    tenant_id: str,
    inbound_id: str,
    for_update: bool = False,
) -> InboundMovement:
    stmt = select(InboundMovement).where(
        InboundMovement.id == inbound_id,
        InboundMovement.tenant_id == tenant_id,
    )
    if for_update:
        stmt = stmt.with_for_update()
    movement = db.execute(stmt).scalar_one_or_none()
    if not movement:
        raise NotFound("Inbound movement not found")
    return movement


def get_category(db: Session, *, tenant_id: str, category_id: str) -> Category:
    category = db.execute(
        select(Category).where(Category.id == category_id, Category.tenant_id == tenant_id)
    ).scalar_one_or_none()
    if not category:
        raise NotFound("Category not found")
    return category


def get_lot_usage(db: Session, inbound_id: str) -> LotUsage:
    used_qty, used_weight, outbound_count = db.execute(
        select(
            func.coalesce(func.sum(OutboundMovement.outbound_qty), 0),
            func.coalesce(func.sum(OutboundMovement.outbound_weight), 0),
            func.count(OutboundMovement.id),
        ).where(OutboundMovement.inbound_id == inbound_id)
    ).one()
    return LotUsage(
        used_qty=int(used_qty),
        used_weight=to_weight(used_weight),
        outbound_count=int(outbound_count),
    )


def get_lot_usage_map(db: Session, inbound_ids: list[str]) -> dict[str, LotUsage]:
    if not inbound_ids:
        return {}
    rows = db.execute(
        select(
            OutboundMovement.inbound_id,
            func.coalesce(func.sum(OutboundMovement.outbound_qty), 0),
            func.coalesce(func.sum(OutboundMovement.outbound_weight), 0),
            func.count(OutboundMovement.id),
        )
        .where(OutboundMovement.inbound_id.in_(inbound_ids))
        .group_by(OutboundMovement.inbound_id)
    ).all()
    return {
        inbound_id: LotUsage(
            used_qty=int(used_qty),
            used_weight=to_weight(used_weight),
            outbound_count=int(outbound_count),
        )
        for inbound_id, used_qty, used_weight, outbound_count in rows
    }


def empty_usage() -> LotUsage:
    return LotUsage(used_qty=0, used_weight=to_weight(0), outbound_count=0)


def commit_ledger(db: Session, *, operation: str) -> None:
    """Commit the request's unit of work, surfacing store errors as StoreFailure."""
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        log_ledger_event("store_failure", operation=operation, error=str(exc))
        raise StoreFailure(f"Ledger store rejected {operation}") from exc
