import uuid
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from lotledger.core.quantities import ZERO_WEIGHT, to_weight
from lotledger.models.inventory import InventoryBalance
from lotledger.services.movement_store import utcnow

_UPSERT_DIALECTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class BalanceReconciler:
    """
    The only writer of inventory_balance.

    Each call adds a signed delta to the (tenant, category, batch) row,
    creating the row on first use. Negative results are accepted and left
    for diagnostics to report.
    """

    def __init__(self, db: Session):
        self.db = db

    def apply_delta(
        self,
        *,
        tenant_id: str,
        category_id: str,
        batch_no: str,
        qty_delta: int,
        weight_delta: Decimal | int | str,
    ) -> None:
        weight_delta = to_weight(weight_delta)
        if qty_delta == 0 and weight_delta == ZERO_WEIGHT:
            return

        insert_fn = _UPSERT_DIALECTS.get(self.db.get_bind().dialect.name)
        if insert_fn is None:
            self._apply_with_orm(tenant_id, category_id, batch_no, qty_delta, weight_delta)
            return

        now = utcnow()
        stmt = insert_fn(InventoryBalance).values(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            category_id=category_id,
            batch_no=batch_no,
            available_qty=qty_delta,
            available_weight=weight_delta,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                InventoryBalance.tenant_id,
                InventoryBalance.category_id,
                InventoryBalance.batch_no,
            ],
            set_={
                "available_qty": InventoryBalance.available_qty + stmt.excluded.available_qty,
                "available_weight": InventoryBalance.available_weight + stmt.excluded.available_weight,
                "updated_at": now,
            },
        )
        self.db.execute(stmt)

    def _apply_with_orm(
        self,
        tenant_id: str,
        category_id: str,
        batch_no: str,
        qty_delta: int,
        weight_delta: Decimal,
    ) -> None:
        row = self.db.execute(
            select(InventoryBalance)
            .where(
                InventoryBalance.tenant_id == tenant_id,
                InventoryBalance.category_id == category_id,
                InventoryBalance.batch_no == batch_no,
            )
            .with_for_update()
        ).scalar_one_or_none()
        if row is None:
            self.db.add(
                InventoryBalance(
                    id=str(uuid.uuid4()),
                    tenant_id=tenant_id,
                    category_id=category_id,
                    batch_no=batch_no,
                    available_qty=qty_delta,
                    available_weight=weight_delta,
                    updated_at=utcnow(),
                )
            )
            self.db.flush()
            return
        row.available_qty = row.available_qty + qty_delta
        row.available_weight = to_weight(row.available_weight) + weight_delta
        row.updated_at = utcnow()
        self.db.flush()


def get_balance(
    db: Session,
    *,
    tenant_id: str,
    category_id: str | None = None,
    batch_no: str | None = None,
) -> list[InventoryBalance]:
    stmt = (
        select(InventoryBalance)
        .where(InventoryBalance.tenant_id == tenant_id)
        .execution_options(populate_existing=True)
    )
    if category_id:
        stmt = stmt.where(InventoryBalance.category_id == category_id)
    if batch_no:
        stmt = stmt.where(InventoryBalance.batch_no == batch_no)
    stmt = stmt.order_by(InventoryBalance.category_id.asc(), InventoryBalance.batch_no.asc())
    return list(db.execute(stmt).scalars().all())
