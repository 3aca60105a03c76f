"""
Read-time integrity checks for the ledger.

Checks never raise. Each finding becomes a DiagnosticWarning on a
DiagnosticsReport that travels next to (not inside) the query result, and
every pass is logged under its trace id.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, aliased

from lotledger.core.id_utils import generate_trace_id
from lotledger.core.observability import log_ledger_event
from lotledger.core.quantities import to_weight
from lotledger.models.inventory import InboundMovement, InventoryBalance, OutboundMovement

MISSING_LOT_REFERENCE = "missing_lot_reference"
ORPHAN_LOT_REFERENCE = "orphan_lot_reference"
CROSS_TENANT_LOT_REFERENCE = "cross_tenant_lot_reference"
NEGATIVE_BALANCE = "negative_balance"
BALANCE_DRIFT = "balance_drift"
QUERY_FAILED = "query_failed"
DIAGNOSTICS_FAILED = "diagnostics_failed"

_DRIFT_SAMPLE_SIZE = 20


@dataclass(frozen=True)
class DiagnosticWarning:
    code: str
    message: str
    count: int = 0
    details: list[dict[str, Any]] | None = None


@dataclass
class DiagnosticsReport:
    trace_id: str
    warnings: list[DiagnosticWarning] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return bool(self.warnings)

    def warn(self, code: str, message: str, count: int = 0, details: list[dict[str, Any]] | None = None) -> None:
        self.warnings.append(DiagnosticWarning(code=code, message=message, count=count, details=details))


def new_report() -> DiagnosticsReport:
    return DiagnosticsReport(trace_id=generate_trace_id())


def _count(db: Session, stmt) -> int:
    return int(db.execute(stmt).scalar_one())


def check_lot_references(db: Session, *, tenant_id: str, report: DiagnosticsReport) -> DiagnosticsReport:
    lot = aliased(InboundMovement)
    try:
        missing = _count(
            db,
            select(func.count(OutboundMovement.id)).where(
                OutboundMovement.tenant_id == tenant_id,
                OutboundMovement.inbound_id.is_(None),
            ),
        )
        orphaned = _count(
            db,
            select(func.count(OutboundMovement.id))
            .select_from(OutboundMovement)
            .outerjoin(lot, lot.id == OutboundMovement.inbound_id)
            .where(
                OutboundMovement.tenant_id == tenant_id,
                OutboundMovement.inbound_id.is_not(None),
                lot.id.is_(None),
            ),
        )
        cross_tenant = _count(
            db,
            select(func.count(OutboundMovement.id))
            .select_from(OutboundMovement)
            .join(lot, lot.id == OutboundMovement.inbound_id)
            .where(
                OutboundMovement.tenant_id == tenant_id,
                lot.tenant_id != tenant_id,
            ),
        )
    except SQLAlchemyError as exc:
        db.rollback()
        report.warn(DIAGNOSTICS_FAILED, f"Lot reference checks could not run: {exc.__class__.__name__}")
        _log_pass(report, tenant_id=tenant_id, check="lot_references")
        return report

    if missing:
        report.warn(MISSING_LOT_REFERENCE, "Outbound movements without a lot reference", missing)
    if orphaned:
        report.warn(ORPHAN_LOT_REFERENCE, "Outbound movements referencing a missing inbound lot", orphaned)
    if cross_tenant:
        report.warn(
            CROSS_TENANT_LOT_REFERENCE,
            "Outbound movements referencing another tenant's inbound lot",
            cross_tenant,
        )
    _log_pass(report, tenant_id=tenant_id, check="lot_references")
    return report


def _expected_balances(db: Session, tenant_id: str) -> dict[tuple[str, str], tuple[int, Decimal]]:
    expected: dict[tuple[str, str], list] = defaultdict(lambda: [0, to_weight(0)])
    booked = db.execute(
        select(
            InboundMovement.applied_category_id,
            InboundMovement.applied_batch_no,
            func.coalesce(func.sum(InboundMovement.applied_qty), 0),
            func.coalesce(func.sum(InboundMovement.applied_weight), 0),
        )
        .where(
            InboundMovement.tenant_id == tenant_id,
            InboundMovement.applied_qty.is_not(None),
        )
        .group_by(InboundMovement.applied_category_id, InboundMovement.applied_batch_no)
    ).all()
    for category_id, batch_no, qty, weight in booked:
        entry = expected[(category_id, batch_no)]
        entry[0] += int(qty)
        entry[1] += to_weight(weight)

    shipped = db.execute(
        select(
            OutboundMovement.category_id,
            OutboundMovement.batch_no,
            func.coalesce(func.sum(OutboundMovement.outbound_qty), 0),
            func.coalesce(func.sum(OutboundMovement.outbound_weight), 0),
        )
        .where(OutboundMovement.tenant_id == tenant_id)
        .group_by(OutboundMovement.category_id, OutboundMovement.batch_no)
    ).all()
    for category_id, batch_no, qty, weight in shipped:
        entry = expected[(category_id, batch_no)]
        entry[0] -= int(qty)
        entry[1] -= to_weight(weight)
    return {key: (value[0], value[1]) for key, value in expected.items()}


def check_balances(db: Session, *, tenant_id: str, report: DiagnosticsReport) -> DiagnosticsReport:
    """Verify cached balances against the movement history (the only full re-scan)."""
    try:
        balances = db.execute(
            select(InventoryBalance)
            .where(InventoryBalance.tenant_id == tenant_id)
            .execution_options(populate_existing=True)
        ).scalars().all()
        expected = _expected_balances(db, tenant_id)
    except SQLAlchemyError as exc:
        db.rollback()
        report.warn(DIAGNOSTICS_FAILED, f"Balance checks could not run: {exc.__class__.__name__}")
        _log_pass(report, tenant_id=tenant_id, check="balances")
        return report

    negative = [row for row in balances if row.available_qty < 0 or to_weight(row.available_weight) < 0]
    if negative:
        report.warn(
            NEGATIVE_BALANCE,
            "Balance rows below zero",
            len(negative),
            details=[
                {
                    "category_id": row.category_id,
                    "batch_no": row.batch_no,
                    "available_qty": row.available_qty,
                    "available_weight": str(to_weight(row.available_weight)),
                }
                for row in negative[:_DRIFT_SAMPLE_SIZE]
            ],
        )

    drifted = []
    seen: set[tuple[str, str]] = set()
    for row in balances:
        key = (row.category_id, row.batch_no)
        seen.add(key)
        expected_qty, expected_weight = expected.get(key, (0, to_weight(0)))
        if row.available_qty != expected_qty or to_weight(row.available_weight) != expected_weight:
            drifted.append(
                {
                    "category_id": row.category_id,
                    "batch_no": row.batch_no,
                    "available_qty": row.available_qty,
                    "expected_qty": expected_qty,
                    "available_weight": str(to_weight(row.available_weight)),
                    "expected_weight": str(expected_weight),
                }
            )
    for key, (expected_qty, expected_weight) in expected.items():
        if key in seen or (expected_qty == 0 and expected_weight == 0):
            continue
        drifted.append(
            {
                "category_id": key[0],
                "batch_no": key[1],
                "available_qty": None,
                "expected_qty": expected_qty,
                "available_weight": None,
                "expected_weight": str(expected_weight),
            }
        )
    if drifted:
        report.warn(
            BALANCE_DRIFT,
            "Balance rows disagree with movement history",
            len(drifted),
            details=drifted[:_DRIFT_SAMPLE_SIZE],
        )
    _log_pass(report, tenant_id=tenant_id, check="balances")
    return report


def _log_pass(report: DiagnosticsReport, *, tenant_id: str, check: str) -> None:
    log_ledger_event(
        "diagnostics.pass",
        trace_id=report.trace_id,
        tenant_id=tenant_id,
        check=check,
        degraded=report.degraded,
        warnings=[{"code": w.code, "count": w.count} for w in report.warnings],
    )


def run_diagnostics(db: Session, *, tenant_id: str, include_balances: bool = True) -> DiagnosticsReport:
    report = new_report()
    check_lot_references(db, tenant_id=tenant_id, report=report)
    if include_balances:
        check_balances(db, tenant_id=tenant_id, report=report)
    return report

