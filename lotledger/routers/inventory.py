from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lotledger.core.api_docs import error_responses
from lotledger.core.deps import get_db
from lotledger.core.security_current import Actor, get_current_actor, require_admin
from lotledger.routers.inbound import inbound_out
from lotledger.routers.outbound import outbound_out
from lotledger.schemas.common import DiagnosticsOut, DiagnosticWarningOut
from lotledger.schemas.inventory import (
    AvailableLotListOut,
    AvailableLotOut,
    BalanceListOut,
    BalanceOut,
    LedgerEntryOut,
    LedgerOut,
    LedgerSummaryOut,
)
from lotledger.services.balance_service import get_balance
from lotledger.services.diagnostics_service import DiagnosticsReport, run_diagnostics
from lotledger.services.ledger_query_service import get_ledger, list_available_inbound

router = APIRouter(prefix="/tenants/{tenant_id}/inventory", tags=["inventory"])


def _warnings_out(report: DiagnosticsReport) -> list[DiagnosticWarningOut]:
    return [
        DiagnosticWarningOut(code=w.code, message=w.message, count=w.count, details=w.details)
        for w in report.warnings
    ]


@router.get(
    "/available",
    response_model=AvailableLotListOut,
    summary="Approved lots with stock left to ship",
    description="Never fails on inconsistent data; check `degraded` and `warnings`.",
    responses={
        200: {
            "description": "Available lots plus integrity warnings",
            "content": {
                "application/json": {
                    "example": {
                        "trace_id": "diag_V4oZfYHqCfFzTKp8ZhxWnS",
                        "degraded": True,
                        "warnings": [
                            {
                                "code": "missing_lot_reference",
                                "message": "Outbound movements without a lot reference",
                                "count": 1,
                                "details": None,
                            }
                        ],
                        "items": [
                            {
                                "inbound_id": "inbound-id",
                                "category_id": "category-id",
                                "batch_no": "B1",
                                "vehicle_no": "TRK-2231",
                                "inbound_date": "2026-10-01",
                                "actual_qty": 100,
                                "actual_weight": 5.0,
                                "used_qty": 40,
                                "used_weight": 2.0,
                                "remaining_qty": 60,
                                "remaining_weight": 3.0,
                            }
                        ],
                    }
                }
            },
        },
        **error_responses(401, 422, 500),
    },
)
def list_available_endpoint(
    tenant_id: str,
    category_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    lots, report = list_available_inbound(db, tenant_id=tenant_id, category_id=category_id)
    items = [
        AvailableLotOut(
            inbound_id=lot.inbound.id,
            category_id=lot.inbound.category_id,
            batch_no=lot.inbound.batch_no,
            vehicle_no=lot.inbound.vehicle_no,
            inbound_date=lot.inbound.inbound_date,
            actual_qty=lot.inbound.actual_qty,
            actual_weight=float(lot.inbound.actual_weight),
            used_qty=lot.usage.used_qty,
            used_weight=float(lot.usage.used_weight),
            remaining_qty=lot.remaining_qty,
            remaining_weight=float(lot.remaining_weight),
        )
        for lot in lots
    ]
    return AvailableLotListOut(
        items=items,
        trace_id=report.trace_id,
        degraded=report.degraded,
        warnings=_warnings_out(report),
    )


@router.get(
    "/ledger",
    response_model=LedgerOut,
    summary="Lot ledger: each inbound movement with its outbound movements",
    description="Never fails on inconsistent data; check `degraded` and `warnings`.",
    responses=error_responses(401, 422, 500),
)
def ledger_endpoint(
    tenant_id: str,
    category_id: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    entries, report = get_ledger(db, tenant_id=tenant_id, category_id=category_id)
    items = [
        LedgerEntryOut(
            inbound=inbound_out(entry.inbound),
            outbounds=[outbound_out(row) for row in entry.outbounds],
            summary=LedgerSummaryOut(
                outbound_count=entry.usage.outbound_count,
                used_qty=entry.usage.used_qty,
                used_weight=float(entry.usage.used_weight),
            ),
            remaining_qty=entry.remaining_qty,
            remaining_weight=float(entry.remaining_weight),
        )
        for entry in entries
    ]
    return LedgerOut(
        items=items,
        trace_id=report.trace_id,
        degraded=report.degraded,
        warnings=_warnings_out(report),
    )


@router.get(
    "/balance",
    response_model=BalanceListOut,
    summary="Running balance per category and batch",
    responses=error_responses(401, 422, 500),
)
def balance_endpoint(
    tenant_id: str,
    category_id: str | None = Query(default=None),
    batch_no: str | None = Query(default=None),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_current_actor),
):
    rows = get_balance(db, tenant_id=tenant_id, category_id=category_id, batch_no=batch_no)
    return BalanceListOut(
        items=[
            BalanceOut(
                category_id=row.category_id,
                batch_no=row.batch_no,
                available_qty=row.available_qty,
                available_weight=float(row.available_weight),
                updated_at=row.updated_at,
            )
            for row in rows
        ]
    )


@router.get(
    "/diagnostics",
    response_model=DiagnosticsOut,
    summary="Run ledger integrity checks",
    description="Reference checks plus negative-balance and balance-drift verification.",
    responses=error_responses(401, 403, 422, 500),
)
def diagnostics_endpoint(
    tenant_id: str,
    include_balances: bool = Query(default=True),
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_admin),
):
    report = run_diagnostics(db, tenant_id=tenant_id, include_balances=include_balances)
    return DiagnosticsOut(trace_id=report.trace_id, degraded=report.degraded, warnings=_warnings_out(report))
