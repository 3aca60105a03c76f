"""
Typed errors raised by the ledger engine.

Every error carries a machine-readable ``code`` and the HTTP status the
API binding renders it with. Routers never translate these by hand; the
exception handler in ``lotledger.core.observability`` does.

    LedgerError
    +-- Unauthenticated      401
    +-- Forbidden            403
    +-- ValidationError      400
    +-- NotFound             404
    +-- CapacityExceeded     409
    +-- StoreFailure         503
"""

from typing import Any


class LedgerError(ValueError):
    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class Unauthenticated(LedgerError):
    code = "unauthorized"
    status_code = 401


class Forbidden(LedgerError):
    code = "forbidden"
    status_code = 403


class ValidationError(LedgerError):
    code = "bad_request"
    status_code = 400


class NotFound(LedgerError):
    code = "not_found"
    status_code = 404


class CapacityExceeded(LedgerError):
    code = "capacity_exceeded"
    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        remaining_qty: int,
        remaining_weight: str,
        requested_qty: int,
        requested_weight: str,
    ):
        super().__init__(
            message,
            details={
                "remaining_qty": remaining_qty,
                "remaining_weight": remaining_weight,
                "requested_qty": requested_qty,
                "requested_weight": requested_weight,
            },
        )
        self.remaining_qty = remaining_qty
        self.remaining_weight = remaining_weight


class StoreFailure(LedgerError):
    code = "store_unavailable"
    status_code = 503
