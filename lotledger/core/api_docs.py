from typing import Any

from lotledger.core.errors import (
    CapacityExceeded,
    Forbidden,
    LedgerError,
    NotFound,
    StoreFailure,
    Unauthenticated,
    ValidationError,
)
from lotledger.schemas.common import ErrorOut

_LEDGER_ERRORS: dict[int, tuple[type[LedgerError], str]] = {
    400: (ValidationError, "batch_no is required"),
    401: (Unauthenticated, "Not authenticated"),
    403: (Forbidden, "Insufficient role for this action"),
    404: (NotFound, "Inbound lot not found or not approved"),
    409: (CapacityExceeded, "Requested quantity exceeds what remains in this lot"),
    503: (StoreFailure, "Ledger store rejected outbound.create"),
}

_OTHER_ERRORS: dict[int, tuple[str, str]] = {
    422: ("validation_error", "Validation failed"),
    500: ("internal_error", "Internal server error"),
}

_EXAMPLE_DETAILS: dict[int, Any] = {
    409: {"remaining_qty": 60, "remaining_weight": "3.000", "requested_qty": 70, "requested_weight": "3.500"},
    422: [{"field": "qty", "message": "Input should be greater than 0", "type": "greater_than"}],
}


def _example(status_code: int) -> tuple[str, str]:
    if status_code in _LEDGER_ERRORS:
        error_cls, message = _LEDGER_ERRORS[status_code]
        return error_cls.code, message
    return _OTHER_ERRORS.get(status_code, ("http_error", "HTTP error"))


def error_responses(*status_codes: int) -> dict[int, dict]:
    """OpenAPI `responses` entries rendering the shared error envelope."""
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, message = _example(status_code)
        responses[status_code] = {
            "model": ErrorOut,
            "description": message,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": message,
                            "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                            "path": "/tenants/tenant-id/outbound",
                            "details": _EXAMPLE_DETAILS.get(status_code),
                        }
                    }
                }
            },
        }
    return responses
