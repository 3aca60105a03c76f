from typing import Any

from pydantic import BaseModel, ConfigDict


class PaginationMeta(BaseModel):
    total: int
    limit: int
    offset: int
    count: int
    has_next: bool

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "total": 42,
                "limit": 20,
                "offset": 0,
                "count": 20,
                "has_next": True,
            }
        }
    )


class ValidationIssueOut(BaseModel):
    field: str
    message: str
    type: str | None = None


class ErrorDetailOut(BaseModel):
    code: str
    message: str
    request_id: str
    path: str
    details: list[ValidationIssueOut] | dict[str, Any] | None = None


class ErrorOut(BaseModel):
    error: ErrorDetailOut

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "capacity_exceeded",
                    "message": "Requested quantity exceeds what remains in this lot",
                    "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                    "path": "/tenants/tenant-id/outbound",
                    "details": {
                        "remaining_qty": 60,
                        "remaining_weight": "3.000",
                        "requested_qty": 70,
                        "requested_weight": "3.500",
                    },
                }
            }
        }
    )


class DiagnosticWarningOut(BaseModel):
    code: str
    message: str
    count: int
    details: list[dict[str, Any]] | None = None


class DiagnosticsOut(BaseModel):
    trace_id: str
    degraded: bool
    warnings: list[DiagnosticWarningOut]
