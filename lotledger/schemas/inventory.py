from datetime import date, datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lotledger.schemas.common import DiagnosticWarningOut, PaginationMeta


class AttachmentIn(BaseModel):
    storage_key: str = Field(min_length=1, max_length=500, description="Object-store key of the uploaded photo")
    content_type: str | None = Field(default=None, max_length=100)


class AttachmentOut(BaseModel):
    id: str
    storage_key: str
    content_type: str | None = None
    created_by: str
    created_at: datetime | None = None


class _InboundFieldsIn(BaseModel):
    serial_no: str | None = Field(default=None, max_length=64)
    vehicle_no: str | None = Field(default=None, max_length=64)
    dispatch_date: date | None = None
    inbound_date: date | None = None
    dispatch_qty: int | None = Field(default=None, ge=0)
    dispatch_weight: Decimal | None = Field(default=None, ge=0)
    broken_qty: int | None = Field(default=None, ge=0)
    dirty_qty: int | None = Field(default=None, ge=0)
    wet_qty: int | None = Field(default=None, ge=0)
    shortage_qty: int | None = Field(default=None, ge=0)
    excess_qty: int | None = Field(default=None, ge=0)
    bill_of_lading: str | None = Field(default=None, max_length=64)
    contract_no: str | None = Field(default=None, max_length=64)
    loading_method: str | None = Field(default=None, max_length=50)
    content_percent: float | None = Field(default=None, ge=0, le=100)
    remarks: str | None = Field(default=None, max_length=500)
    extra_fields: dict[str, Any] | None = None


class InboundImportRecordIn(_InboundFieldsIn):
    category_id: str = Field(min_length=1)
    batch_no: str = Field(min_length=1, max_length=64)
    actual_qty: int = Field(ge=0)
    actual_weight: Decimal = Field(ge=0)

    @field_validator("batch_no")
    @classmethod
    def validate_batch_no(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("batch_no cannot be blank")
        return cleaned


class InboundCreateIn(InboundImportRecordIn):
    attachment: AttachmentIn | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "category_id": "category-id",
                "batch_no": "B1",
                "vehicle_no": "TRK-2231",
                "inbound_date": "2026-10-01",
                "actual_qty": 100,
                "actual_weight": 5.0,
                "broken_qty": 1,
                "attachment": {"storage_key": "images/2026/10/01/trk-2231.jpg", "content_type": "image/jpeg"},
            }
        }
    )


class InboundUpdateIn(_InboundFieldsIn):
    category_id: str | None = Field(default=None, min_length=1)
    batch_no: str | None = Field(default=None, min_length=1, max_length=64)
    actual_qty: int | None = Field(default=None, ge=0)
    actual_weight: Decimal | None = Field(default=None, ge=0)
    attachment: AttachmentIn | None = None


class InboundImportIn(BaseModel):
    records: list[InboundImportRecordIn] = Field(min_length=1)


class InboundImportOut(BaseModel):
    imported: int
    ids: list[str]


class InboundStatusOut(BaseModel):
    id: str
    status: str


class InboundApproveOut(BaseModel):
    approved: bool
    already: bool


class InboundRejectOut(BaseModel):
    rejected: bool


class InboundOut(BaseModel):
    id: str
    category_id: str
    batch_no: str
    serial_no: str | None = None
    vehicle_no: str | None = None
    dispatch_date: date | None = None
    inbound_date: date | None = None
    dispatch_qty: int | None = None
    dispatch_weight: float | None = None
    actual_qty: int
    actual_weight: float
    broken_qty: int
    dirty_qty: int
    wet_qty: int
    shortage_qty: int
    excess_qty: int
    bill_of_lading: str | None = None
    contract_no: str | None = None
    loading_method: str | None = None
    content_percent: float | None = None
    remarks: str | None = None
    extra_fields: dict[str, Any] | None = None
    status: Literal["pending_review", "approved", "rejected"]
    source: str
    created_by: str
    updated_by: str | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    attachments: list[AttachmentOut] | None = None


class InboundListOut(BaseModel):
    items: list[InboundOut]
    pagination: PaginationMeta


class InboundStatsOut(BaseModel):
    total_records: int
    pending_count: int
    approved_count: int
    rejected_count: int
    total_weight: float
    approved_weight: float


class OutboundCreateIn(BaseModel):
    inbound_id: str = Field(min_length=1)
    qty: int = Field(gt=0)
    weight: Decimal = Field(gt=0)
    outbound_date: date | None = None
    destination: str | None = Field(default=None, max_length=255)
    remarks: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "inbound_id": "inbound-id",
                "qty": 40,
                "weight": 2.0,
                "outbound_date": "2026-10-05",
                "destination": "Port terminal 3",
            }
        }
    )


class OutboundCreateOut(BaseModel):
    id: str
    remaining_qty: int
    remaining_weight: float


class OutboundOut(BaseModel):
    id: str
    inbound_id: str | None = None
    category_id: str
    batch_no: str
    outbound_qty: int
    outbound_weight: float
    outbound_date: date | None = None
    destination: str | None = None
    remarks: str | None = None
    status: str
    created_by: str
    approved_by: str
    approved_at: datetime | None = None
    created_at: datetime | None = None


class OutboundListOut(BaseModel):
    items: list[OutboundOut]
    pagination: PaginationMeta


class AvailableLotOut(BaseModel):
    inbound_id: str
    category_id: str
    batch_no: str
    vehicle_no: str | None = None
    inbound_date: date | None = None
    actual_qty: int
    actual_weight: float
    used_qty: int
    used_weight: float
    remaining_qty: int
    remaining_weight: float


class _DiagnosedListOut(BaseModel):
    trace_id: str
    degraded: bool
    warnings: list[DiagnosticWarningOut]


class AvailableLotListOut(_DiagnosedListOut):
    items: list[AvailableLotOut]


class LedgerSummaryOut(BaseModel):
    outbound_count: int
    used_qty: int
    used_weight: float


class LedgerEntryOut(BaseModel):
    inbound: InboundOut
    outbounds: list[OutboundOut]
    summary: LedgerSummaryOut
    remaining_qty: int
    remaining_weight: float


class LedgerOut(_DiagnosedListOut):
    items: list[LedgerEntryOut]


class BalanceOut(BaseModel):
    category_id: str
    batch_no: str
    available_qty: int
    available_weight: float
    updated_at: datetime | None = None


class BalanceListOut(BaseModel):
    items: list[BalanceOut]
