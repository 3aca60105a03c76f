from datetime import datetime
from typing import Any

from pydantic import BaseModel


class HistoryEntryOut(BaseModel):
    id: str
    record_type: str
    record_id: str
    action: str
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    operator: str
    operator_role: str
    trace_id: str | None = None
    created_at: datetime


class HistoryListOut(BaseModel):
    items: list[HistoryEntryOut]
