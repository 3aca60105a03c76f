from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class CategoryFieldSpec(BaseModel):
    name: str = Field(min_length=1, max_length=64)
    type: Literal["string", "number", "integer", "boolean"] = "string"
    required: bool = False


class CategoryFieldSchema(BaseModel):
    fields: list[CategoryFieldSpec] = Field(default_factory=list)


class CategoryCreateIn(BaseModel):
    code: str = Field(min_length=1, max_length=30)
    name: str = Field(min_length=1, max_length=120)
    field_schema: CategoryFieldSchema | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "code": "ZNC",
                "name": "Zinc concentrate",
                "field_schema": {
                    "fields": [{"name": "moisture_percent", "type": "number", "required": False}]
                },
            }
        }
    )


class CategoryUpdateIn(BaseModel):
    code: str | None = Field(default=None, min_length=1, max_length=30)
    name: str | None = Field(default=None, min_length=1, max_length=120)
    field_schema: CategoryFieldSchema | None = None
    is_active: bool | None = None


class CategoryOut(BaseModel):
    id: str
    code: str
    name: str
    field_schema: dict[str, Any] | None = None
    is_active: bool
    created_at: datetime | None = None
