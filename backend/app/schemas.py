from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


class Order(BaseModel):
    hash: str
    target: str
    maker: str
    created_at: datetime
    delayed: bool
    source: str
    data: dict[str, Any] | None = None

    model_config = {"from_attributes": True}


class OrderList(BaseModel):
    total: int
    items: list[Order]


class OpenSeaSyncRequest(BaseModel):
    listed_after: int = Field(0, ge=0, description="Lower bound (unix seconds) of the listing window")
    listed_before: int = Field(0, ge=0, description="Upper bound (unix seconds), 0 for unbounded")
    backfill: bool = False
    once: bool = False
    offset: int = Field(0, ge=0)
    limit: int = Field(50, ge=1, le=50)


class OpenSeaSyncResult(BaseModel):
    last_created_date: str


class SeaportWindowRequest(BaseModel):
    from_timestamp: int | None = Field(None, ge=0)
    to_timestamp: int | None = Field(None, ge=0)
    cursor: str | None = None

    @field_validator("cursor")
    @classmethod
    def _blank_cursor_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class SeaportWindowResult(BaseModel):
    next_cursor: str | None


class SyncCompleted(BaseModel):
    status: str = "completed"
