from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import AssetVisibility, MemoryType


class MemorySearch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_saved: bool | None = None
    type: MemoryType | None = None
    for_: datetime | None = Field(default=None, alias="for")
    is_trashed: bool | None = None


class MemoryCreatePayload(BaseModel):
    type: MemoryType
    data: dict[str, Any] = Field(default_factory=dict)
    memory_at: datetime
    is_saved: bool | None = None
    seen_at: datetime | None = None
    show_at: datetime | None = None
    hide_at: datetime | None = None
    asset_ids: list[UUID] = Field(default_factory=list)


class MemoryUpdatePayload(BaseModel):
    is_saved: bool | None = None
    seen_at: datetime | None = None
    memory_at: datetime | None = None


class BulkIdsPayload(BaseModel):
    ids: list[UUID]


class BulkIdResult(BaseModel):
    id: UUID
    success: bool
    error: str | None = None


class MemoryAssetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    original_filename: str | None = None
    visibility: AssetVisibility
    file_created_at: datetime


class MemoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    owner_id: UUID
    type: MemoryType
    data: dict[str, Any]
    memory_at: datetime
    is_saved: bool
    seen_at: datetime | None = None
    show_at: datetime | None = None
    hide_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    deleted_at: datetime | None = None
    assets: list[MemoryAssetResponse]


class MemoryStatisticsResponse(BaseModel):
    total: int
