from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_current_user
from app.core.database import get_db
from app.core.rate_limit import MEMORIES_READ_LIMIT, MEMORIES_WRITE_LIMIT, limiter
from app.models.enums import MemoryType
from app.models.user import User
from app.schemas.memory import (
    BulkIdResult,
    BulkIdsPayload,
    MemoryCreatePayload,
    MemoryResponse,
    MemorySearch,
    MemoryStatisticsResponse,
    MemoryUpdatePayload,
)
from app.services.memories import MemoryService

router = APIRouter(prefix="/memories", tags=["memories"])


def _parse_memory_id(memory_id: str) -> UUID:
    try:
        return UUID(memory_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail="Invalid memory id") from exc


def _search_params(
    is_saved: bool | None = Query(default=None),
    type: MemoryType | None = Query(default=None),
    for_: datetime | None = Query(default=None, alias="for"),
    is_trashed: bool | None = Query(default=None),
) -> MemorySearch:
    return MemorySearch(is_saved=is_saved, type=type, for_=for_, is_trashed=is_trashed)


@router.get("", response_model=list[MemoryResponse])
@limiter.limit(MEMORIES_READ_LIMIT)
async def search_memories(
    request: Request,
    dto: MemorySearch = Depends(_search_params),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).search(current_user.id, dto)


@router.get("/statistics", response_model=MemoryStatisticsResponse)
@limiter.limit(MEMORIES_READ_LIMIT)
async def memories_statistics(
    request: Request,
    dto: MemorySearch = Depends(_search_params),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).statistics(current_user.id, dto)


@router.post("", response_model=MemoryResponse, status_code=201)
@limiter.limit(MEMORIES_WRITE_LIMIT)
async def create_memory(
    request: Request,
    payload: MemoryCreatePayload,
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).create(current_user.id, payload)


@router.get("/{memory_id}", response_model=MemoryResponse)
@limiter.limit(MEMORIES_READ_LIMIT)
async def get_memory(
    request: Request,
    memory_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).get(current_user.id, _parse_memory_id(memory_id))


@router.put("/{memory_id}", response_model=MemoryResponse)
@limiter.limit(MEMORIES_WRITE_LIMIT)
async def update_memory(
    request: Request,
    payload: MemoryUpdatePayload,
    memory_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).update(current_user.id, _parse_memory_id(memory_id), payload)


@router.delete("/{memory_id}")
@limiter.limit(MEMORIES_WRITE_LIMIT)
async def delete_memory(
    request: Request,
    memory_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    await MemoryService(db).remove(current_user.id, _parse_memory_id(memory_id))
    return {"ok": True}


@router.put("/{memory_id}/assets", response_model=list[BulkIdResult])
@limiter.limit(MEMORIES_WRITE_LIMIT)
async def add_memory_assets(
    request: Request,
    payload: BulkIdsPayload,
    memory_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).add_assets(current_user.id, _parse_memory_id(memory_id), payload.ids)


@router.delete("/{memory_id}/assets", response_model=list[BulkIdResult])
@limiter.limit(MEMORIES_WRITE_LIMIT)
async def remove_memory_assets(
    request: Request,
    payload: BulkIdsPayload,
    memory_id: str = Path(...),
    current_user: User = Depends(require_current_user),
    db: AsyncSession = Depends(get_db),
):
    return await MemoryService(db).remove_assets(current_user.id, _parse_memory_id(memory_id), payload.ids)
