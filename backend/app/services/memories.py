from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Collection
from uuid import UUID

from fastapi import HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.chunking import chunked_set
from app.models.asset import Asset
from app.models.memory import Memory
from app.repositories.memory import MemoryRepository
from app.schemas.memory import (
    BulkIdResult,
    MemoryCreatePayload,
    MemoryResponse,
    MemorySearch,
    MemoryUpdatePayload,
)

logger = logging.getLogger(__name__)

ERROR_DUPLICATE = "duplicate"
ERROR_NOT_FOUND = "not_found"
ERROR_NO_PERMISSION = "no_permission"


def to_response(memory: Memory) -> MemoryResponse:
    return MemoryResponse.model_validate(memory)


class MemoryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.repository = MemoryRepository(db)

    async def search(self, owner_id: UUID, dto: MemorySearch) -> list[MemoryResponse]:
        memories = await self.repository.search(owner_id, dto)
        return [to_response(memory) for memory in memories]

    async def statistics(self, owner_id: UUID, dto: MemorySearch) -> dict[str, int]:
        return await self.repository.statistics(owner_id, dto)

    async def get(self, owner_id: UUID, memory_id: UUID) -> MemoryResponse:
        await self._require_access(owner_id, memory_id)
        memory = await self.repository.get(memory_id)
        if memory is None:
            raise HTTPException(status_code=400, detail="Memory not found")
        return to_response(memory)

    async def create(self, owner_id: UUID, payload: MemoryCreatePayload) -> MemoryResponse:
        allowed_asset_ids = await self._owned_asset_ids(owner_id, set(payload.asset_ids))
        memory = await self.repository.create(
            {
                "owner_id": owner_id,
                "type": payload.type,
                "data": payload.data,
                "memory_at": payload.memory_at,
                "is_saved": bool(payload.is_saved),
                "seen_at": payload.seen_at,
                "show_at": payload.show_at,
                "hide_at": payload.hide_at,
            },
            allowed_asset_ids,
        )
        logger.info(
            "memories event=created memory_id=%s owner_id=%s assets=%s",
            memory.id,
            owner_id,
            len(allowed_asset_ids),
        )
        return to_response(memory)

    async def update(self, owner_id: UUID, memory_id: UUID, payload: MemoryUpdatePayload) -> MemoryResponse:
        await self._require_access(owner_id, memory_id)
        memory = await self.repository.update(memory_id, payload.model_dump(exclude_none=True))
        return to_response(memory)

    async def remove(self, owner_id: UUID, memory_id: UUID) -> None:
        await self._require_access(owner_id, memory_id)
        await self.repository.delete(memory_id)
        logger.info("memories event=deleted memory_id=%s owner_id=%s", memory_id, owner_id)

    async def add_assets(self, owner_id: UUID, memory_id: UUID, asset_ids: list[UUID]) -> list[BulkIdResult]:
        await self._require_access(owner_id, memory_id)

        existing_ids = await self.repository.get_asset_ids(memory_id, set(asset_ids))
        allowed_ids = await self._owned_asset_ids(owner_id, set(asset_ids) - existing_ids)

        results: list[BulkIdResult] = []
        added: list[UUID] = []
        for asset_id in asset_ids:
            if asset_id in existing_ids or asset_id in added:
                results.append(BulkIdResult(id=asset_id, success=False, error=ERROR_DUPLICATE))
            elif asset_id not in allowed_ids:
                results.append(BulkIdResult(id=asset_id, success=False, error=ERROR_NO_PERMISSION))
            else:
                added.append(asset_id)
                results.append(BulkIdResult(id=asset_id, success=True))

        if added:
            await self.repository.add_asset_ids(memory_id, added)
            await self.repository.update(memory_id, {"updated_at": datetime.now(timezone.utc)})

        return results

    async def remove_assets(self, owner_id: UUID, memory_id: UUID, asset_ids: list[UUID]) -> list[BulkIdResult]:
        await self._require_access(owner_id, memory_id)

        existing_ids = await self.repository.get_asset_ids(memory_id, set(asset_ids))
        results: list[BulkIdResult] = []
        removed: list[UUID] = []
        for asset_id in asset_ids:
            if asset_id not in existing_ids or asset_id in removed:
                results.append(BulkIdResult(id=asset_id, success=False, error=ERROR_NOT_FOUND))
            else:
                removed.append(asset_id)
                results.append(BulkIdResult(id=asset_id, success=True))

        if removed:
            await self.repository.remove_asset_ids(memory_id, removed)
            await self.repository.update(memory_id, {"updated_at": datetime.now(timezone.utc)})

        return results

    async def _require_access(self, owner_id: UUID, memory_id: UUID) -> None:
        owned = await self.repository.get_owned_ids(owner_id, {memory_id})
        if memory_id not in owned:
            raise HTTPException(status_code=400, detail="Not found or no memory access")

    @chunked_set(param_index=1)
    async def _owned_asset_ids(self, owner_id: UUID, asset_ids: Collection[UUID]) -> set[UUID]:
        if not asset_ids:
            return set()
        result = await self.db.execute(
            select(Asset.id).where(
                Asset.owner_id == owner_id,
                Asset.id.in_(list(asset_ids)),
                Asset.deleted_at.is_(None),
            )
        )
        return set(result.scalars().all())
