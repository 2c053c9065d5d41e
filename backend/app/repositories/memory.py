from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Collection, Iterable
from uuid import UUID

from sqlalchemy import delete, func, insert, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select

from app.core.chunking import chunked, chunked_set
from app.core.config import settings
from app.core.sql_samples import DummyValue, SqlSample, generate_sql
from app.models.asset import Asset
from app.models.enums import AssetVisibility
from app.models.memory import Memory, memory_asset_table
from app.schemas.memory import MemorySearch


def _with_timeline_assets():
    return selectinload(
        Memory.assets.and_(
            Asset.visibility == AssetVisibility.TIMELINE,
            Asset.deleted_at.is_(None),
        )
    )


class MemoryRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def cleanup(self, retention_days: int | None = None) -> dict[str, int]:
        """Drop links to assets that left the timeline, then expired unsaved memories."""
        if retention_days is None:
            retention_days = settings.MEMORY_RETENTION_DAYS

        hidden_asset_ids = select(Asset.id).where(Asset.visibility != AssetVisibility.TIMELINE)
        links_result = await self.db.execute(
            delete(memory_asset_table).where(memory_asset_table.c.assets_id.in_(hidden_asset_ids))
        )
        await self.db.commit()

        cutoff = datetime.now(timezone.utc) - timedelta(days=retention_days)
        memories_result = await self.db.execute(
            delete(Memory)
            .where(Memory.created_at < cutoff, Memory.is_saved.is_(False))
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()

        return {
            "asset_links": int(links_result.rowcount or 0),
            "memories": int(memories_result.rowcount or 0),
        }

    def search_builder(self, owner_id: UUID, dto: MemorySearch) -> Select:
        query = select(Memory)
        if dto.is_saved is not None:
            query = query.where(Memory.is_saved.is_(dto.is_saved))
        if dto.type is not None:
            query = query.where(Memory.type == dto.type)
        if dto.for_ is not None:
            query = query.where(
                or_(Memory.show_at.is_(None), Memory.show_at <= dto.for_),
                or_(Memory.hide_at.is_(None), Memory.hide_at >= dto.for_),
            )
        if dto.is_trashed:
            query = query.where(Memory.deleted_at.is_not(None))
        else:
            query = query.where(Memory.deleted_at.is_(None))
        return query.where(Memory.owner_id == owner_id)

    @generate_sql(
        SqlSample(params=(DummyValue.UUID, MemorySearch())),
        SqlSample(name="date filter", params=(DummyValue.UUID, MemorySearch(for_=DummyValue.DATE))),
    )
    async def statistics(self, owner_id: UUID, dto: MemorySearch) -> dict[str, int]:
        query = select(func.count().label("total")).select_from(
            self.search_builder(owner_id, dto).subquery()
        )
        result = await self.db.execute(query)
        return {"total": int(result.scalar_one())}

    @generate_sql(
        SqlSample(params=(DummyValue.UUID, MemorySearch())),
        SqlSample(name="date filter", params=(DummyValue.UUID, MemorySearch(for_=DummyValue.DATE))),
    )
    async def search(self, owner_id: UUID, dto: MemorySearch) -> list[Memory]:
        query = (
            self.search_builder(owner_id, dto)
            .options(_with_timeline_assets())
            .order_by(Memory.memory_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @generate_sql(SqlSample(params=(DummyValue.UUID,)))
    async def get(self, id: UUID) -> Memory | None:
        result = await self.db.execute(self._get_by_id_builder(id))
        return result.scalar_one_or_none()

    async def create(self, values: dict[str, Any], asset_ids: Iterable[UUID]) -> Memory:
        asset_ids = set(asset_ids)
        memory = Memory(**values)
        try:
            self.db.add(memory)
            await self.db.flush()
            memory_id = memory.id
            if asset_ids:
                await self.db.execute(
                    insert(memory_asset_table),
                    [{"memories_id": memory_id, "assets_id": asset_id} for asset_id in asset_ids],
                )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        return await self._get_existing(memory_id)

    @generate_sql(SqlSample(params=(DummyValue.UUID, {"is_saved": True})))
    async def update(self, id: UUID, values: dict[str, Any]) -> Memory:
        if values:
            await self.db.execute(
                update(Memory)
                .where(Memory.id == id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        return await self._get_existing(id)

    @generate_sql(SqlSample(params=(DummyValue.UUID,)))
    async def delete(self, id: UUID) -> None:
        await self.db.execute(delete(memory_asset_table).where(memory_asset_table.c.memories_id == id))
        await self.db.execute(
            delete(Memory).where(Memory.id == id).execution_options(synchronize_session=False)
        )
        await self.db.commit()

    @generate_sql(SqlSample(params=(DummyValue.UUID, [DummyValue.UUID])))
    @chunked_set(param_index=1)
    async def get_asset_ids(self, id: UUID, asset_ids: Collection[UUID]) -> set[UUID]:
        if not asset_ids:
            return set()

        result = await self.db.execute(
            select(memory_asset_table.c.assets_id).where(
                memory_asset_table.c.memories_id == id,
                memory_asset_table.c.assets_id.in_(list(asset_ids)),
            )
        )
        return set(result.scalars().all())

    @generate_sql(SqlSample(params=(DummyValue.UUID, [DummyValue.UUID])))
    async def add_asset_ids(self, id: UUID, asset_ids: Collection[UUID]) -> None:
        if not asset_ids:
            return

        await self.db.execute(
            insert(memory_asset_table),
            [{"memories_id": id, "assets_id": asset_id} for asset_id in asset_ids],
        )
        await self.db.commit()

    @chunked(param_index=1)
    @generate_sql(SqlSample(params=(DummyValue.UUID, [DummyValue.UUID])))
    async def remove_asset_ids(self, id: UUID, asset_ids: Collection[UUID]) -> None:
        if not asset_ids:
            return

        await self.db.execute(
            delete(memory_asset_table).where(
                memory_asset_table.c.memories_id == id,
                memory_asset_table.c.assets_id.in_(list(asset_ids)),
            )
        )
        await self.db.commit()

    @generate_sql(SqlSample(params=(DummyValue.UUID, [DummyValue.UUID])))
    @chunked_set(param_index=1)
    async def get_owned_ids(self, owner_id: UUID, memory_ids: Collection[UUID]) -> set[UUID]:
        if not memory_ids:
            return set()

        result = await self.db.execute(
            select(Memory.id).where(
                Memory.owner_id == owner_id,
                Memory.id.in_(list(memory_ids)),
                Memory.deleted_at.is_(None),
            )
        )
        return set(result.scalars().all())

    async def _get_existing(self, id: UUID) -> Memory:
        # Raises NoResultFound when the row is missing or soft-deleted.
        result = await self.db.execute(self._get_by_id_builder(id))
        return result.scalar_one()

    def _get_by_id_builder(self, id: UUID) -> Select:
        return (
            select(Memory)
            .options(_with_timeline_assets())
            .where(Memory.id == id, Memory.deleted_at.is_(None))
            .execution_options(populate_existing=True)
        )
