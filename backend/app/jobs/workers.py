from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from uuid import UUID

from sqlalchemy import extract, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import AsyncSessionLocal
from app.models.asset import Asset
from app.models.enums import AssetVisibility, MemoryType
from app.models.memory import Memory
from app.repositories.memory import MemoryRepository

logger = logging.getLogger(__name__)


def _day_bounds(target: date) -> tuple[datetime, datetime]:
    start = datetime(target.year, target.month, target.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1) - timedelta(microseconds=1)


async def generate_on_this_day_memories(db: AsyncSession, target: date) -> int:
    """Create one memory per owner and past year with timeline assets taken on ``target``'s day.

    Memories already generated for the same day are left alone, so the job can
    be re-run safely.
    """
    show_at, hide_at = _day_bounds(target)
    result = await db.execute(
        select(Asset.owner_id, Asset.id, Asset.file_created_at)
        .where(
            Asset.visibility == AssetVisibility.TIMELINE,
            Asset.deleted_at.is_(None),
            extract("month", Asset.file_created_at) == target.month,
            extract("day", Asset.file_created_at) == target.day,
            extract("year", Asset.file_created_at) < target.year,
        )
        .order_by(Asset.owner_id.asc(), Asset.file_created_at.asc())
    )

    per_owner_year: dict[tuple[UUID, int], list[UUID]] = {}
    for owner_id, asset_id, file_created_at in result.all():
        asset_ids = per_owner_year.setdefault((owner_id, file_created_at.year), [])
        if len(asset_ids) < settings.MEMORY_ON_THIS_DAY_MAX_ASSETS:
            asset_ids.append(asset_id)

    existing_result = await db.execute(
        select(Memory.owner_id, Memory.memory_at).where(
            Memory.type == MemoryType.ON_THIS_DAY,
            Memory.show_at == show_at,
        )
    )
    existing = {(owner_id, memory_at.year) for owner_id, memory_at in existing_result.all()}

    repository = MemoryRepository(db)
    created = 0
    for (owner_id, year), asset_ids in per_owner_year.items():
        if (owner_id, year) in existing:
            continue
        await repository.create(
            {
                "owner_id": owner_id,
                "type": MemoryType.ON_THIS_DAY,
                "data": {"year": year},
                "memory_at": datetime(year, target.month, target.day, tzinfo=timezone.utc),
                "show_at": show_at,
                "hide_at": hide_at,
            },
            asset_ids,
        )
        created += 1

    return created


async def run_daily_memories_job() -> None:
    today = datetime.now(timezone.utc).date()
    async with AsyncSessionLocal() as db:
        created = await generate_on_this_day_memories(db, today)
    logger.info("memories event=generated date=%s created=%s", today.isoformat(), created)


async def run_memories_cleanup_job() -> dict[str, int]:
    async with AsyncSessionLocal() as db:
        removed = await MemoryRepository(db).cleanup()
    logger.info(
        "memories event=cleanup asset_links=%s memories=%s",
        removed["asset_links"],
        removed["memories"],
    )
    return removed
