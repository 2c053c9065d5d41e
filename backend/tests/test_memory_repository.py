"""Tests for MemoryRepository against an in-memory SQLite database."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy import event, func, select, update
from sqlalchemy.exc import IntegrityError, NoResultFound

from app.core import chunking
from app.models import AssetVisibility, Memory, MemoryType, memory_asset_table
from app.repositories.memory import MemoryRepository
from app.schemas.memory import MemorySearch

from conftest import utc


async def _trash(db, memory_id) -> None:
    await db.execute(update(Memory).where(Memory.id == memory_id).values(deleted_at=utc(2024, 1, 1)))
    await db.commit()


def _where(query) -> str:
    return str(query).split("WHERE", 1)[1]


async def _link_count(db, memory_id) -> int:
    result = await db.execute(
        select(func.count()).select_from(memory_asset_table).where(memory_asset_table.c.memories_id == memory_id)
    )
    return result.scalar_one()


class TestSearchBuilder:
    def test_does_not_execute(self):
        db = AsyncMock()
        query = MemoryRepository(db).search_builder(uuid4(), MemorySearch(is_saved=True))

        assert "memories" in str(query)
        db.execute.assert_not_called()

    def test_only_applies_present_filters(self):
        repository = MemoryRepository(AsyncMock())

        bare = _where(repository.search_builder(uuid4(), MemorySearch()))
        filtered = _where(
            repository.search_builder(
                uuid4(),
                MemorySearch(is_saved=False, type=MemoryType.ON_THIS_DAY, for_=utc(2024, 1, 1)),
            )
        )

        assert "is_saved" not in bare
        assert "show_at" not in bare
        assert "memories.owner_id =" in bare
        assert "memories.is_saved IS" in filtered
        assert "memories.type =" in filtered
        assert "memories.show_at IS NULL OR memories.show_at <=" in filtered
        assert "memories.hide_at IS NULL OR memories.hide_at >=" in filtered

    def test_trashed_flag_flips_deleted_at_predicate(self):
        repository = MemoryRepository(AsyncMock())

        assert "deleted_at IS NULL" in _where(repository.search_builder(uuid4(), MemorySearch()))
        assert "deleted_at IS NOT NULL" in _where(repository.search_builder(uuid4(), MemorySearch(is_trashed=True)))


class TestSearchAndStatistics:
    @pytest.mark.asyncio
    async def test_search_and_statistics_agree(self, db, repository, owner, make_user, make_memory):
        stranger = await make_user("stranger@example.com")
        saved = await make_memory(owner, is_saved=True, memory_at=utc(2021, 10, 18))
        await make_memory(owner, memory_at=utc(2020, 10, 18), show_at=utc(2024, 10, 18), hide_at=utc(2024, 10, 19))
        trashed = await make_memory(owner, memory_at=utc(2019, 10, 18))
        await _trash(db, trashed.id)
        await make_memory(stranger)

        filters = [
            MemorySearch(),
            MemorySearch(is_saved=True),
            MemorySearch(is_saved=False),
            MemorySearch(type=MemoryType.ON_THIS_DAY),
            MemorySearch(for_=utc(2024, 10, 18, 12)),
            MemorySearch(for_=utc(2025, 1, 1)),
            MemorySearch(is_trashed=True),
            MemorySearch(is_trashed=False, is_saved=True),
        ]
        for dto in filters:
            results = await repository.search(owner.id, dto)
            stats = await repository.statistics(owner.id, dto)
            assert stats["total"] == len(results), dto

        saved_only = await repository.search(owner.id, MemorySearch(is_saved=True))
        assert [memory.id for memory in saved_only] == [saved.id]

    @pytest.mark.asyncio
    async def test_search_orders_by_memory_at_descending(self, repository, owner, make_memory):
        oldest = await make_memory(owner, memory_at=utc(2018, 10, 18))
        newest = await make_memory(owner, memory_at=utc(2022, 10, 18))
        middle = await make_memory(owner, memory_at=utc(2020, 10, 18))

        results = await repository.search(owner.id, MemorySearch())

        assert [memory.id for memory in results] == [newest.id, middle.id, oldest.id]

    @pytest.mark.asyncio
    async def test_search_is_scoped_to_owner(self, repository, owner, make_user, make_memory):
        stranger = await make_user("stranger@example.com")
        await make_memory(stranger)

        assert await repository.search(owner.id, MemorySearch()) == []
        assert await repository.statistics(owner.id, MemorySearch()) == {"total": 0}

    @pytest.mark.asyncio
    async def test_display_window(self, repository, owner, make_memory):
        windowed = await make_memory(owner, show_at=utc(2024, 10, 18), hide_at=utc(2024, 10, 20))
        open_start = await make_memory(owner, hide_at=utc(2024, 10, 20))
        open_end = await make_memory(owner, show_at=utc(2024, 10, 18))
        unbounded = await make_memory(owner)

        async def visible_at(instant):
            return {memory.id for memory in await repository.search(owner.id, MemorySearch(for_=instant))}

        assert windowed.id not in await visible_at(utc(2024, 10, 17, 23))
        assert windowed.id in await visible_at(utc(2024, 10, 18))
        assert windowed.id in await visible_at(utc(2024, 10, 19))
        assert windowed.id in await visible_at(utc(2024, 10, 20))
        assert windowed.id not in await visible_at(utc(2024, 10, 20, 1))

        early = await visible_at(utc(2000, 1, 1))
        assert open_start.id in early and unbounded.id in early and open_end.id not in early
        late = await visible_at(utc(2030, 1, 1))
        assert open_end.id in late and unbounded.id in late and open_start.id not in late

    @pytest.mark.asyncio
    async def test_trashed_filter(self, db, repository, owner, make_memory):
        active = await make_memory(owner)
        trashed = await make_memory(owner)
        await _trash(db, trashed.id)

        assert [m.id for m in await repository.search(owner.id, MemorySearch(is_trashed=True))] == [trashed.id]
        assert [m.id for m in await repository.search(owner.id, MemorySearch(is_trashed=False))] == [active.id]
        assert [m.id for m in await repository.search(owner.id, MemorySearch())] == [active.id]

    @pytest.mark.asyncio
    async def test_statistics_requires_a_row(self):
        result = MagicMock()
        result.scalar_one.side_effect = NoResultFound("No row was found")
        db = AsyncMock()
        db.execute.return_value = result

        with pytest.raises(NoResultFound):
            await MemoryRepository(db).statistics(uuid4(), MemorySearch())


class TestNestedAssets:
    @pytest.mark.asyncio
    async def test_only_visible_assets_in_creation_order(self, repository, owner, make_asset, make_memory):
        late = await make_asset(owner, utc(2020, 10, 18, 18))
        early = await make_asset(owner, utc(2020, 10, 18, 8))
        archived = await make_asset(owner, utc(2020, 10, 18, 9), visibility=AssetVisibility.ARCHIVE)
        deleted = await make_asset(owner, utc(2020, 10, 18, 10), deleted_at=utc(2024, 1, 1))

        created = await make_memory(owner, asset_ids={late.id, early.id, archived.id, deleted.id})
        fetched = await repository.get(created.id)

        assert [asset.id for asset in created.assets] == [early.id, late.id]
        assert [asset.id for asset in fetched.assets] == [early.id, late.id]

    @pytest.mark.asyncio
    async def test_search_attaches_assets(self, repository, owner, make_asset, make_memory):
        first = await make_asset(owner, utc(2019, 10, 18, 8))
        hidden = await make_asset(owner, utc(2019, 10, 18, 9), visibility=AssetVisibility.HIDDEN)
        with_assets = await make_memory(owner, asset_ids={first.id, hidden.id}, memory_at=utc(2019, 10, 18))
        empty = await make_memory(owner, memory_at=utc(2018, 10, 18))

        results = {memory.id: memory for memory in await repository.search(owner.id, MemorySearch())}

        assert [asset.id for asset in results[with_assets.id].assets] == [first.id]
        assert results[empty.id].assets == []


class TestGetCreateUpdateDelete:
    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, repository):
        assert await repository.get(uuid4()) is None

    @pytest.mark.asyncio
    async def test_get_ignores_soft_deleted(self, db, repository, owner, make_memory):
        memory = await make_memory(owner)
        await _trash(db, memory.id)

        assert await repository.get(memory.id) is None

    @pytest.mark.asyncio
    async def test_create_persists_fields(self, repository, owner):
        memory = await repository.create(
            {
                "owner_id": owner.id,
                "type": MemoryType.ON_THIS_DAY,
                "data": {"year": 2017},
                "memory_at": utc(2017, 10, 18),
            },
            set(),
        )

        assert memory.owner_id == owner.id
        assert memory.type is MemoryType.ON_THIS_DAY
        assert memory.data == {"year": 2017}
        assert memory.is_saved is False
        assert memory.assets == []

    @pytest.mark.asyncio
    async def test_create_rolls_back_when_links_fail(self, db, repository, owner):
        with pytest.raises(IntegrityError):
            await repository.create(
                {"owner_id": owner.id, "type": MemoryType.ON_THIS_DAY, "memory_at": utc(2017, 10, 18)},
                {uuid4()},
            )

        count = await db.execute(select(func.count()).select_from(Memory))
        assert count.scalar_one() == 0

    @pytest.mark.asyncio
    async def test_update_patches_fields(self, repository, owner, make_memory):
        memory = await make_memory(owner)

        updated = await repository.update(memory.id, {"is_saved": True, "seen_at": utc(2024, 10, 18)})

        assert updated.id == memory.id
        assert updated.is_saved is True
        assert updated.seen_at is not None

    @pytest.mark.asyncio
    async def test_update_missing_raises(self, repository):
        with pytest.raises(NoResultFound):
            await repository.update(uuid4(), {"is_saved": True})

    @pytest.mark.asyncio
    async def test_update_soft_deleted_raises(self, db, repository, owner, make_memory):
        memory = await make_memory(owner)
        await _trash(db, memory.id)

        with pytest.raises(NoResultFound):
            await repository.update(memory.id, {"is_saved": True})

    @pytest.mark.asyncio
    async def test_delete_removes_memory_and_links(self, db, repository, owner, make_asset, make_memory):
        asset = await make_asset(owner, utc(2020, 10, 18))
        memory = await make_memory(owner, asset_ids={asset.id})

        await repository.delete(memory.id)

        assert await repository.get(memory.id) is None
        assert await _link_count(db, memory.id) == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_id_is_noop(self, repository, owner, make_memory):
        memory = await make_memory(owner)

        await repository.delete(uuid4())

        assert await repository.get(memory.id) is not None


class TestAssetMembership:
    @pytest.mark.asyncio
    async def test_add_then_get_then_remove(self, repository, owner, make_asset, make_memory):
        memory = await make_memory(owner)
        assets = [await make_asset(owner, utc(2020, 10, 18, hour)) for hour in (8, 9, 10)]
        ids = {asset.id for asset in assets}

        await repository.add_asset_ids(memory.id, list(ids))
        assert await repository.get_asset_ids(memory.id, ids) == ids

        await repository.remove_asset_ids(memory.id, list(ids))
        assert await repository.get_asset_ids(memory.id, ids) == set()

    @pytest.mark.asyncio
    async def test_membership_across_several_batches(self, engine, repository, owner, make_asset, make_memory, monkeypatch):
        monkeypatch.setattr(chunking, "DATABASE_PARAMETER_CHUNK_SIZE", 2)
        memory = await make_memory(owner)
        assets = [await make_asset(owner, utc(2020, 10, 18, hour)) for hour in range(5)]
        ids = [asset.id for asset in assets]
        statements: list[str] = []

        def _record(conn, cursor, statement, parameters, context, executemany):
            verb = statement.split(None, 1)[0]
            if "memories_assets_assets" in statement and verb in ("SELECT", "DELETE"):
                statements.append(verb)

        event.listen(engine.sync_engine, "before_cursor_execute", _record)
        try:
            await repository.add_asset_ids(memory.id, ids)
            assert await repository.get_asset_ids(memory.id, set(ids)) == set(ids)
            await repository.remove_asset_ids(memory.id, ids[:4])
            assert await repository.get_asset_ids(memory.id, set(ids)) == {ids[4]}
        finally:
            event.remove(engine.sync_engine, "before_cursor_execute", _record)

        assert statements == ["SELECT"] * 3 + ["DELETE"] * 2 + ["SELECT"] * 3

    @pytest.mark.asyncio
    async def test_collections_passed_by_keyword(self, repository, owner, make_asset, make_memory):
        asset = await make_asset(owner, utc(2020, 10, 18))
        memory = await make_memory(owner, asset_ids={asset.id})

        assert await repository.get_asset_ids(memory.id, asset_ids={asset.id}) == {asset.id}
        assert await repository.get_owned_ids(owner.id, memory_ids=[memory.id]) == {memory.id}

        await repository.remove_asset_ids(id=memory.id, asset_ids=[asset.id])

        assert await repository.get_asset_ids(id=memory.id, asset_ids=[asset.id]) == set()

    @pytest.mark.asyncio
    async def test_get_asset_ids_returns_only_members(self, repository, owner, make_asset, make_memory):
        member = await make_asset(owner, utc(2020, 10, 18, 8))
        outsider = await make_asset(owner, utc(2020, 10, 18, 9))
        memory = await make_memory(owner, asset_ids={member.id})

        assert await repository.get_asset_ids(memory.id, {member.id, outsider.id}) == {member.id}

    @pytest.mark.asyncio
    async def test_duplicate_link_violates_uniqueness(self, repository, owner, make_asset, make_memory):
        asset = await make_asset(owner, utc(2020, 10, 18))
        memory = await make_memory(owner, asset_ids={asset.id})

        with pytest.raises(IntegrityError):
            await repository.add_asset_ids(memory.id, [asset.id])

    @pytest.mark.asyncio
    async def test_empty_inputs_skip_the_database(self):
        db = AsyncMock()
        repository = MemoryRepository(db)

        assert await repository.get_asset_ids(uuid4(), set()) == set()
        assert await repository.add_asset_ids(uuid4(), []) is None
        assert await repository.remove_asset_ids(uuid4(), []) is None
        assert await repository.get_owned_ids(uuid4(), set()) == set()

        db.execute.assert_not_called()
        db.commit.assert_not_called()

    @pytest.mark.asyncio
    async def test_get_owned_ids(self, db, repository, owner, make_user, make_memory):
        stranger = await make_user("stranger@example.com")
        mine = await make_memory(owner)
        trashed = await make_memory(owner)
        theirs = await make_memory(stranger)
        await _trash(db, trashed.id)

        owned = await repository.get_owned_ids(owner.id, {mine.id, trashed.id, theirs.id})

        assert owned == {mine.id}


class TestCleanup:
    @pytest.mark.asyncio
    async def test_cleanup_is_idempotent(self, db, repository, owner, make_asset, make_memory):
        now = datetime.now(timezone.utc)
        visible = await make_asset(owner, utc(2020, 10, 18, 8))
        archived = await make_asset(owner, utc(2020, 10, 18, 9), visibility=AssetVisibility.ARCHIVE)
        locked = await make_asset(owner, utc(2020, 10, 18, 10), visibility=AssetVisibility.LOCKED)

        recent = await make_memory(owner, asset_ids={visible.id, archived.id, locked.id})
        expired = await make_memory(owner, created_at=now - timedelta(days=90))
        saved = await make_memory(owner, created_at=now - timedelta(days=90), is_saved=True)

        first = await repository.cleanup()
        second = await repository.cleanup()

        assert first == {"asset_links": 2, "memories": 1}
        assert second == {"asset_links": 0, "memories": 0}
        assert await repository.get_asset_ids(recent.id, {visible.id, archived.id, locked.id}) == {visible.id}
        assert await repository.get(expired.id) is None
        assert await repository.get(saved.id) is not None
        assert await repository.get(recent.id) is not None

    @pytest.mark.asyncio
    async def test_cleanup_respects_retention_window(self, repository, owner, make_memory):
        memory = await make_memory(owner, created_at=datetime.now(timezone.utc) - timedelta(days=10))

        kept = await repository.cleanup(retention_days=100_000)
        assert kept["memories"] == 0
        assert await repository.get(memory.id) is not None

        removed = await repository.cleanup(retention_days=1)
        assert removed["memories"] == 1
