import os
import time
import uuid

from sqlalchemy import Column, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql import func
from sqlalchemy.sql.functions import FunctionElement

from app.core.database import Base


def uuid7() -> uuid.UUID:
    """Time-ordered UUID (RFC 9562 version 7) so audit rows sort by insertion."""
    unix_ms = time.time_ns() // 1_000_000
    rand = int.from_bytes(os.urandom(10), "big")
    value = (unix_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76
    value |= ((rand >> 62) & 0xFFF) << 64
    value |= 0b10 << 62
    value |= rand & ((1 << 62) - 1)
    return uuid.UUID(int=value)


class uuid_generate_v7(FunctionElement):
    """Server-side UUIDv7, for rows written outside the ORM (e.g. by triggers)."""

    type = UUID(as_uuid=True)
    inherit_cache = True


@compiles(uuid_generate_v7)
def _uuid_generate_v7_default(element, compiler, **kw):
    # Created by migration 20261018_0003.
    return "uuid_generate_v7()"


@compiles(uuid_generate_v7, "sqlite")
def _uuid_generate_v7_sqlite(element, compiler, **kw):
    # 32 hex digits, the storage format of UUID columns on SQLite.
    return (
        "lower(printf('%012x', CAST((julianday('now') - 2440587.5) * 86400000 AS INTEGER))"
        " || '7' || substr(hex(randomblob(2)), 2, 3)"
        " || substr('89ab', 1 + (abs(random()) % 4), 1) || substr(hex(randomblob(2)), 2, 3)"
        " || hex(randomblob(6)))"
    )


class AlbumAudit(Base):
    __tablename__ = "albums_audit"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid7, server_default=uuid_generate_v7())
    album_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    user_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    # clock_timestamp() in the migration; now() keeps create_all portable.
    deleted_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
