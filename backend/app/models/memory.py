import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Table, false
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.enums import MemoryType, string_enum

memory_asset_table = Table(
    "memories_assets_assets",
    Base.metadata,
    Column("memories_id", UUID(as_uuid=True), ForeignKey("memories.id", ondelete="CASCADE"), primary_key=True),
    Column("assets_id", UUID(as_uuid=True), ForeignKey("assets.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Memory(Base):
    __tablename__ = "memories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(string_enum(MemoryType), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    memory_at = Column(DateTime(timezone=True), nullable=False)
    is_saved = Column(Boolean, nullable=False, default=False, server_default=false())
    seen_at = Column(DateTime(timezone=True), nullable=True)
    show_at = Column(DateTime(timezone=True), nullable=True)
    hide_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    owner = relationship("User", back_populates="memories")
    # Unfiltered membership; repositories narrow it to timeline-visible,
    # non-deleted assets when loading.
    assets = relationship(
        "Asset",
        secondary=memory_asset_table,
        order_by="Asset.file_created_at.asc()",
        viewonly=True,
    )
