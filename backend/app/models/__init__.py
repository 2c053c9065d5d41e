from app.models.album_audit import AlbumAudit
from app.models.asset import Asset
from app.models.enums import AssetVisibility, MemoryType
from app.models.memory import Memory, memory_asset_table
from app.models.user import User

__all__ = [
    "User",
    "Asset",
    "AssetVisibility",
    "Memory",
    "MemoryType",
    "memory_asset_table",
    "AlbumAudit",
]
