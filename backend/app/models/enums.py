import enum

from sqlalchemy import Enum


class AssetVisibility(str, enum.Enum):
    ARCHIVE = "archive"
    TIMELINE = "timeline"
    HIDDEN = "hidden"
    LOCKED = "locked"


class MemoryType(str, enum.Enum):
    ON_THIS_DAY = "on_this_day"


def string_enum(enum_cls: type[enum.Enum]) -> Enum:
    # Stored as plain strings so migrations stay a VARCHAR column on every backend.
    return Enum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
    )
