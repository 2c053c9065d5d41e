"""create albums_audit table

Revision ID: 20261018_0003
Revises: 20261018_0002
Create Date: 2026-10-18 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "20261018_0003"
down_revision = "20261018_0002"
branch_labels = None
depends_on = None


UUID_GENERATE_V7 = """
CREATE OR REPLACE FUNCTION uuid_generate_v7(p_timestamp timestamp with time zone = clock_timestamp())
RETURNS uuid
VOLATILE LANGUAGE SQL
AS $$
  SELECT encode(
    set_bit(
      set_bit(
        overlay(
          uuid_send(gen_random_uuid())
          PLACING substring(int8send(floor(extract(epoch FROM p_timestamp) * 1000)::bigint) FROM 3)
          FROM 1 FOR 6
        ),
        52, 1
      ),
      53, 1
    ),
    'hex'
  )::uuid;
$$
"""


def upgrade() -> None:
    op.execute(UUID_GENERATE_V7)
    op.create_table(
        "albums_audit",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            primary_key=True,
            nullable=False,
            server_default=sa.text("uuid_generate_v7()"),
        ),
        sa.Column("album_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), server_default=sa.text("clock_timestamp()"), nullable=False),
    )
    op.create_index("ix_albums_audit_album_id", "albums_audit", ["album_id"])
    op.create_index("ix_albums_audit_user_id", "albums_audit", ["user_id"])
    op.create_index("ix_albums_audit_deleted_at", "albums_audit", ["deleted_at"])


def downgrade() -> None:
    op.drop_index("ix_albums_audit_deleted_at", table_name="albums_audit")
    op.drop_index("ix_albums_audit_user_id", table_name="albums_audit")
    op.drop_index("ix_albums_audit_album_id", table_name="albums_audit")
    op.drop_table("albums_audit")
    op.execute("DROP FUNCTION IF EXISTS uuid_generate_v7(timestamp with time zone)")
