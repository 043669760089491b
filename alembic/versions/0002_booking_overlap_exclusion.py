from __future__ import annotations

from alembic import op

revision = "0002_booking_overlap_exclusion"
down_revision = "0001_create_schema"
branch_labels = None
depends_on = None

CONSTRAINT_NAME = "ex_bookings_room_no_overlap"


def upgrade() -> None:
    # SQLite não tem EXCLUDE; lá a checagem fica só no serviço (BEGIN IMMEDIATE)
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        f"""
        ALTER TABLE bookings
        ADD CONSTRAINT {CONSTRAINT_NAME}
        EXCLUDE USING gist (
            room_id WITH =,
            tstzrange(start_time, end_time, '[)') WITH &&
        )
        WHERE (status = 'confirmed')
        """
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.execute(f"ALTER TABLE bookings DROP CONSTRAINT IF EXISTS {CONSTRAINT_NAME}")
