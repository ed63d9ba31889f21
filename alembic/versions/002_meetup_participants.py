"""meetup_participants 테이블 (joined 행은 user-meetup당 1개)

Revision ID: 002
Revises: 001
Create Date: 2026-09-01 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "meetup_participants",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("meetup_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="joined", nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["meetup_id"], ["meetups.id"], name="fk_meetup_participants_meetup_id_meetups", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_meetup_participants_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_meetup_participants"),
    )
    op.create_index("ix_meetup_participants_id", "meetup_participants", ["id"], unique=False)
    op.create_index("ix_meetup_participants_meetup_id", "meetup_participants", ["meetup_id"], unique=False)
    op.create_index("ix_meetup_participants_user_id", "meetup_participants", ["user_id"], unique=False)
    # 부분 유니크 인덱스: left/removed 이력은 남기고 joined만 중복 금지
    op.create_index(
        "uq_participation_active_user_meetup",
        "meetup_participants",
        ["user_id", "meetup_id"],
        unique=True,
        postgresql_where=sa.text("status = 'joined'"),
        sqlite_where=sa.text("status = 'joined'"),
    )


def downgrade() -> None:
    op.drop_index("uq_participation_active_user_meetup", table_name="meetup_participants")
    op.drop_index("ix_meetup_participants_user_id", table_name="meetup_participants")
    op.drop_index("ix_meetup_participants_meetup_id", table_name="meetup_participants")
    op.drop_index("ix_meetup_participants_id", table_name="meetup_participants")
    op.drop_table("meetup_participants")
