"""users, meetups 테이블 생성

Revision ID: 001
Revises:
Create Date: 2026-09-01 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("profile_image_url", sa.String(length=500), nullable=True),
        sa.Column("is_email_verified", sa.Boolean(), nullable=False),
        sa.Column("is_id_verified", sa.Boolean(), nullable=False),
        sa.Column("is_phone_verified", sa.Boolean(), nullable=False),
        sa.Column("trust_score", sa.Integer(), nullable=False),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("interests", sa.JSON(), nullable=False),
        sa.Column("location", sa.String(length=200), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)

    op.create_table(
        "meetups",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("meetup_type", sa.String(length=20), nullable=False),
        sa.Column("max_participants", sa.Integer(), nullable=False),
        sa.Column("current_participants", sa.Integer(), server_default="0", nullable=False),
        sa.Column("restaurant_name", sa.String(length=200), nullable=True),
        sa.Column("restaurant_address", sa.Text(), nullable=True),
        sa.Column("restaurant_type", sa.String(length=20), nullable=True),
        sa.Column("scheduled_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scheduled_time", sa.String(length=20), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="open", nullable=False),
        sa.Column("created_by", sa.Integer(), nullable=False),
        sa.Column("age_range_min", sa.Integer(), nullable=True),
        sa.Column("age_range_max", sa.Integer(), nullable=True),
        sa.Column("max_distance", sa.Integer(), nullable=True),
        sa.Column("required_interests", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint("current_participants >= 0", name="ck_meetups_participants_non_negative"),
        sa.CheckConstraint("current_participants <= max_participants", name="ck_meetups_participants_lte_max"),
        sa.ForeignKeyConstraint(["created_by"], ["users.id"], name="fk_meetups_created_by_users"),
        sa.PrimaryKeyConstraint("id", name="pk_meetups"),
    )
    op.create_index("ix_meetups_id", "meetups", ["id"], unique=False)
    op.create_index("ix_meetups_created_by", "meetups", ["created_by"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_meetups_created_by", table_name="meetups")
    op.drop_index("ix_meetups_id", table_name="meetups")
    op.drop_table("meetups")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
