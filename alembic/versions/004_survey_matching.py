"""설문 응답, 매칭 요청/결과 테이블 + users.age, users.has_taken_survey

Revision ID: 004
Revises: 003
Create Date: 2026-10-17 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("users", sa.Column("age", sa.Integer(), nullable=True))
    op.add_column(
        "users",
        sa.Column("has_taken_survey", sa.Boolean(), server_default=sa.false(), nullable=False),
    )

    op.create_table(
        "user_survey_responses",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("favorite_conversation_topic", sa.String(length=30), nullable=False),
        sa.Column("favorite_music", sa.String(length=30), nullable=False),
        sa.Column("personality_type", sa.String(length=30), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_user_survey_responses_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_user_survey_responses"),
        sa.UniqueConstraint("user_id", name="uq_user_survey_responses_user_id"),
    )
    op.create_index("ix_user_survey_responses_id", "user_survey_responses", ["id"], unique=False)

    op.create_table(
        "meetup_requests",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("meetup_type", sa.String(length=20), nullable=False),
        sa.Column("venue_type", sa.String(length=20), nullable=False),
        sa.Column("preferred_time", sa.String(length=20), nullable=False),
        sa.Column("preferred_date", sa.String(length=20), nullable=False),
        sa.Column("max_distance", sa.Integer(), nullable=False),
        sa.Column("age_range_min", sa.Integer(), nullable=True),
        sa.Column("age_range_max", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=20), server_default="active", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_meetup_requests_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_meetup_requests"),
    )
    op.create_index("ix_meetup_requests_id", "meetup_requests", ["id"], unique=False)
    op.create_index("ix_meetup_requests_user_id", "meetup_requests", ["user_id"], unique=False)
    # (user, meetup_type)당 active 요청 1개. matched/cancelled 이력은 여러 개 허용
    op.create_index(
        "uq_meetup_requests_active_user_type",
        "meetup_requests",
        ["user_id", "meetup_type"],
        unique=True,
        postgresql_where=sa.text("status = 'active'"),
        sqlite_where=sa.text("status = 'active'"),
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("meetup_type", sa.String(length=20), nullable=False),
        sa.Column("venue_type", sa.String(length=20), nullable=False),
        sa.Column("suggested_date", sa.String(length=20), nullable=True),
        sa.Column("suggested_time", sa.String(length=20), nullable=True),
        sa.Column("match_score", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_matches"),
    )
    op.create_index("ix_matches_id", "matches", ["id"], unique=False)

    op.create_table(
        "match_members",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("match_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("joined_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["match_id"], ["matches.id"], name="fk_match_members_match_id_matches", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_match_members_user_id_users", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_match_members"),
        sa.UniqueConstraint("match_id", "user_id", name="uq_match_members_match_user"),
    )
    op.create_index("ix_match_members_id", "match_members", ["id"], unique=False)
    op.create_index("ix_match_members_match_id", "match_members", ["match_id"], unique=False)
    op.create_index("ix_match_members_user_id", "match_members", ["user_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_match_members_user_id", table_name="match_members")
    op.drop_index("ix_match_members_match_id", table_name="match_members")
    op.drop_index("ix_match_members_id", table_name="match_members")
    op.drop_table("match_members")
    op.drop_index("ix_matches_id", table_name="matches")
    op.drop_table("matches")
    op.drop_index("uq_meetup_requests_active_user_type", table_name="meetup_requests")
    op.drop_index("ix_meetup_requests_user_id", table_name="meetup_requests")
    op.drop_index("ix_meetup_requests_id", table_name="meetup_requests")
    op.drop_table("meetup_requests")
    op.drop_index("ix_user_survey_responses_id", table_name="user_survey_responses")
    op.drop_table("user_survey_responses")
    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_column("has_taken_survey")
        batch_op.drop_column("age")
