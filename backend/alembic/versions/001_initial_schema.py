"""Initial schema: events, attendees, members with counters, constraints and indexes.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("capacity", sa.Integer(), nullable=True),
        sa.Column("confirmed_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("waitlist_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("waitlist_limit", sa.Integer(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("confirmed_count >= 0", name="check_confirmed_count_non_negative"),
        sa.CheckConstraint("capacity IS NULL OR capacity >= 0", name="check_capacity_non_negative"),
        sa.CheckConstraint(
            "waitlist_limit IS NULL OR waitlist_limit >= 0",
            name="check_waitlist_limit_non_negative",
        ),
    )
    op.create_index("ix_events_id", "events", ["id"])

    op.create_table(
        "attendees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("event_id", sa.Integer(), sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subject_id", sa.String(100), nullable=False),
        sa.Column("registered_by", sa.String(100), nullable=False),
        sa.Column("kind", sa.String(20), nullable=False, server_default=sa.text("'primary'")),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("age_group", sa.String(10), nullable=False, server_default=sa.text("'adult'")),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("waitlist_position", sa.Integer(), nullable=True),
        sa.Column("joined_waitlist_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("promoted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("event_id", "subject_id", name="uq_event_subject_attendee"),
        sa.CheckConstraint(
            "status IN ('confirmed', 'declined', 'waitlisted', 'removed')",
            name="check_attendee_status",
        ),
    )
    op.create_index("ix_attendees_id", "attendees", ["id"])
    op.create_index("ix_attendees_event_id", "attendees", ["event_id"])
    op.create_index("ix_attendees_registered_by", "attendees", ["registered_by"])
    # Every admission transaction loads the event's waitlist; this covers
    # WHERE event_id = ? AND status = 'waitlisted'
    op.create_index("ix_attendees_event_status", "attendees", ["event_id", "status"])

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.String(100), nullable=False),
        sa.Column("membership_tier", sa.String(20), nullable=False, server_default=sa.text("'free'")),
        *_timestamps(),
    )
    op.create_index("ix_members_id", "members", ["id"])
    op.create_index("ix_members_subject_id", "members", ["subject_id"], unique=True)


def downgrade() -> None:
    op.drop_table("members")
    op.drop_table("attendees")
    op.drop_table("events")
