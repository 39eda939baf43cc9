"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None

UUID = postgresql.UUID(as_uuid=True)

ENUMS = {
    "org_role": ("ADMIN", "MEMBER"),
    "team_role": ("LEADER", "MEMBER"),
    "task_status": ("TODO", "IN_PROGRESS", "BLOCKED", "DONE"),
    "task_priority": ("LOW", "MEDIUM", "HIGH"),
    "calendar_event_type": ("EVENT", "TASK"),
}

def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)

def _created_at() -> sa.Column:
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False)

def upgrade() -> None:
    # enums
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("handle", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=True),
        _created_at(),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.UniqueConstraint("handle", name="uq_users_handle"),
    )

    op.create_table(
        "identities",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("provider_id", sa.String(length=255), nullable=False),
        _created_at(),
        sa.UniqueConstraint("provider", "provider_id", name="uq_identity_provider"),
    )
    op.create_index("ix_identities_user_id", "identities", ["user_id"])

    op.create_table(
        "organizations",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_by", UUID, nullable=False),
        _created_at(),
    )

    op.create_table(
        "org_memberships",
        sa.Column("org_id", UUID, sa.ForeignKey("organizations.id"), primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), primary_key=True, nullable=False),
        sa.Column("role", _enum("org_role"), nullable=False, server_default="MEMBER"),
        _created_at(),
    )
    op.create_index("ix_org_memberships_user_id", "org_memberships", ["user_id"])

    op.create_table(
        "org_join_codes",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("org_id", UUID, sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("max_uses", sa.Integer(), nullable=True),
        sa.Column("uses", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
        sa.UniqueConstraint("code", name="uq_org_join_codes_code"),
    )
    op.create_index("ix_org_join_codes_org_id", "org_join_codes", ["org_id"])

    op.create_table(
        "teams",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("org_id", UUID, sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("info", sa.Text(), nullable=True),
        sa.Column("created_by", UUID, nullable=False),
        _created_at(),
    )
    op.create_index("ix_teams_org_id", "teams", ["org_id"])

    op.create_table(
        "team_memberships",
        sa.Column("team_id", UUID, sa.ForeignKey("teams.id"), primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), primary_key=True, nullable=False),
        sa.Column("role", _enum("team_role"), nullable=False, server_default="MEMBER"),
        _created_at(),
    )
    op.create_index("ix_team_memberships_user_id", "team_memberships", ["user_id"])

    op.create_table(
        "team_join_codes",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("team_id", UUID, sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        _created_at(),
        sa.UniqueConstraint("code", name="uq_team_join_codes_code"),
    )
    op.create_index("ix_team_join_codes_team_id", "team_join_codes", ["team_id"])

    op.create_table(
        "team_links",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("team_id", UUID, sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("label", sa.String(length=200), nullable=False),
        sa.Column("url", sa.String(length=2000), nullable=False),
        sa.Column("ordinal", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_team_links_team_id", "team_links", ["team_id"])

    op.create_table(
        "goals",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("team_id", UUID, sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("done", sa.Boolean(), nullable=False, server_default=sa.false()),
        _created_at(),
    )
    op.create_index("ix_goals_team_id", "goals", ["team_id"])

    op.create_table(
        "tasks",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("team_id", UUID, sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("priority", _enum("task_priority"), nullable=False, server_default="MEDIUM"),
        sa.Column("status", _enum("task_status"), nullable=False, server_default="TODO"),
        sa.Column("created_by", UUID, nullable=False),
        _created_at(),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_tasks_team_id", "tasks", ["team_id"])

    op.create_table(
        "task_assignments",
        sa.Column("task_id", UUID, sa.ForeignKey("tasks.id"), primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), primary_key=True, nullable=False),
        _created_at(),
    )
    op.create_index("ix_task_assignments_user_id", "task_assignments", ["user_id"])

    op.create_table(
        "task_notes",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("task_id", UUID, sa.ForeignKey("tasks.id"), nullable=False),
        sa.Column("author_id", UUID, sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, server_default=""),
        _created_at(),
    )
    op.create_index("ix_task_notes_task_id", "task_notes", ["task_id"])
    op.create_index("ix_task_notes_author_id", "task_notes", ["author_id"])

    op.create_table(
        "task_note_mentions",
        sa.Column("note_id", UUID, sa.ForeignKey("task_notes.id"), primary_key=True, nullable=False),
        sa.Column("user_id", UUID, sa.ForeignKey("users.id"), primary_key=True, nullable=False),
    )
    op.create_index("ix_task_note_mentions_user_id", "task_note_mentions", ["user_id"])

    # task_id/team_id/changed_by are plain columns so the log survives in any delete order
    op.create_table(
        "task_status_logs",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("task_id", UUID, nullable=False),
        sa.Column("team_id", UUID, nullable=False),
        sa.Column("old_status", _enum("task_status"), nullable=False),
        sa.Column("new_status", _enum("task_status"), nullable=False),
        sa.Column("changed_by", UUID, nullable=False),
        sa.Column("changed_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_task_status_logs_task_id", "task_status_logs", ["task_id"])
    op.create_index("ix_task_status_logs_team_id", "task_status_logs", ["team_id"])
    op.create_index("ix_task_status_logs_changed_at", "task_status_logs", ["changed_at"])

    op.create_table(
        "calendar_events",
        sa.Column("id", UUID, primary_key=True, nullable=False),
        sa.Column("team_id", UUID, sa.ForeignKey("teams.id"), nullable=False),
        sa.Column("title", sa.String(length=300), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", _enum("calendar_event_type"), nullable=False, server_default="EVENT"),
        sa.Column("related_task_id", UUID, nullable=True),
    )
    op.create_index("ix_calendar_events_team_id", "calendar_events", ["team_id"])
    op.create_index("ix_calendar_events_related_task_id", "calendar_events", ["related_task_id"])

def downgrade() -> None:
    op.drop_index("ix_calendar_events_related_task_id", table_name="calendar_events")
    op.drop_index("ix_calendar_events_team_id", table_name="calendar_events")
    op.drop_table("calendar_events")

    op.drop_index("ix_task_status_logs_changed_at", table_name="task_status_logs")
    op.drop_index("ix_task_status_logs_team_id", table_name="task_status_logs")
    op.drop_index("ix_task_status_logs_task_id", table_name="task_status_logs")
    op.drop_table("task_status_logs")

    op.drop_index("ix_task_note_mentions_user_id", table_name="task_note_mentions")
    op.drop_table("task_note_mentions")

    op.drop_index("ix_task_notes_author_id", table_name="task_notes")
    op.drop_index("ix_task_notes_task_id", table_name="task_notes")
    op.drop_table("task_notes")

    op.drop_index("ix_task_assignments_user_id", table_name="task_assignments")
    op.drop_table("task_assignments")

    op.drop_index("ix_tasks_team_id", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("ix_goals_team_id", table_name="goals")
    op.drop_table("goals")

    op.drop_index("ix_team_links_team_id", table_name="team_links")
    op.drop_table("team_links")

    op.drop_index("ix_team_join_codes_team_id", table_name="team_join_codes")
    op.drop_table("team_join_codes")

    op.drop_index("ix_team_memberships_user_id", table_name="team_memberships")
    op.drop_table("team_memberships")

    op.drop_index("ix_teams_org_id", table_name="teams")
    op.drop_table("teams")

    op.drop_index("ix_org_join_codes_org_id", table_name="org_join_codes")
    op.drop_table("org_join_codes")

    op.drop_index("ix_org_memberships_user_id", table_name="org_memberships")
    op.drop_table("org_memberships")

    op.drop_table("organizations")

    op.drop_index("ix_identities_user_id", table_name="identities")
    op.drop_table("identities")

    op.drop_table("users")

    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
