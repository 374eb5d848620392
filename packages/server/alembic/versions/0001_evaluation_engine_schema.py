"""Evaluation engine schema: roster reference tables, criterion catalog,
assignments, evaluation tasks, score details, incidents and notifications.

Revision ID: 0001_evaluation_engine_schema
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "0001_evaluation_engine_schema"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    ]


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # -----------------------------------------------------------------------
    # 1. Reference tables (owned by the roster / catalog subsystems)
    # -----------------------------------------------------------------------

    op.create_table(
        "areas",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_areas_name", "areas", ["name"])

    op.create_table(
        "people",
        _uuid_pk(),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True, unique=True),
        sa.Column("area_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("areas.id"), nullable=True),
        sa.Column("role", sa.Text(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.CheckConstraint("role IN ('subject', 'supervisor', 'peer')", name="people_role_valid"),
    )
    op.create_index("ix_people_area_id", "people", ["area_id"])
    op.create_index("ix_people_role", "people", ["role"])

    op.create_table(
        "criteria",
        _uuid_pk(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )

    op.create_table(
        "subcriteria",
        _uuid_pk(),
        sa.Column("criterion_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("criteria.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("weight", sa.Float(), nullable=False, server_default="1"),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_subcriteria_criterion_id", "subcriteria", ["criterion_id"])

    op.create_table(
        "evaluation_type_criteria",
        sa.Column("evaluation_type", sa.Text(), primary_key=True),
        sa.Column("criterion_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("criteria.id", ondelete="CASCADE"), primary_key=True),
    )

    # -----------------------------------------------------------------------
    # 2. Assignments
    # -----------------------------------------------------------------------

    op.create_table(
        "assignments",
        _uuid_pk(),
        sa.Column("area_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("areas.id"), nullable=False),
        sa.Column("period_label", sa.Text(), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="Open"),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("ends_at > starts_at", name="assignments_window_valid"),
        sa.CheckConstraint("status IN ('Open', 'Closed')", name="assignments_status_valid"),
    )
    op.create_index("ix_assignments_area_id", "assignments", ["area_id"])
    op.create_index("ix_assignments_created_by", "assignments", ["created_by"])
    op.create_index(
        "uq_assignments_live_window",
        "assignments",
        ["area_id", "period_label", "starts_at", "ends_at"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
    )

    # -----------------------------------------------------------------------
    # 3. Evaluation tasks + score details
    # -----------------------------------------------------------------------

    op.create_table(
        "evaluation_tasks",
        _uuid_pk(),
        sa.Column("assignment_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("assignments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("evaluator_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("subject_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("due_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="Pending"),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assignment_id", "type", "evaluator_id", "subject_id", name="uq_evaluation_tasks_pairing"),
        sa.CheckConstraint(
            "type IN ('SelfEvaluation', 'SupervisorToSubject', 'PeerToSubject')",
            name="evaluation_tasks_type_valid",
        ),
        sa.CheckConstraint(
            "status IN ('Pending', 'Active', 'Completed', 'Expired', 'Cancelled')",
            name="evaluation_tasks_status_valid",
        ),
        sa.CheckConstraint(
            "type != 'SelfEvaluation' OR evaluator_id = subject_id",
            name="self_evaluation_same_person",
        ),
        sa.CheckConstraint("score IS NULL OR (score >= 0 AND score <= 20)", name="evaluation_tasks_score_range"),
    )
    op.create_index("ix_evaluation_tasks_assignment_id", "evaluation_tasks", ["assignment_id"])
    op.create_index("ix_evaluation_tasks_evaluator_id", "evaluation_tasks", ["evaluator_id"])
    op.create_index("ix_evaluation_tasks_subject_id", "evaluation_tasks", ["subject_id"])
    # The sweep scans open tasks by deadline.
    op.create_index(
        "ix_evaluation_tasks_open_due_at",
        "evaluation_tasks",
        ["due_at"],
        postgresql_where=sa.text("status IN ('Pending', 'Active')"),
    )

    op.create_table(
        "score_details",
        _uuid_pk(),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("evaluation_tasks.id", ondelete="CASCADE"), nullable=False),
        sa.Column("subcriterion_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("subcriteria.id"), nullable=False),
        sa.Column("points", sa.Float(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.CheckConstraint("points IN (0, 0.5, 1)", name="score_details_points_valid"),
    )
    op.create_index("ix_score_details_task_id", "score_details", ["task_id"])

    # -----------------------------------------------------------------------
    # 4. Incidents
    # -----------------------------------------------------------------------

    op.create_table(
        "incidents",
        _uuid_pk(),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default="Pending"),
        sa.Column("reporter_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("affected_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("task_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("evaluation_tasks.id"), nullable=True),
        sa.Column("action_taken", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("task_id", "category", name="uq_incidents_task_category"),
        sa.CheckConstraint(
            "category IN ('evaluation expired', 'evaluation below threshold')",
            name="incidents_category_valid",
        ),
        sa.CheckConstraint("status IN ('Pending', 'Resolved')", name="incidents_status_valid"),
    )
    op.create_index("ix_incidents_category", "incidents", ["category"])
    op.create_index("ix_incidents_reporter_id", "incidents", ["reporter_id"])
    op.create_index("ix_incidents_affected_id", "incidents", ["affected_id"])
    op.create_index("ix_incidents_task_id", "incidents", ["task_id"])

    op.create_table(
        "notifications",
        _uuid_pk(),
        sa.Column("person_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("people.id"), nullable=False),
        sa.Column("incident_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("incidents.id"), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_notifications_person_id", "notifications", ["person_id"])
    op.create_index("ix_notifications_incident_id", "notifications", ["incident_id"])
    op.create_index("ix_notifications_person_unread", "notifications", ["person_id", "read"])


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    for table in [
        "notifications",
        "incidents",
        "score_details",
        "evaluation_tasks",
        "assignments",
        "evaluation_type_criteria",
        "subcriteria",
        "criteria",
        "people",
        "areas",
    ]:
        op.drop_table(table)
