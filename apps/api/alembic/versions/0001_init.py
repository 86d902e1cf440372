"""init projects, tasks, webhook deliveries

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
  op.create_table(
    "projects",
    sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True, nullable=False),
    sa.Column("name", sa.String(length=150), nullable=False),
    sa.Column("repo_owner", sa.String(length=100), nullable=False),
    sa.Column("repo_name", sa.String(length=100), nullable=False),
    sa.Column("github_token_encrypted", sa.Text(), nullable=False),
    sa.Column("token_hint", sa.String(), nullable=False, server_default=""),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
  )
  op.create_index("ix_projects_repo", "projects", ["repo_owner", "repo_name"])

  op.create_table(
    "tasks",
    sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True, nullable=False),
    sa.Column(
      "project_id",
      postgresql.UUID(as_uuid=False),
      sa.ForeignKey("projects.id", ondelete="CASCADE"),
      nullable=False,
    ),
    sa.Column("title", sa.String(length=250), nullable=False),
    sa.Column("status", sa.String(length=20), nullable=False, server_default="Todo"),
    sa.Column("github_issue_number", sa.Integer(), nullable=True),
    sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    sa.CheckConstraint("status in ('Todo', 'InProgress', 'Done')", name="ck_tasks_status"),
    sa.CheckConstraint("(status = 'Done') = (completed_at is not null)", name="ck_tasks_completed_at"),
  )
  op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
  op.create_index("ix_tasks_github_issue_number", "tasks", ["github_issue_number"])

  op.create_table(
    "webhook_deliveries",
    sa.Column("id", postgresql.UUID(as_uuid=False), primary_key=True, nullable=False),
    sa.Column("delivery_id", sa.String(length=100), nullable=False),
    sa.Column("event_name", sa.String(length=50), nullable=False),
    sa.Column("received_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
  )
  op.create_index("ix_webhook_deliveries_delivery_id", "webhook_deliveries", ["delivery_id"], unique=True)
  op.create_index("ix_webhook_deliveries_received_at", "webhook_deliveries", ["received_at"])


def downgrade() -> None:
  op.drop_table("webhook_deliveries")
  op.drop_table("tasks")
  op.drop_table("projects")
