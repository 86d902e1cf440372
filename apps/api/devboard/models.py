from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
  return datetime.now(timezone.utc)


class Base(DeclarativeBase):
  pass


class Project(Base):
  __tablename__ = "projects"
  __table_args__ = (Index("ix_projects_repo", "repo_owner", "repo_name"),)

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
  name: Mapped[str] = mapped_column(String(150), nullable=False)
  repo_owner: Mapped[str] = mapped_column(String(100), nullable=False)
  repo_name: Mapped[str] = mapped_column(String(100), nullable=False)
  github_token_encrypted: Mapped[str] = mapped_column(Text, nullable=False)
  token_hint: Mapped[str] = mapped_column(String, nullable=False, default="")
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)


class Task(Base):
  __tablename__ = "tasks"
  __table_args__ = (
    Index("ix_tasks_github_issue_number", "github_issue_number"),
    CheckConstraint("status in ('Todo', 'InProgress', 'Done')", name="ck_tasks_status"),
    CheckConstraint("(status = 'Done') = (completed_at is not null)", name="ck_tasks_completed_at"),
  )

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
  project_id: Mapped[str] = mapped_column(
    Uuid(as_uuid=False), ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
  )
  title: Mapped[str] = mapped_column(String(250), nullable=False)
  status: Mapped[str] = mapped_column(String(20), nullable=False, default="Todo")
  github_issue_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
  version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
  created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
  completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class WebhookDelivery(Base):
  __tablename__ = "webhook_deliveries"

  id: Mapped[str] = mapped_column(Uuid(as_uuid=False), primary_key=True, default=lambda: str(uuid.uuid4()))
  delivery_id: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
  event_name: Mapped[str] = mapped_column(String(50), nullable=False)
  received_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
