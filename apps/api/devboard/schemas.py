from __future__ import annotations

from datetime import datetime, timezone
from pydantic import BaseModel, Field, field_validator

from devboard.models import Project, Task

ALLOWED_STATUSES = ("Todo", "InProgress", "Done")


def _as_utc(dt: datetime | None) -> datetime | None:
  if dt is None:
    return None
  if dt.tzinfo is None:
    return dt.replace(tzinfo=timezone.utc)
  return dt.astimezone(timezone.utc)


class ProjectCreateIn(BaseModel):
  name: str = Field(min_length=1, max_length=150)
  repoOwner: str = Field(min_length=1, max_length=100)
  repoName: str = Field(min_length=1, max_length=100)
  githubToken: str = Field(min_length=1, max_length=4000)


class ProjectOut(BaseModel):
  id: str
  name: str
  repoOwner: str
  repoName: str
  tokenHint: str
  createdAt: datetime

  @classmethod
  def of(cls, p: Project) -> "ProjectOut":
    return cls(
      id=p.id,
      name=p.name,
      repoOwner=p.repo_owner,
      repoName=p.repo_name,
      tokenHint=p.token_hint or "",
      createdAt=_as_utc(p.created_at),
    )


class TaskCreateIn(BaseModel):
  title: str = Field(min_length=1, max_length=250)
  description: str | None = Field(default=None, max_length=20000)


class TaskStatusIn(BaseModel):
  status: str

  @field_validator("status")
  @classmethod
  def _known_status(cls, v: str) -> str:
    s = (v or "").strip()
    if s.lower() not in {x.lower() for x in ALLOWED_STATUSES}:
      raise ValueError("Status must be one of: Todo, InProgress, Done.")
    return s


class TaskTitleIn(BaseModel):
  title: str = Field(min_length=1, max_length=250)


class TaskOut(BaseModel):
  id: str
  projectId: str
  title: str
  status: str
  githubIssueNumber: int | None
  createdAt: datetime
  completedAt: datetime | None

  @classmethod
  def of(cls, t: Task) -> "TaskOut":
    return cls(
      id=t.id,
      projectId=t.project_id,
      title=t.title,
      status=t.status,
      githubIssueNumber=t.github_issue_number,
      createdAt=_as_utc(t.created_at),
      completedAt=_as_utc(t.completed_at),
    )


class IssueUserOut(BaseModel):
  login: str
  avatarUrl: str | None = None
  profileUrl: str | None = None


class IssueLabelOut(BaseModel):
  name: str
  color: str | None = None


class IssueDetailsOut(BaseModel):
  taskId: str
  number: int
  title: str
  description: str | None = None
  state: str
  stateReason: str | None = None
  author: IssueUserOut | None = None
  assignees: list[IssueUserOut] = []
  labels: list[IssueLabelOut] = []
  commentsCount: int = 0
  createdAt: datetime | None = None
  updatedAt: datetime | None = None
  url: str | None = None


class IssueCommentOut(BaseModel):
  id: int
  body: str
  author: IssueUserOut | None = None
  createdAt: datetime | None = None
  updatedAt: datetime | None = None
  url: str | None = None


class IssueCommentsOut(BaseModel):
  taskId: str
  issueNumber: int
  comments: list[IssueCommentOut]


class WebhookReceiptOut(BaseModel):
  ok: bool = True
  message: str = "Webhook processed successfully."
  outcome: str
  taskId: str | None = None
