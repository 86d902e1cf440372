"""
Task status rules.

Local moves are conditional: an unchanged status is a no-op and Done can only
go back to InProgress. Statuses coming from GitHub are applied unconditionally
and always count as a change, so a repeated "closed" refreshes completed_at.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from devboard.errors import DomainRuleViolation, PreconditionFailed
from devboard.models import Task, utcnow

TITLE_MAX_LENGTH = 250


class TaskStatus(str, Enum):
  TODO = "Todo"
  IN_PROGRESS = "InProgress"
  DONE = "Done"


_MOVABLE_TO = (TaskStatus.IN_PROGRESS, TaskStatus.DONE)


def parse_status(value: str | None) -> TaskStatus:
  s = (value or "").strip().lower()
  for status in TaskStatus:
    if status.value.lower() == s:
      return status
  raise PreconditionFailed("Invalid status value.")


def validate_title(title: str | None) -> str:
  t = (title or "").strip()
  if not t:
    raise DomainRuleViolation("title is required.")
  if len(t) > TITLE_MAX_LENGTH:
    raise DomainRuleViolation(f"title must be {TITLE_MAX_LENGTH} characters or fewer.")
  return t


def new_task(*, project_id: str, title: str, created_at: datetime | None = None) -> Task:
  if not (project_id or "").strip():
    raise DomainRuleViolation("projectId is required.")
  return Task(
    project_id=project_id,
    title=validate_title(title),
    status=TaskStatus.TODO.value,
    version=0,
    created_at=created_at or utcnow(),
    completed_at=None,
  )


def assign_issue_number(task: Task, issue_number: int) -> None:
  if issue_number is None or int(issue_number) <= 0:
    raise DomainRuleViolation("githubIssueNumber must be greater than zero.")
  if task.github_issue_number is not None and task.github_issue_number != int(issue_number):
    raise DomainRuleViolation("githubIssueNumber cannot be changed once set.")
  task.github_issue_number = int(issue_number)


def _set_status(task: Task, new_status: TaskStatus, completed_at: datetime | None) -> None:
  task.status = new_status.value
  task.completed_at = (completed_at or utcnow()) if new_status == TaskStatus.DONE else None
  task.version = (task.version or 0) + 1


def move_locally(task: Task, new_status: TaskStatus, *, completed_at: datetime | None = None) -> bool:
  current = TaskStatus(task.status)
  if current == new_status:
    return False
  if current == TaskStatus.DONE and new_status != TaskStatus.IN_PROGRESS:
    raise DomainRuleViolation("Done tasks cannot move to another status.")
  if new_status not in _MOVABLE_TO:
    raise DomainRuleViolation("Invalid task status transition.")
  _set_status(task, new_status, completed_at)
  return True


def apply_external_status(task: Task, new_status: TaskStatus, *, completed_at: datetime | None = None) -> bool:
  if new_status not in _MOVABLE_TO:
    raise DomainRuleViolation("Invalid task status from GitHub.")
  _set_status(task, new_status, completed_at)
  return True


def sync_title(task: Task, title: str) -> None:
  task.title = validate_title(title)
  task.version = (task.version or 0) + 1


def update_title(task: Task, title: str) -> None:
  if task.status == TaskStatus.DONE.value:
    raise DomainRuleViolation("Done tasks cannot be edited.")
  task.title = validate_title(title)
  task.version = (task.version or 0) + 1
