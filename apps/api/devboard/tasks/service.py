"""
Outbound sync: local task operations that must be mirrored on GitHub.

Remote side effects always run before the local commit. When the commit
fails after a remote issue was created, the issue is closed again as a
best-effort compensation and the original error is re-raised.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.errors import PreconditionFailed
from devboard.github.client import IssueTracker
from devboard.metrics import runtime_metrics
from devboard.models import Project, Task
from devboard.realtime.notifier import SOURCE_LOCAL, TaskRealtimeNotifier, TaskUpdatedEvent, publish_task_update
from devboard.security import TokenProtector
from devboard.tasks.lifecycle import (
  TaskStatus,
  assign_issue_number,
  move_locally,
  new_task,
  parse_status,
  update_title,
)

logger = logging.getLogger(__name__)

NO_ISSUE_MESSAGE = "Task does not have an associated GitHub issue."


async def _get_project(db: AsyncSession, project_id: str) -> Project | None:
  res = await db.execute(select(Project).where(Project.id == project_id))
  return res.scalar_one_or_none()


async def get_task(db: AsyncSession, task_id: str) -> Task | None:
  res = await db.execute(select(Task).where(Task.id == task_id))
  return res.scalar_one_or_none()


async def list_tasks(db: AsyncSession, project_id: str) -> list[Task]:
  res = await db.execute(select(Task).where(Task.project_id == project_id).order_by(Task.created_at.asc()))
  return list(res.scalars().all())


def requires_remote_action(current: TaskStatus, requested: TaskStatus) -> bool:
  if current == requested:
    return False
  return requested == TaskStatus.DONE or (current == TaskStatus.DONE and requested == TaskStatus.IN_PROGRESS)


async def _compensate_created_issue(
  tracker: IssueTracker, owner: str, repo: str, issue_number: int, token: str
) -> None:
  try:
    await tracker.close_issue(owner, repo, issue_number, token)
  except Exception:
    runtime_metrics.count("compensation.failed")
    logger.exception(
      "Compensation failed for GitHub issue #%s in %s/%s after persistence error.", issue_number, owner, repo
    )
    return
  runtime_metrics.count("compensation.closed")
  logger.warning("Closed GitHub issue #%s in %s/%s to compensate for a failed task save.", issue_number, owner, repo)


async def create_task(
  db: AsyncSession,
  *,
  project_id: str,
  title: str,
  description: str | None,
  tracker: IssueTracker,
  protector: TokenProtector,
) -> Task:
  project = await _get_project(db, project_id)
  if not project:
    raise PreconditionFailed("Project not found.")

  # Validate before anything leaves the process.
  task = new_task(project_id=project.id, title=title)

  # Plain values: rollback expires the ORM instances in this session.
  owner, repo = project.repo_owner, project.repo_name
  token = protector.unprotect(project.github_token_encrypted)
  issue_number = await tracker.create_issue(owner, repo, task.title, description, token)

  try:
    assign_issue_number(task, issue_number)
    db.add(task)
    await db.commit()
  except BaseException as exc:
    # Includes cancellation: the remote issue exists either way.
    logger.error(
      "Failed to persist task after creating GitHub issue #%s in %s/%s.", issue_number, owner, repo, exc_info=exc
    )
    try:
      await db.rollback()
    except Exception:
      logger.exception("Rollback failed after task persistence error.")
    await _compensate_created_issue(tracker, owner, repo, issue_number, token)
    raise

  return task


async def update_status(
  db: AsyncSession,
  *,
  task_id: str,
  requested_status: str,
  tracker: IssueTracker,
  protector: TokenProtector,
  notifier: TaskRealtimeNotifier | None = None,
) -> Task | None:
  task = await get_task(db, task_id)
  if not task:
    return None

  new_status = parse_status(requested_status)
  current = TaskStatus(task.status)

  if requires_remote_action(current, new_status):
    project = await _get_project(db, task.project_id)
    if not project:
      raise PreconditionFailed("Project not found for task.")
    if task.github_issue_number is None:
      raise PreconditionFailed(NO_ISSUE_MESSAGE)
    token = protector.unprotect(project.github_token_encrypted)
    # A failure here propagates before the task is touched.
    if new_status == TaskStatus.DONE:
      await tracker.close_issue(project.repo_owner, project.repo_name, task.github_issue_number, token)
    else:
      await tracker.reopen_issue(project.repo_owner, project.repo_name, task.github_issue_number, token)

  changed = move_locally(task, new_status)
  await db.commit()

  if changed:
    await publish_task_update(
      notifier,
      TaskUpdatedEvent(
        task_id=task.id,
        project_id=task.project_id,
        status=task.status,
        completed_at=task.completed_at,
        source=SOURCE_LOCAL,
      ),
    )
  return task


async def rename_task(db: AsyncSession, *, task_id: str, title: str) -> Task | None:
  task = await get_task(db, task_id)
  if not task:
    return None
  update_title(task, title)
  await db.commit()
  return task


async def _linked_issue(db: AsyncSession, task: Task, protector: TokenProtector) -> tuple[Project, int, str]:
  if task.github_issue_number is None:
    raise PreconditionFailed(NO_ISSUE_MESSAGE)
  project = await _get_project(db, task.project_id)
  if not project:
    raise PreconditionFailed("Project not found for task.")
  return project, task.github_issue_number, protector.unprotect(project.github_token_encrypted)


async def get_issue_details(
  db: AsyncSession, *, task_id: str, tracker: IssueTracker, protector: TokenProtector
) -> dict[str, Any] | None:
  task = await get_task(db, task_id)
  if not task:
    return None
  project, number, token = await _linked_issue(db, task, protector)
  details = await tracker.get_issue_details(project.repo_owner, project.repo_name, number, token)
  return {**details, "taskId": task.id}


async def get_issue_comments(
  db: AsyncSession, *, task_id: str, tracker: IssueTracker, protector: TokenProtector
) -> dict[str, Any] | None:
  task = await get_task(db, task_id)
  if not task:
    return None
  project, number, token = await _linked_issue(db, task, protector)
  comments = await tracker.get_issue_comments(project.repo_owner, project.repo_name, number, token)
  return {"taskId": task.id, "issueNumber": number, "comments": comments}
