"""
Inbound sync: GitHub `issues` webhook deliveries applied to local tasks.

Order matters: signature first (a rejected delivery leaves no ledger row so
GitHub can redeliver once the secret is fixed), then the ledger lookup, then
parsing. The ledger row and any task change are committed together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.errors import ValidationFailed
from devboard.metrics import runtime_metrics
from devboard.models import Project, Task
from devboard.realtime.notifier import SOURCE_WEBHOOK, TaskRealtimeNotifier, TaskUpdatedEvent, publish_task_update
from devboard.tasks.lifecycle import TaskStatus, apply_external_status, sync_title
from devboard.webhooks.ledger import delivery_seen, new_delivery
from devboard.webhooks.signature import verify_github_signature

logger = logging.getLogger(__name__)

ISSUES_EVENT = "issues"


class _Owner(BaseModel):
  login: str | None = None


class _Repository(BaseModel):
  name: str | None = None
  owner: _Owner | None = None


class _Issue(BaseModel):
  # Bounded by the Integer column it is matched against.
  number: int = Field(0, le=2**31 - 1)
  title: str | None = None


class IssuesEventPayload(BaseModel):
  action: str | None = None
  issue: _Issue | None = None
  repository: _Repository | None = None


@dataclass(frozen=True)
class IssueEvent:
  action: str
  issue_number: int
  issue_title: str | None
  repo_owner: str
  repo_name: str


@dataclass(frozen=True)
class WebhookOutcome:
  outcome: str  # ignored | duplicate | unmatched | unchanged | updated
  task_id: str | None = None

  @property
  def changed(self) -> bool:
    return self.outcome == "updated"


def parse_issue_event(payload: bytes) -> IssueEvent:
  try:
    data = IssuesEventPayload.model_validate_json(payload)
  except ValidationError as exc:
    raise ValidationFailed("Invalid GitHub webhook payload.") from exc

  if data.issue is None or data.repository is None or data.repository.owner is None:
    raise ValidationFailed("GitHub webhook payload is missing issue or repository data.")
  owner = (data.repository.owner.login or "").strip()
  name = (data.repository.name or "").strip()
  if not owner or not name or data.issue.number <= 0:
    raise ValidationFailed("GitHub webhook payload contains invalid repository or issue values.")

  return IssueEvent(
    action=(data.action or "").strip().lower(),
    issue_number=data.issue.number,
    issue_title=data.issue.title,
    repo_owner=owner,
    repo_name=name,
  )


async def _find_task(db: AsyncSession, ev: IssueEvent) -> Task | None:
  # Issue numbers are only unique per repository.
  res = await db.execute(
    select(Task)
    .join(Project, Project.id == Task.project_id)
    .where(
      Task.github_issue_number == ev.issue_number,
      Project.repo_owner == ev.repo_owner,
      Project.repo_name == ev.repo_name,
    )
    .limit(1)
  )
  return res.scalar_one_or_none()


def apply_issue_action(task: Task, action: str, issue_title: str | None) -> bool:
  if action == "closed":
    return apply_external_status(task, TaskStatus.DONE)
  if action == "reopened":
    return apply_external_status(task, TaskStatus.IN_PROGRESS)
  if action == "edited":
    title = (issue_title or "").strip()
    if not title or title == task.title:
      return False
    sync_title(task, title)
    return True
  return False


async def process_github_delivery(
  db: AsyncSession,
  *,
  event_name: str,
  delivery_id: str,
  signature: str | None,
  payload: bytes,
  secret: str | None,
  notifier: TaskRealtimeNotifier | None = None,
) -> WebhookOutcome:
  if (event_name or "").strip().lower() != ISSUES_EVENT:
    runtime_metrics.count("webhook.ignored")
    return WebhookOutcome("ignored")

  try:
    verify_github_signature(payload, signature, secret=secret)
  except Exception:
    runtime_metrics.count("webhook.rejected")
    raise

  delivery = new_delivery(delivery_id=delivery_id, event_name=event_name)
  if await delivery_seen(db, delivery.delivery_id):
    runtime_metrics.count("webhook.duplicate")
    logger.info("Skipping already processed GitHub delivery %s.", delivery.delivery_id)
    return WebhookOutcome("duplicate")

  ev = parse_issue_event(payload)
  task = await _find_task(db, ev)
  changed = False
  if task is not None:
    changed = apply_issue_action(task, ev.action, ev.issue_title)
  else:
    logger.info(
      "No local task matched GitHub issue #%s in %s/%s.", ev.issue_number, ev.repo_owner, ev.repo_name
    )

  db.add(delivery)
  try:
    await db.commit()
  except IntegrityError:
    # Same delivery id committed concurrently; that delivery owns the side effects.
    await db.rollback()
    runtime_metrics.count("webhook.duplicate")
    logger.info("GitHub delivery %s was recorded concurrently; treating as duplicate.", delivery.delivery_id)
    return WebhookOutcome("duplicate")

  runtime_metrics.count("webhook.processed")
  if task is None:
    return WebhookOutcome("unmatched")
  if not changed:
    return WebhookOutcome("unchanged", task_id=task.id)

  await publish_task_update(
    notifier,
    TaskUpdatedEvent(
      task_id=task.id,
      project_id=task.project_id,
      status=task.status,
      completed_at=task.completed_at,
      source=SOURCE_WEBHOOK,
    ),
  )
  return WebhookOutcome("updated", task_id=task.id)
