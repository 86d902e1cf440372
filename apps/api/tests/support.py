from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from devboard.errors import GitHubIntegrationError
from devboard.realtime.notifier import TaskUpdatedEvent

WEBHOOK_SECRET = "whsec-test-secret"


class FakeIssueTracker:
  def __init__(self, *, next_issue_number: int = 101) -> None:
    self.next_issue_number = next_issue_number
    self.calls: list[tuple[Any, ...]] = []
    self.fail_on: dict[str, Exception] = {}
    self.details: dict[str, Any] = {
      "number": next_issue_number,
      "title": "Remote title",
      "description": "Remote body",
      "state": "open",
      "stateReason": None,
      "author": {"login": "octocat", "avatarUrl": None, "profileUrl": "https://github.com/octocat"},
      "assignees": [],
      "labels": [{"name": "bug", "color": "d73a4a"}],
      "commentsCount": 1,
      "createdAt": "2026-10-01T10:00:00Z",
      "updatedAt": "2026-10-02T10:00:00Z",
      "url": "https://github.com/carra/devboard/issues/101",
    }
    self.comments: list[dict[str, Any]] = [
      {
        "id": 9001,
        "body": "Looks good",
        "author": {"login": "octocat", "avatarUrl": None, "profileUrl": None},
        "createdAt": "2026-10-02T11:00:00Z",
        "updatedAt": "2026-10-02T11:00:00Z",
        "url": "https://github.com/carra/devboard/issues/101#issuecomment-9001",
      }
    ]

  def fail(self, method: str, exc: Exception | None = None) -> None:
    self.fail_on[method] = exc or GitHubIntegrationError(f"{method} failed.")

  def calls_to(self, method: str) -> list[tuple[Any, ...]]:
    return [c for c in self.calls if c[0] == method]

  def _record(self, method: str, *args: Any) -> None:
    self.calls.append((method, *args))
    if method in self.fail_on:
      raise self.fail_on[method]

  async def create_issue(self, owner: str, repo: str, title: str, body: str | None, token: str) -> int:
    self._record("create_issue", owner, repo, title, body, token)
    return self.next_issue_number

  async def close_issue(self, owner: str, repo: str, issue_number: int, token: str) -> None:
    self._record("close_issue", owner, repo, issue_number, token)

  async def reopen_issue(self, owner: str, repo: str, issue_number: int, token: str) -> None:
    self._record("reopen_issue", owner, repo, issue_number, token)

  async def get_issue_details(self, owner: str, repo: str, issue_number: int, token: str) -> dict[str, Any]:
    self._record("get_issue_details", owner, repo, issue_number, token)
    return dict(self.details, number=issue_number)

  async def get_issue_comments(self, owner: str, repo: str, issue_number: int, token: str) -> list[dict[str, Any]]:
    self._record("get_issue_comments", owner, repo, issue_number, token)
    return list(self.comments)


class RecordingNotifier:
  def __init__(self) -> None:
    self.events: list[TaskUpdatedEvent] = []

  async def notify_task_updated(self, event: TaskUpdatedEvent) -> None:
    self.events.append(event)


def issue_payload(action: str, number: int, title: str = "Issue title", *, owner: str = "carra", repo: str = "devboard") -> bytes:
  return json.dumps(
    {
      "action": action,
      "issue": {"number": number, "title": title},
      "repository": {"name": repo, "owner": {"login": owner}},
    }
  ).encode("utf-8")


def sign(payload: bytes, secret: str = WEBHOOK_SECRET) -> str:
  return "sha256=" + hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


async def seed_project(db, *, owner: str = "carra", repo: str = "devboard", token: str = "ghp_plain_token"):
  from devboard.models import Project
  from devboard.security import encrypt_secret, token_hint

  project = Project(
    name="DevBoard",
    repo_owner=owner,
    repo_name=repo,
    github_token_encrypted=encrypt_secret(token),
    token_hint=token_hint(token),
  )
  db.add(project)
  await db.commit()
  return project


async def seed_task(db, project, *, title: str = "Seeded task", status: str = "Todo", issue_number: int | None = 456):
  from devboard.tasks.lifecycle import TaskStatus, assign_issue_number, move_locally, new_task

  task = new_task(project_id=project.id, title=title)
  if issue_number is not None:
    assign_issue_number(task, issue_number)
  if status in ("InProgress", "Done"):
    move_locally(task, TaskStatus(status))
  db.add(task)
  await db.commit()
  return task
