from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from devboard.config import settings
from devboard.db import SessionLocal
from devboard.github.client import GitHubIssueClient, IssueTracker
from devboard.realtime.notifier import TaskRealtimeNotifier, task_event_hub
from devboard.security import FernetTokenProtector, TokenProtector


async def get_db() -> AsyncSession:
  async with SessionLocal() as session:
    yield session


def get_issue_tracker() -> IssueTracker:
  return GitHubIssueClient(
    base_url=settings.github_api_base_url,
    user_agent=settings.github_user_agent,
    timeout=settings.github_timeout_seconds,
  )


def get_token_protector() -> TokenProtector:
  return FernetTokenProtector()


def get_notifier() -> TaskRealtimeNotifier:
  return task_event_hub


def get_webhook_secret() -> str | None:
  return settings.github_webhook_secret
