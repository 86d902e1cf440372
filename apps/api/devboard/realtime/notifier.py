from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

logger = logging.getLogger(__name__)

SOURCE_WEBHOOK = "webhook"
SOURCE_LOCAL = "local"


@dataclass(frozen=True)
class TaskUpdatedEvent:
  task_id: str
  project_id: str
  status: str
  completed_at: datetime | None
  source: str

  def as_message(self) -> dict[str, Any]:
    return {
      "taskId": self.task_id,
      "projectId": self.project_id,
      "status": self.status,
      "completedAt": self.completed_at.isoformat() if self.completed_at else None,
      "updatedFrom": self.source,
    }


class TaskRealtimeNotifier(Protocol):
  async def notify_task_updated(self, event: TaskUpdatedEvent) -> None: ...


class TaskEventHub:
  """
  In-process fan-out of task updates.

  Each subscriber gets its own bounded queue; when a slow subscriber's queue
  is full the oldest pending event for that subscriber is dropped.
  """

  def __init__(self, *, max_pending: int = 100) -> None:
    self._max_pending = max_pending
    self._subscribers: set[asyncio.Queue[TaskUpdatedEvent]] = set()

  @property
  def subscriber_count(self) -> int:
    return len(self._subscribers)

  async def notify_task_updated(self, event: TaskUpdatedEvent) -> None:
    for q in list(self._subscribers):
      if q.full():
        q.get_nowait()
      q.put_nowait(event)

  @asynccontextmanager
  async def subscribe(self) -> AsyncIterator[asyncio.Queue[TaskUpdatedEvent]]:
    q: asyncio.Queue[TaskUpdatedEvent] = asyncio.Queue(maxsize=self._max_pending)
    self._subscribers.add(q)
    try:
      yield q
    finally:
      self._subscribers.discard(q)


task_event_hub = TaskEventHub()


async def publish_task_update(notifier: TaskRealtimeNotifier | None, event: TaskUpdatedEvent) -> bool:
  """Deliver one event; the state change is already committed, so a failing notifier is logged, not raised."""
  if notifier is None:
    return False
  try:
    await notifier.notify_task_updated(event)
  except Exception:
    logger.exception("Realtime notification failed for task %s.", event.task_id)
    return False
  return True
