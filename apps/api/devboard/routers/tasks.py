from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.deps import get_db, get_issue_tracker, get_notifier, get_token_protector
from devboard.github.client import IssueTracker
from devboard.realtime.notifier import TaskRealtimeNotifier
from devboard.schemas import IssueCommentsOut, IssueDetailsOut, TaskOut, TaskStatusIn, TaskTitleIn
from devboard.security import TokenProtector
from devboard.tasks.service import get_issue_comments, get_issue_details, get_task, rename_task, update_status

router = APIRouter(prefix="/api/tasks", tags=["tasks"])


def _not_found() -> HTTPException:
  return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found.")


@router.get("/{task_id}", response_model=TaskOut)
async def get_one(task_id: str, db: AsyncSession = Depends(get_db)) -> TaskOut:
  task = await get_task(db, task_id)
  if not task:
    raise _not_found()
  return TaskOut.of(task)


@router.patch("/{task_id}/status", response_model=TaskOut)
async def patch_status(
  task_id: str,
  payload: TaskStatusIn,
  db: AsyncSession = Depends(get_db),
  tracker: IssueTracker = Depends(get_issue_tracker),
  protector: TokenProtector = Depends(get_token_protector),
  notifier: TaskRealtimeNotifier = Depends(get_notifier),
) -> TaskOut:
  task = await update_status(
    db,
    task_id=task_id,
    requested_status=payload.status,
    tracker=tracker,
    protector=protector,
    notifier=notifier,
  )
  if not task:
    raise _not_found()
  return TaskOut.of(task)


@router.patch("/{task_id}/title", response_model=TaskOut)
async def patch_title(task_id: str, payload: TaskTitleIn, db: AsyncSession = Depends(get_db)) -> TaskOut:
  task = await rename_task(db, task_id=task_id, title=payload.title)
  if not task:
    raise _not_found()
  return TaskOut.of(task)


@router.get("/{task_id}/issue-details", response_model=IssueDetailsOut)
async def issue_details(
  task_id: str,
  db: AsyncSession = Depends(get_db),
  tracker: IssueTracker = Depends(get_issue_tracker),
  protector: TokenProtector = Depends(get_token_protector),
) -> IssueDetailsOut:
  details = await get_issue_details(db, task_id=task_id, tracker=tracker, protector=protector)
  if details is None:
    raise _not_found()
  return IssueDetailsOut.model_validate(details)


@router.get("/{task_id}/issue-comments", response_model=IssueCommentsOut)
async def issue_comments(
  task_id: str,
  db: AsyncSession = Depends(get_db),
  tracker: IssueTracker = Depends(get_issue_tracker),
  protector: TokenProtector = Depends(get_token_protector),
) -> IssueCommentsOut:
  comments = await get_issue_comments(db, task_id=task_id, tracker=tracker, protector=protector)
  if comments is None:
    raise _not_found()
  return IssueCommentsOut.model_validate(comments)
