from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.deps import get_db, get_issue_tracker, get_token_protector
from devboard.github.client import IssueTracker
from devboard.projects.service import create_project, get_project, list_projects
from devboard.schemas import ProjectCreateIn, ProjectOut, TaskCreateIn, TaskOut
from devboard.security import TokenProtector
from devboard.tasks.service import create_task, list_tasks

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
async def create(
  payload: ProjectCreateIn,
  db: AsyncSession = Depends(get_db),
  protector: TokenProtector = Depends(get_token_protector),
) -> ProjectOut:
  project = await create_project(
    db,
    name=payload.name,
    repo_owner=payload.repoOwner,
    repo_name=payload.repoName,
    github_token=payload.githubToken,
    protector=protector,
  )
  return ProjectOut.of(project)


@router.get("", response_model=list[ProjectOut])
async def list_all(db: AsyncSession = Depends(get_db)) -> list[ProjectOut]:
  return [ProjectOut.of(p) for p in await list_projects(db)]


@router.get("/{project_id}", response_model=ProjectOut)
async def get_one(project_id: str, db: AsyncSession = Depends(get_db)) -> ProjectOut:
  project = await get_project(db, project_id)
  if not project:
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
  return ProjectOut.of(project)


@router.post("/{project_id}/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_project_task(
  project_id: str,
  payload: TaskCreateIn,
  db: AsyncSession = Depends(get_db),
  tracker: IssueTracker = Depends(get_issue_tracker),
  protector: TokenProtector = Depends(get_token_protector),
) -> TaskOut:
  task = await create_task(
    db,
    project_id=project_id,
    title=payload.title,
    description=payload.description,
    tracker=tracker,
    protector=protector,
  )
  return TaskOut.of(task)


@router.get("/{project_id}/tasks", response_model=list[TaskOut])
async def list_project_tasks(project_id: str, db: AsyncSession = Depends(get_db)) -> list[TaskOut]:
  return [TaskOut.of(t) for t in await list_tasks(db, project_id)]
