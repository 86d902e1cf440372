from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.errors import DomainRuleViolation
from devboard.models import Project, utcnow
from devboard.security import TokenProtector, token_hint

NAME_MAX_LENGTH = 150
REPO_FIELD_MAX_LENGTH = 100
TOKEN_MAX_LENGTH = 4000


def _required(value: str | None, field: str, max_length: int) -> str:
  v = (value or "").strip()
  if not v:
    raise DomainRuleViolation(f"{field} is required.")
  if len(v) > max_length:
    raise DomainRuleViolation(f"{field} must be {max_length} characters or fewer.")
  return v


async def create_project(
  db: AsyncSession,
  *,
  name: str,
  repo_owner: str,
  repo_name: str,
  github_token: str,
  protector: TokenProtector,
) -> Project:
  token = _required(github_token, "githubToken", TOKEN_MAX_LENGTH)
  project = Project(
    name=_required(name, "name", NAME_MAX_LENGTH),
    repo_owner=_required(repo_owner, "repoOwner", REPO_FIELD_MAX_LENGTH),
    repo_name=_required(repo_name, "repoName", REPO_FIELD_MAX_LENGTH),
    github_token_encrypted=protector.protect(token),
    token_hint=token_hint(token),
    created_at=utcnow(),
  )
  db.add(project)
  await db.commit()
  return project


async def list_projects(db: AsyncSession) -> list[Project]:
  res = await db.execute(select(Project).order_by(Project.created_at.desc()))
  return list(res.scalars().all())


async def get_project(db: AsyncSession, project_id: str) -> Project | None:
  res = await db.execute(select(Project).where(Project.id == project_id))
  return res.scalar_one_or_none()
