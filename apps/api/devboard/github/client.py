from __future__ import annotations

from typing import Any, Protocol

import httpx

from devboard.errors import GitHubIntegrationError


class IssueTracker(Protocol):
  async def create_issue(self, owner: str, repo: str, title: str, body: str | None, token: str) -> int: ...

  async def close_issue(self, owner: str, repo: str, issue_number: int, token: str) -> None: ...

  async def reopen_issue(self, owner: str, repo: str, issue_number: int, token: str) -> None: ...

  async def get_issue_details(self, owner: str, repo: str, issue_number: int, token: str) -> dict[str, Any]: ...

  async def get_issue_comments(self, owner: str, repo: str, issue_number: int, token: str) -> list[dict[str, Any]]: ...


def normalize_base_url(base_url: str) -> str:
  b = (base_url or "").strip().rstrip("/")
  if not b:
    b = "https://api.github.com"
  if not (b.startswith("http://") or b.startswith("https://")):
    b = "https://" + b
  return b


def _error_message(payload: Any) -> str:
  if isinstance(payload, dict) and isinstance(payload.get("message"), str):
    return payload["message"]
  if isinstance(payload, str) and payload.strip():
    return payload.strip()[:500]
  return "GitHub request failed"


def _raise_for_status(r: httpx.Response, *, doing: str) -> None:
  if r.status_code < 400:
    return
  if r.status_code in (401, 403):
    raise GitHubIntegrationError(
      "GitHub authorization failed. Verify token permissions.",
      reason=GitHubIntegrationError.UNAUTHORIZED,
      status_code=r.status_code,
    )
  if r.status_code == 404:
    raise GitHubIntegrationError(
      "GitHub issue or repository was not found.",
      reason=GitHubIntegrationError.NOT_FOUND,
      status_code=r.status_code,
    )
  try:
    payload = r.json()
  except Exception:
    payload = (r.text or "")[:800]
  raise GitHubIntegrationError(
    f"GitHub API error while {doing}: {_error_message(payload)}",
    reason=GitHubIntegrationError.API,
    status_code=r.status_code,
  )


def _user(data: Any) -> dict[str, Any] | None:
  if not isinstance(data, dict) or not isinstance(data.get("login"), str):
    return None
  return {"login": data["login"], "avatarUrl": data.get("avatar_url"), "profileUrl": data.get("html_url")}


def _labels(items: Any) -> list[dict[str, Any]]:
  out: list[dict[str, Any]] = []
  for label in items or []:
    if isinstance(label, dict) and isinstance(label.get("name"), str):
      out.append({"name": label["name"], "color": label.get("color")})
  return out


def _normalize_issue(data: dict[str, Any]) -> dict[str, Any]:
  number = data.get("number")
  if not isinstance(number, int):
    raise GitHubIntegrationError("Unexpected GitHub response: issue number missing.")
  return {
    "number": number,
    "title": str(data.get("title") or ""),
    "description": data.get("body"),
    "state": str(data.get("state") or ""),
    "stateReason": data.get("state_reason"),
    "author": _user(data.get("user")),
    "assignees": [u for u in (_user(a) for a in data.get("assignees") or []) if u],
    "labels": _labels(data.get("labels")),
    "commentsCount": int(data.get("comments") or 0),
    "createdAt": data.get("created_at"),
    "updatedAt": data.get("updated_at") or data.get("created_at"),
    "url": data.get("html_url"),
  }


def _normalize_comment(data: dict[str, Any]) -> dict[str, Any]:
  return {
    "id": int(data.get("id") or 0),
    "body": str(data.get("body") or ""),
    "author": _user(data.get("user")),
    "createdAt": data.get("created_at"),
    "updatedAt": data.get("updated_at") or data.get("created_at"),
    "url": data.get("html_url"),
  }


class GitHubIssueClient:
  """Issue tracker backed by the GitHub REST API. Single attempt per call, no retries."""

  def __init__(
    self,
    *,
    base_url: str = "https://api.github.com",
    user_agent: str = "DevBoard/1.0",
    timeout: float = 20,
    transport: httpx.AsyncBaseTransport | None = None,
  ) -> None:
    self.base_url = normalize_base_url(base_url)
    self.user_agent = user_agent
    self.timeout = timeout
    self._transport = transport

  def _client(self, token: str) -> httpx.AsyncClient:
    t = (token or "").strip()
    if not t:
      raise GitHubIntegrationError("GitHub token is required.")
    return httpx.AsyncClient(
      base_url=self.base_url,
      timeout=self.timeout,
      transport=self._transport,
      headers={
        "Accept": "application/vnd.github+json",
        "Authorization": f"Bearer {t}",
        "X-GitHub-Api-Version": "2022-11-28",
        "User-Agent": self.user_agent,
      },
    )

  async def _request(self, token: str, method: str, path: str, *, doing: str, **kwargs: Any) -> Any:
    async with self._client(token) as client:
      try:
        r = await client.request(method, path, **kwargs)
      except httpx.HTTPError as exc:
        raise GitHubIntegrationError(f"GitHub API error while {doing}: {exc}") from exc
    _raise_for_status(r, doing=doing)
    if r.status_code == 204 or not r.content:
      return None
    return r.json()

  async def create_issue(self, owner: str, repo: str, title: str, body: str | None, token: str) -> int:
    payload: dict[str, Any] = {"title": title}
    if body and body.strip():
      payload["body"] = body.strip()
    data = await self._request(token, "POST", f"/repos/{owner}/{repo}/issues", doing="creating issue", json=payload)
    if not isinstance(data, dict) or not isinstance(data.get("number"), int):
      raise GitHubIntegrationError("Unexpected GitHub response while creating issue.")
    return data["number"]

  async def close_issue(self, owner: str, repo: str, issue_number: int, token: str) -> None:
    await self._request(
      token,
      "PATCH",
      f"/repos/{owner}/{repo}/issues/{int(issue_number)}",
      doing="closing issue",
      json={"state": "closed"},
    )

  async def reopen_issue(self, owner: str, repo: str, issue_number: int, token: str) -> None:
    await self._request(
      token,
      "PATCH",
      f"/repos/{owner}/{repo}/issues/{int(issue_number)}",
      doing="reopening issue",
      json={"state": "open"},
    )

  async def get_issue_details(self, owner: str, repo: str, issue_number: int, token: str) -> dict[str, Any]:
    path = f"/repos/{owner}/{repo}/issues/{int(issue_number)}"
    data = await self._request(token, "GET", path, doing="reading issue details")
    if not isinstance(data, dict):
      raise GitHubIntegrationError("Unexpected GitHub response while reading issue details.")
    issue = _normalize_issue(data)
    if not issue["labels"]:
      labels = await self._request(token, "GET", f"{path}/labels", doing="reading issue labels")
      issue["labels"] = _labels(labels if isinstance(labels, list) else [])
    return issue

  async def get_issue_comments(self, owner: str, repo: str, issue_number: int, token: str) -> list[dict[str, Any]]:
    data = await self._request(
      token,
      "GET",
      f"/repos/{owner}/{repo}/issues/{int(issue_number)}/comments",
      doing="reading issue comments",
      params={"per_page": 100},
    )
    return [_normalize_comment(c) for c in (data or []) if isinstance(c, dict)]
