from __future__ import annotations

from datetime import datetime, timezone

import pytest

from devboard.errors import DomainRuleViolation, PreconditionFailed
from devboard.tasks.lifecycle import (
  TaskStatus,
  apply_external_status,
  assign_issue_number,
  move_locally,
  new_task,
  parse_status,
  sync_title,
  update_title,
)


def _task(status: TaskStatus = TaskStatus.TODO):
  t = new_task(project_id="p-1", title="  Write docs  ")
  if status == TaskStatus.IN_PROGRESS:
    move_locally(t, TaskStatus.IN_PROGRESS)
  elif status == TaskStatus.DONE:
    move_locally(t, TaskStatus.DONE)
  return t


def _consistent(t) -> bool:
  return (t.status == TaskStatus.DONE.value) == (t.completed_at is not None)


def test_new_task_starts_in_todo_with_trimmed_title() -> None:
  t = _task()
  assert t.title == "Write docs"
  assert t.status == "Todo"
  assert t.completed_at is None
  assert t.github_issue_number is None


@pytest.mark.parametrize("title", ["", "   ", "x" * 251])
def test_new_task_rejects_blank_or_long_title(title: str) -> None:
  with pytest.raises(DomainRuleViolation):
    new_task(project_id="p-1", title=title)


def test_title_of_exactly_250_chars_is_accepted() -> None:
  assert len(new_task(project_id="p-1", title="y" * 250).title) == 250


@pytest.mark.parametrize("start", [TaskStatus.TODO, TaskStatus.IN_PROGRESS])
def test_move_to_done_sets_completion_time(start: TaskStatus) -> None:
  t = _task(start)
  assert move_locally(t, TaskStatus.DONE) is True
  assert t.status == "Done"
  assert t.completed_at is not None
  assert _consistent(t)


def test_move_to_done_uses_caller_supplied_time() -> None:
  at = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
  t = _task(TaskStatus.IN_PROGRESS)
  move_locally(t, TaskStatus.DONE, completed_at=at)
  assert t.completed_at == at


def test_same_status_is_a_noop() -> None:
  t = _task(TaskStatus.DONE)
  before = t.completed_at
  assert move_locally(t, TaskStatus.DONE) is False
  assert t.completed_at == before


def test_done_cannot_move_back_to_todo() -> None:
  t = _task(TaskStatus.DONE)
  with pytest.raises(DomainRuleViolation):
    move_locally(t, TaskStatus.TODO)
  assert t.status == "Done"
  assert _consistent(t)


def test_done_back_to_in_progress_clears_completion_time() -> None:
  t = _task(TaskStatus.DONE)
  assert move_locally(t, TaskStatus.IN_PROGRESS) is True
  assert t.status == "InProgress"
  assert t.completed_at is None


def test_no_explicit_move_back_to_todo() -> None:
  t = _task(TaskStatus.IN_PROGRESS)
  with pytest.raises(DomainRuleViolation):
    move_locally(t, TaskStatus.TODO)


def test_external_status_always_reports_change_and_refreshes_timestamp() -> None:
  t = _task(TaskStatus.DONE)
  first = datetime(2026, 1, 1, tzinfo=timezone.utc)
  second = datetime(2026, 2, 1, tzinfo=timezone.utc)
  assert apply_external_status(t, TaskStatus.DONE, completed_at=first) is True
  assert apply_external_status(t, TaskStatus.DONE, completed_at=second) is True
  assert t.completed_at == second


def test_external_reopen_from_todo_is_allowed() -> None:
  t = _task()
  assert apply_external_status(t, TaskStatus.IN_PROGRESS) is True
  assert t.status == "InProgress"
  assert t.completed_at is None


def test_external_status_cannot_be_todo() -> None:
  with pytest.raises(DomainRuleViolation):
    apply_external_status(_task(), TaskStatus.TODO)


def test_sync_title_overwrites_even_when_done() -> None:
  t = _task(TaskStatus.DONE)
  sync_title(t, " Renamed on GitHub ")
  assert t.title == "Renamed on GitHub"
  with pytest.raises(DomainRuleViolation):
    sync_title(t, " ")


def test_local_title_edit_blocked_once_done() -> None:
  t = _task(TaskStatus.IN_PROGRESS)
  update_title(t, "Edited")
  assert t.title == "Edited"
  move_locally(t, TaskStatus.DONE)
  with pytest.raises(DomainRuleViolation):
    update_title(t, "Too late")


def test_issue_number_is_positive_and_immutable() -> None:
  t = _task()
  with pytest.raises(DomainRuleViolation):
    assign_issue_number(t, 0)
  assign_issue_number(t, 12)
  assign_issue_number(t, 12)
  with pytest.raises(DomainRuleViolation):
    assign_issue_number(t, 13)
  assert t.github_issue_number == 12


@pytest.mark.parametrize(
  ("raw", "expected"),
  [("done", TaskStatus.DONE), ("INPROGRESS", TaskStatus.IN_PROGRESS), (" Todo ", TaskStatus.TODO)],
)
def test_parse_status_is_case_insensitive(raw: str, expected: TaskStatus) -> None:
  assert parse_status(raw) == expected


@pytest.mark.parametrize("raw", ["", None, "closed", "In Progress"])
def test_parse_status_rejects_unknown_literals(raw) -> None:
  with pytest.raises(PreconditionFailed):
    parse_status(raw)
