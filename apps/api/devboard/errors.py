from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
  VALIDATION = "validation"
  DOMAIN = "domain"
  AUTHENTICITY = "authenticity"
  PRECONDITION = "precondition"
  INTEGRATION = "integration"
  CONFIGURATION = "configuration"
  INTERNAL = "internal"


# Single place where error kinds become HTTP statuses.
STATUS_BY_KIND: dict[ErrorKind, int] = {
  ErrorKind.VALIDATION: 400,
  ErrorKind.DOMAIN: 400,
  ErrorKind.AUTHENTICITY: 401,
  ErrorKind.PRECONDITION: 400,
  ErrorKind.INTEGRATION: 502,
  ErrorKind.CONFIGURATION: 500,
  ErrorKind.INTERNAL: 500,
}

UNEXPECTED_ERROR_MESSAGE = "An unexpected error occurred."


class DevBoardError(RuntimeError):
  kind: ErrorKind = ErrorKind.INTERNAL

  def __init__(self, message: str) -> None:
    super().__init__(message)
    self.message = message

  @property
  def status_code(self) -> int:
    return status_for(self.kind)


class ValidationFailed(DevBoardError):
  """Malformed request or payload shape."""

  kind = ErrorKind.VALIDATION


class DomainRuleViolation(DevBoardError):
  """Illegal state transition or invalid field value."""

  kind = ErrorKind.DOMAIN


class InvalidWebhookSignature(DevBoardError):
  kind = ErrorKind.AUTHENTICITY


class PreconditionFailed(DevBoardError):
  """Missing project, missing issue number, unknown status literal."""

  kind = ErrorKind.PRECONDITION


class ConfigurationError(DevBoardError):
  kind = ErrorKind.CONFIGURATION


class GitHubIntegrationError(DevBoardError):
  """Remote issue tracker failure; callers should retry against GitHub, not fix their request."""

  kind = ErrorKind.INTEGRATION

  UNAUTHORIZED = "unauthorized"
  NOT_FOUND = "not_found"
  API = "api"

  def __init__(self, message: str, *, reason: str = "api", status_code: int | None = None) -> None:
    super().__init__(message)
    self.reason = reason
    self.upstream_status = status_code


def status_for(kind: ErrorKind) -> int:
  return STATUS_BY_KIND.get(kind, 500)
