from __future__ import annotations

import base64
from typing import Protocol

from cryptography.fernet import Fernet, InvalidToken

from devboard.config import settings

PLACEHOLDER_FERNET_KEYS = {"AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA=", "REPLACE_WITH_FERNET_KEY"}


class IntegrationSecretDecryptError(RuntimeError):
  pass


class TokenProtector(Protocol):
  def protect(self, plaintext: str) -> str: ...

  def unprotect(self, ciphertext: str) -> str: ...


def _fernet() -> Fernet:
  key = settings.fernet_key
  # accept raw bytes/base64 for ergonomics
  try:
    base64.urlsafe_b64decode(key.encode("utf-8"))
    return Fernet(key.encode("utf-8"))
  except Exception:
    b = base64.urlsafe_b64encode(key.encode("utf-8").ljust(32, b"\0")[:32])
    return Fernet(b)


def encrypt_secret(value: str) -> str:
  return _fernet().encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_secret(value: str) -> str:
  return _fernet().decrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_integration_secret(value: str) -> str:
  try:
    return decrypt_secret(value)
  except InvalidToken as exc:
    raise IntegrationSecretDecryptError(
      "GitHub token cannot be decrypted with the current key; recreate the project with a fresh token."
    ) from exc


class FernetTokenProtector:
  """Token protector backed by the configured Fernet key."""

  def protect(self, plaintext: str) -> str:
    return encrypt_secret(plaintext)

  def unprotect(self, ciphertext: str) -> str:
    return decrypt_integration_secret(ciphertext)


def token_hint(token: str) -> str:
  s = (token or "").strip()
  if not s:
    return ""
  if len(s) <= 6:
    return f"…{s}"
  return f"…{s[-6:]}"
