from __future__ import annotations

import hashlib
import hmac

from devboard.errors import ConfigurationError, InvalidWebhookSignature

SIGNATURE_PREFIX = "sha256="


def compute_signature(payload: bytes, secret: str) -> str:
  return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def verify_github_signature(payload: bytes, signature: str | None, *, secret: str | None) -> None:
  """
  Check an X-Hub-Signature-256 header against the raw request body.

  Raises ConfigurationError when no secret is configured (fail closed) and
  InvalidWebhookSignature for a missing, malformed or mismatching header.
  """
  if not (secret or "").strip():
    raise ConfigurationError("GitHub webhook secret is not configured.")
  sig = (signature or "").strip()
  if not sig:
    raise InvalidWebhookSignature("Missing webhook signature.")
  if not sig.lower().startswith(SIGNATURE_PREFIX):
    raise InvalidWebhookSignature("Invalid webhook signature format.")

  expected = compute_signature(payload, secret)
  provided = sig[len(SIGNATURE_PREFIX) :]
  if not hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8")):
    raise InvalidWebhookSignature("Webhook signature validation failed.")
