from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.errors import ValidationFailed
from devboard.models import WebhookDelivery, utcnow

logger = logging.getLogger(__name__)

DELIVERY_ID_MAX_LENGTH = 100
EVENT_NAME_MAX_LENGTH = 50


def _required(value: str | None, field: str, max_length: int) -> str:
  v = (value or "").strip()
  if not v:
    raise ValidationFailed(f"{field} is required.")
  if len(v) > max_length:
    raise ValidationFailed(f"{field} must be {max_length} characters or fewer.")
  return v


def new_delivery(*, delivery_id: str, event_name: str, received_at: datetime | None = None) -> WebhookDelivery:
  return WebhookDelivery(
    delivery_id=_required(delivery_id, "deliveryId", DELIVERY_ID_MAX_LENGTH),
    event_name=_required(event_name, "eventName", EVENT_NAME_MAX_LENGTH),
    received_at=received_at or utcnow(),
  )


async def delivery_seen(db: AsyncSession, delivery_id: str) -> bool:
  res = await db.execute(select(WebhookDelivery.id).where(WebhookDelivery.delivery_id == delivery_id.strip()).limit(1))
  return res.scalar_one_or_none() is not None


async def prune_deliveries(db: AsyncSession, *, older_than: datetime) -> int:
  # Only safe when older_than is well past the provider's redelivery window.
  res = await db.execute(delete(WebhookDelivery).where(WebhookDelivery.received_at < older_than))
  await db.commit()
  removed = int(res.rowcount or 0)
  if removed:
    logger.info("Pruned %d webhook deliveries received before %s.", removed, older_than.isoformat())
  return removed
