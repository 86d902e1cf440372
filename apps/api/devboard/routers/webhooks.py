from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from devboard.deps import get_db, get_notifier, get_webhook_secret
from devboard.realtime.notifier import TaskRealtimeNotifier
from devboard.schemas import WebhookReceiptOut
from devboard.webhooks.service import process_github_delivery

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/github", response_model=WebhookReceiptOut)
async def receive_github(
  request: Request,
  db: AsyncSession = Depends(get_db),
  notifier: TaskRealtimeNotifier = Depends(get_notifier),
  secret: str | None = Depends(get_webhook_secret),
) -> WebhookReceiptOut:
  event_name = (request.headers.get("x-github-event") or "").strip()
  delivery_id = (request.headers.get("x-github-delivery") or "").strip()
  if not event_name or not delivery_id:
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required GitHub webhook headers.")

  # The signature covers the exact bytes GitHub sent; never re-serialize.
  body = await request.body()
  result = await process_github_delivery(
    db,
    event_name=event_name,
    delivery_id=delivery_id,
    signature=request.headers.get("x-hub-signature-256"),
    payload=body,
    secret=secret,
    notifier=notifier,
  )
  return WebhookReceiptOut(outcome=result.outcome, taskId=result.task_id)
