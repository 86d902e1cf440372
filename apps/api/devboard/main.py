from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from time import monotonic

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from devboard.config import settings
from devboard.db import SessionLocal
from devboard.errors import UNEXPECTED_ERROR_MESSAGE, DevBoardError, ErrorKind, status_for
from devboard.metrics import runtime_metrics
from devboard.models import utcnow
from devboard.routers.projects import router as projects_router
from devboard.routers.tasks import router as tasks_router
from devboard.routers.webhooks import router as webhooks_router
from devboard.security import PLACEHOLDER_FERNET_KEYS, IntegrationSecretDecryptError
from devboard.webhooks.ledger import prune_deliveries

logging.basicConfig(
  level=getattr(logging, settings.log_level.upper(), logging.INFO),
  format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
  title="DevBoard API",
  version="0.1.0",
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)


def _error(kind: ErrorKind, message: str) -> JSONResponse:
  return JSONResponse(status_code=status_for(kind), content={"detail": message})


@app.exception_handler(DevBoardError)
async def _devboard_error_handler(_, exc: DevBoardError) -> JSONResponse:
  if exc.kind in (ErrorKind.CONFIGURATION, ErrorKind.INTERNAL):
    logger.error("%s error: %s", exc.kind.value, exc.message)
  return _error(exc.kind, exc.message)


@app.exception_handler(IntegrationSecretDecryptError)
async def _integration_secret_error_handler(_, exc: IntegrationSecretDecryptError) -> JSONResponse:
  return _error(ErrorKind.PRECONDITION, str(exc))


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(_, exc: RequestValidationError) -> JSONResponse:
  messages: list[str] = []
  for err in exc.errors():
    msg = str(err.get("msg") or "").removeprefix("Value error, ")
    loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
    text = f"{loc}: {msg}" if loc else msg
    if text not in messages:
      messages.append(text)
  return _error(ErrorKind.VALIDATION, "; ".join(messages) or "Invalid request.")


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
  logger.error("Unhandled server exception on %s %s.", request.method, request.url.path, exc_info=exc)
  return _error(ErrorKind.INTERNAL, UNEXPECTED_ERROR_MESSAGE)


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(projects_router)
app.include_router(tasks_router)
app.include_router(webhooks_router)


@app.middleware("http")
async def _request_metrics_middleware(request, call_next):
  start = monotonic()
  response = await call_next(request)
  elapsed_ms = (monotonic() - start) * 1000.0
  runtime_metrics.observe_request(response.status_code, elapsed_ms)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


@app.get("/system/metrics")
async def metrics() -> dict:
  return runtime_metrics.snapshot()


_prune_loop_task: asyncio.Task | None = None


async def _delivery_prune_loop(retention_days: int) -> None:
  while True:
    async with SessionLocal() as db:
      try:
        await prune_deliveries(db, older_than=utcnow() - timedelta(days=retention_days))
      except Exception:
        # Retried on the next tick.
        logger.exception("Webhook delivery pruning failed.")
    await asyncio.sleep(max(60, int(settings.webhook_delivery_prune_interval_seconds)))


@app.on_event("startup")
async def _startup() -> None:
  global _prune_loop_task
  if not settings.fernet_key or settings.fernet_key.strip() in PLACEHOLDER_FERNET_KEYS:
    raise RuntimeError("FERNET_KEY is required and must not be a placeholder")
  if not settings.github_webhook_secret:
    logger.warning("GITHUB_WEBHOOK_SECRET is not set; GitHub webhook deliveries will be rejected.")
  retention = settings.webhook_delivery_retention_days
  if retention and retention > 0 and _prune_loop_task is None:
    _prune_loop_task = asyncio.create_task(_delivery_prune_loop(retention))


@app.on_event("shutdown")
async def _shutdown() -> None:
  global _prune_loop_task
  if _prune_loop_task is not None:
    _prune_loop_task.cancel()
    try:
      await _prune_loop_task
    except asyncio.CancelledError:
      pass
    _prune_loop_task = None
