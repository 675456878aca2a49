"""
HTTP trigger for the daily alert job.

GET /api/cron/check-deadlines is called once a day by an external
scheduler. When CRON_SECRET is configured the caller must send
``Authorization: Bearer <CRON_SECRET>``; without it the endpoint is open.
"""

from __future__ import annotations

import hmac
import logging
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, status
from fastapi.responses import JSONResponse

from tax_calendar.config import Settings, get_settings
from tax_calendar.logging_config import setup_logging
from tax_calendar.notifications import ConsoleSender, ResendEmailSender
from tax_calendar.scheduler import AlertScheduler
from tax_calendar.store import ClientStoreError, JsonFileClientStore

logger = logging.getLogger("tax_calendar.api")

router = APIRouter()


def build_scheduler(settings: Settings) -> AlertScheduler:
    if settings.DRY_RUN or not settings.RESEND_API_KEY:
        sender = ConsoleSender()
    else:
        sender = ResendEmailSender(
            api_key=settings.RESEND_API_KEY,
            from_email=settings.RESEND_FROM_EMAIL,
            base_url=settings.RESEND_BASE_URL,
            timeout=settings.DISPATCH_TIMEOUT_SECONDS,
        )
    return AlertScheduler(
        store=JsonFileClientStore(settings.CLIENTS_FILE),
        sender=sender,
        horizon_days=settings.UPCOMING_HORIZON_DAYS,
        dispatch_timeout=settings.DISPATCH_TIMEOUT_SECONDS,
        tz=settings.TIMEZONE,
    )


def get_scheduler(settings: Settings = Depends(get_settings)) -> Iterator[AlertScheduler]:
    scheduler = build_scheduler(settings)
    try:
        yield scheduler
    finally:
        close = getattr(scheduler.sender, "close", None)
        if close is not None:
            close()


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    secret = settings.CRON_SECRET
    if not secret:
        return

    expected = f"Bearer {secret}".encode()
    if not authorization or not hmac.compare_digest(authorization.encode(), expected):
        logger.warning("Rejected cron trigger with missing or invalid bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )


@router.get("/api/cron/check-deadlines", dependencies=[Depends(verify_cron_secret)])
def check_deadlines(scheduler: AlertScheduler = Depends(get_scheduler)):
    try:
        run = scheduler.run()
    except ClientStoreError as exc:
        logger.error("Deadline check aborted: %s", exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": str(exc)},
        )
    except Exception:
        logger.exception("Deadline check failed")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal error while checking deadlines"},
        )
    return run.summary()


@router.get("/health")
def health():
    return {"status": "ok"}


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the app; explicit settings replace the environment-derived ones."""
    if settings is None:
        settings = get_settings()
    setup_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME)
    app.include_router(router)
    app.dependency_overrides[get_settings] = lambda: settings
    return app
