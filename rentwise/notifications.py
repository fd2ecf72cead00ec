# Transient user-facing notifications ("toasts") attached to mutation responses.
# Every notification is also logged so failures surfaced to users show up in server logs.
from __future__ import annotations

import logging
from typing import NoReturn

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from .schemas import Notification

logger = logging.getLogger("rentwise.notify")


def notify_success(text: str) -> Notification:
    logger.info("notify.success", extra={"text": text})
    return Notification(level="success", text=text)


def notify_error(text: str) -> Notification:
    logger.info("notify.error", extra={"text": text})
    return Notification(level="error", text=text)


def backend_failure(db: Session, exc: Exception, text: str, *, event: str) -> NoReturn:
    """
    Roll back the request's transaction, log the cause, and raise a 500 whose
    detail is a single error notification.

    Nothing written during the failed request survives the rollback, so a
    client refetch shows the last committed state.
    """
    db.rollback()
    logger.error("%s.failed: %s", event, exc, exc_info=exc)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=notify_error(text).model_dump(),
    ) from exc
