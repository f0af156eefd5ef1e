"""
Sliding-window rate limit for attachment uploads.
- Default: 5 upload requests per caller per 15 minutes.
"""
from datetime import datetime, timedelta
from sqlalchemy import func
from sqlalchemy.orm import Session

from bulletin.config import get_settings
from bulletin.errors import RateLimitError
from bulletin.models.upload_log import UploadLog


def _window_start(minutes: int) -> datetime:
    return datetime.utcnow() - timedelta(minutes=minutes)


def count_uploads_in_window(db: Session, user_id: str, minutes: int) -> int:
    return db.query(func.count(UploadLog.id)).filter(
        UploadLog.user_id == user_id,
        UploadLog.created_at >= _window_start(minutes),
    ).scalar() or 0


def check_upload_limit(db: Session, user_id: str) -> tuple[bool, str]:
    """
    Returns (allowed, error_message).
    If allowed, error_message is empty.
    """
    settings = get_settings()
    count = count_uploads_in_window(db, user_id, settings.upload_rate_limit_window_minutes)
    if count >= settings.upload_rate_limit_max:
        return False, (
            "Too many upload requests. Please try again in "
            f"{settings.upload_rate_limit_window_minutes} minutes."
        )
    return True, ""


def log_upload(db: Session, user_id: str, announcement_id: str | None = None) -> None:
    db.add(UploadLog(user_id=user_id, announcement_id=announcement_id))
    db.commit()


def enforce_upload_limit(db: Session, user_id: str, announcement_id: str | None = None) -> None:
    """Reject with 429 when the window is full; otherwise record this request."""
    allowed, err = check_upload_limit(db, user_id)
    if not allowed:
        raise RateLimitError(err)
    log_upload(db, user_id, announcement_id)
