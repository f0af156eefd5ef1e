"""
Announcement persistence. All operations are sync (used from the service in a worker thread).
Identifiers are UUID strings; a malformed one is a client error (400), not a miss.
Writes are last-writer-wins: no version check on replace.
"""
import uuid
from sqlalchemy import desc
from sqlalchemy.orm import Session, selectinload

from bulletin.errors import ValidationError
from bulletin.models.announcement import Announcement, Category


def is_valid_id(value: str | None) -> bool:
    if not value or not isinstance(value, str):
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def require_valid_id(value: str | None, code: str = "INVALID_ID", label: str = "announcement ID") -> str:
    if not is_valid_id(value):
        raise ValidationError(f"Invalid {label} format", code)
    return value


def find_all(
    db: Session,
    author_id: str | None = None,
    category: str | None = None,
) -> list[Announcement]:
    """Newest first. category "All" (or None) means no category filter."""
    query = db.query(Announcement).options(selectinload(Announcement.attachments))
    if author_id:
        require_valid_id(author_id, "INVALID_AUTHOR_ID", "author ID")
        query = query.filter(Announcement.author_id == author_id)
    if category and category != Category.ALL.value:
        query = query.filter(Announcement.category == category)
    return query.order_by(desc(Announcement.created_at), desc(Announcement.id)).all()


def find_by_id(db: Session, announcement_id: str) -> Announcement | None:
    require_valid_id(announcement_id)
    return db.query(Announcement).filter(Announcement.id == announcement_id).first()


def insert(db: Session, announcement: Announcement) -> Announcement:
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return announcement


def replace(db: Session, announcement: Announcement) -> Announcement:
    """Commit the full, already-mutated record."""
    db.add(announcement)
    db.commit()
    db.refresh(announcement)
    return announcement


def delete(db: Session, announcement_id: str) -> bool:
    """True if a record was deleted, False if none existed."""
    item = find_by_id(db, announcement_id)
    if item is None:
        return False
    db.delete(item)
    db.commit()
    return True
