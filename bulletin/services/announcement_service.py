"""
Announcement lifecycle: create, update, regenerate image, attach, detach, delete.

- Only teachers mutate, and only their own announcements (author_id is set once from the caller).
- Every field is validated before any side effect (AI call, file write, DB write).
- Summary/image are regenerated only when the fields they derive from change.
- Files are removed before the DB splice, so a failure leaves an orphan file, never a dangling reference.
"""
import logging

from fastapi import UploadFile
from sqlalchemy.orm import Session

from bulletin.errors import AuthorizationError, NotFoundError, ValidationError
from bulletin.models.announcement import Announcement, Attachment, Audience, Category
from bulletin.repositories import announcement_repository
from bulletin.repositories.announcement_repository import require_valid_id
from bulletin.schemas.announcement import AnnouncementForm
from bulletin.schemas.auth import CallerIdentity
from bulletin.services.attachment_store import AttachmentStore
from bulletin.services.content_generator import ContentGenerator
from bulletin.services.validation import (
    parse_staff,
    parse_students,
    parse_tags,
    validate_audience,
    validate_category,
    validate_description,
    validate_manual_summary,
    validate_title,
)

logger = logging.getLogger(__name__)


def _given(value) -> bool:
    """Form semantics: a missing or empty field leaves the stored value unchanged."""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return True


class AnnouncementService:
    """Orchestrates ContentGenerator, AttachmentStore and the repository for one request."""

    def __init__(
        self,
        content_generator: ContentGenerator,
        attachment_store: AttachmentStore,
    ):
        self._generator = content_generator
        self._store = attachment_store

    # ---------- Reads (public) ----------

    def list_announcements(
        self, db: Session, author_id: str | None = None, category: str | None = None
    ) -> list[Announcement]:
        if category:
            category = validate_category(category)
        return announcement_repository.find_all(db, author_id=author_id or None, category=category)

    def get(self, db: Session, announcement_id: str) -> Announcement:
        item = announcement_repository.find_by_id(db, announcement_id)
        if item is None:
            raise NotFoundError("Announcement not found")
        return item

    # ---------- Create ----------

    def create(
        self,
        db: Session,
        caller: CallerIdentity,
        form: AnnouncementForm,
        files: list[UploadFile] | None = None,
    ) -> Announcement:
        self._require_teacher(caller)
        files = files or []

        if not _given(form.title) or not _given(form.description):
            raise ValidationError("Title and description are required", "MISSING_FIELDS")
        title = validate_title(form.title.strip())
        description = validate_description(form.description.strip())
        tags = parse_tags(form.tags) if _given(form.tags) else []
        students = parse_students(form.students) if _given(form.students) else []
        staff = parse_staff(form.staff) if _given(form.staff) else []
        category = validate_category(form.category) if _given(form.category) else Category.ALL.value
        audience = validate_audience(form.audience) if _given(form.audience) else Audience.BOTH.value
        manual_summary = validate_manual_summary(form.summary) if _given(form.summary) else None
        self._store.validate(files)

        summary = manual_summary or self._generator.summarize(description)
        image_url = self._generator.render_image(title, tags)
        attachments = self._ingest(files, existing=[])

        item = Announcement(
            title=title,
            original_description=description,
            summary=summary,
            image_url=image_url,
            tags=tags,
            category=category,
            audience=audience,
            students=students,
            staff=staff,
            author_id=caller.id,
        )
        for attachment in attachments:
            item.attachments.append(attachment)
        item = self._commit(db, item, attachments, insert=True)
        logger.info("Announcement %s created by %s (%d attachments)", item.id, caller.id, len(attachments))
        return item

    # ---------- Update ----------

    def update(
        self,
        db: Session,
        caller: CallerIdentity,
        announcement_id: str,
        form: AnnouncementForm,
        files: list[UploadFile] | None = None,
    ) -> Announcement:
        item = self._load_owned(db, caller, announcement_id, "edit")
        files = files or []

        title = validate_title(form.title.strip()) if _given(form.title) else item.title
        description = (
            validate_description(form.description.strip())
            if _given(form.description)
            else item.original_description
        )
        stored_tags = list(item.tags or [])
        tags = parse_tags(form.tags) if _given(form.tags) else stored_tags
        students = parse_students(form.students) if _given(form.students) else item.students
        staff = parse_staff(form.staff) if _given(form.staff) else item.staff
        category = validate_category(form.category) if _given(form.category) else item.category
        audience = validate_audience(form.audience) if _given(form.audience) else item.audience
        manual_summary = validate_manual_summary(form.summary) if _given(form.summary) else None
        wants_regenerated_summary = form.summary is not None and not _given(form.summary)
        self._store.validate(files)

        summary = self._next_summary(item, description, manual_summary, wants_regenerated_summary)
        # Tags compare as ordered lists: a reordering counts as a change
        if title != item.title or tags != stored_tags:
            image_url = self._generator.render_image(title, tags)
        else:
            image_url = item.image_url
        new_attachments = self._ingest(files, existing=list(item.attachments))

        item.title = title
        item.original_description = description
        item.summary = summary
        item.image_url = image_url
        item.tags = tags
        item.students = students
        item.staff = staff
        item.category = category
        item.audience = audience
        for attachment in new_attachments:
            item.attachments.append(attachment)
        item = self._commit(db, item, new_attachments)
        logger.info("Announcement %s updated by %s", item.id, caller.id)
        return item

    def _next_summary(
        self,
        item: Announcement,
        description: str,
        manual_summary: str | None,
        wants_regenerated_summary: bool,
    ) -> str:
        """
        Precedence: a differing manual summary wins; a manual summary equal to the
        stored one keeps it; else a changed description regenerates; else an empty
        manual summary regenerates; else keep.
        """
        if manual_summary is not None:
            return manual_summary
        if description != item.original_description:
            return self._generator.summarize(description)
        if wants_regenerated_summary:
            return self._generator.summarize(description)
        return item.summary

    # ---------- Image ----------

    def regenerate_image(
        self,
        db: Session,
        caller: CallerIdentity,
        announcement_id: str,
        custom_image_url: str | None = None,
    ) -> Announcement:
        item = self._load_owned(db, caller, announcement_id, "modify")
        custom = (custom_image_url or "").strip()
        if custom:
            item.image_url = custom
        else:
            item.image_url = self._generator.render_image(item.title, list(item.tags or []))
        return announcement_repository.replace(db, item)

    # ---------- Attachments ----------

    def upload_attachments(
        self,
        db: Session,
        caller: CallerIdentity,
        announcement_id: str,
        files: list[UploadFile] | None,
    ) -> tuple[list[Attachment], Announcement]:
        """Returns (attachments actually added, announcement)."""
        self._require_teacher(caller)
        if not files:
            raise ValidationError("No files provided", "NO_FILES")
        item = self._load_owned(db, caller, announcement_id, "upload files to")
        self._store.validate(files)

        new_attachments = self._ingest(files, existing=list(item.attachments))
        for attachment in new_attachments:
            item.attachments.append(attachment)
        item = self._commit(db, item, new_attachments)
        logger.info("Announcement %s: %d attachments added", item.id, len(new_attachments))
        return new_attachments, item

    def delete_attachment(
        self,
        db: Session,
        caller: CallerIdentity,
        announcement_id: str,
        attachment_id: str,
    ) -> Announcement:
        require_valid_id(attachment_id, label="attachment ID")
        item = self._load_owned(db, caller, announcement_id, "delete attachments from")
        attachment = next((a for a in item.attachments if a.id == attachment_id), None)
        if attachment is None:
            raise NotFoundError("Attachment not found", "ATTACHMENT_NOT_FOUND")

        self._store.remove(attachment)
        item.attachments.remove(attachment)
        return announcement_repository.replace(db, item)

    # ---------- Delete ----------

    def delete(self, db: Session, caller: CallerIdentity, announcement_id: str) -> None:
        item = self._load_owned(db, caller, announcement_id, "delete")
        self._store.remove_all(list(item.attachments))
        announcement_repository.delete(db, item.id)
        logger.info("Announcement %s deleted by %s", announcement_id, caller.id)

    # ---------- Helpers ----------

    @staticmethod
    def _require_teacher(caller: CallerIdentity) -> None:
        if not caller.is_teacher:
            raise AuthorizationError("You do not have permission to perform this action")

    def _load_owned(
        self, db: Session, caller: CallerIdentity, announcement_id: str, action: str
    ) -> Announcement:
        self._require_teacher(caller)
        item = announcement_repository.find_by_id(db, announcement_id)
        if item is None:
            raise NotFoundError("Announcement not found")
        if item.author_id != caller.id:
            raise AuthorizationError(f"You are not authorized to {action} this announcement")
        return item

    def _ingest(self, files: list[UploadFile], existing: list[Attachment]) -> list[Attachment]:
        """Store files and return records for names not already present; duplicates are discarded."""
        if not files:
            return []
        incoming = self._store.ingest(self._store.save(files))
        kept, dropped = self._store.merge_unique(existing, incoming)
        for duplicate in dropped:
            self._store.remove(duplicate)
        return kept

    def _commit(
        self,
        db: Session,
        item: Announcement,
        new_attachments: list[Attachment],
        insert: bool = False,
    ) -> Announcement:
        try:
            if insert:
                return announcement_repository.insert(db, item)
            return announcement_repository.replace(db, item)
        except Exception:
            db.rollback()
            self._store.remove_all(new_attachments)
            raise
