"""
Attachment files of announcements, stored flat under one upload root.

Removal is best-effort: a bad name or a missing file is a warning, never an
error, so the database record can always follow the author's intent.
"""
import enum
import logging
import re
from datetime import datetime
from pathlib import Path, PurePosixPath

from fastapi import UploadFile

from bulletin.config import get_settings
from bulletin.models.announcement import Attachment
from bulletin.services.file_upload import StoredUpload, save_uploads, upload_dir, validate_uploads

logger = logging.getLogger(__name__)

SAFE_FILENAME = re.compile(r"^[A-Za-z0-9._-]+$")


class RemovalOutcome(str, enum.Enum):
    OK = "ok"
    WARNING = "warning"


class AttachmentStore:
    def __init__(
        self,
        root: Path,
        url_prefix: str = "/uploads",
        max_files: int = 5,
        max_size: int = 10 * 1024 * 1024,
    ):
        self.root = Path(root).resolve()
        self.url_prefix = url_prefix.rstrip("/")
        self.max_files = max_files
        self.max_size = max_size

    # ---- Ingest ----

    def validate(self, files: list[UploadFile]) -> None:
        validate_uploads(files, self.max_files, self.max_size)

    def save(self, files: list[UploadFile]) -> list[StoredUpload]:
        return save_uploads(files, self.root, self.max_size)

    def ingest(self, uploads: list[StoredUpload]) -> list[Attachment]:
        """Attachment records for files already stored under root. Not bound to any announcement."""
        now = datetime.utcnow()
        return [
            Attachment(
                file_name=u.original_name,
                file_url=f"{self.url_prefix}/{u.stored_name}",
                file_size=u.size,
                file_type=u.mime_type,
                uploaded_at=now,
            )
            for u in uploads
        ]

    # ---- Remove ----

    def resolve(self, file_url: str) -> Path | None:
        """Absolute path of a stored file, or None if the name is unsafe or escapes root."""
        filename = PurePosixPath(file_url or "").name
        if not filename or not SAFE_FILENAME.match(filename) or filename in (".", ".."):
            return None
        path = (self.root / filename).resolve()
        try:
            path.relative_to(self.root)
        except ValueError:
            return None
        if path == self.root:
            return None
        return path

    def remove(self, attachment: Attachment) -> RemovalOutcome:
        path = self.resolve(attachment.file_url)
        if path is None:
            logger.warning("Skipping removal of attachment %s: unsafe file name", attachment.id)
            return RemovalOutcome.WARNING
        try:
            path.unlink()
        except FileNotFoundError:
            logger.warning("Attachment file already absent: %s", path.name)
            return RemovalOutcome.WARNING
        except OSError as e:
            logger.warning("Could not remove attachment file %s: %s", path.name, e)
            return RemovalOutcome.WARNING
        return RemovalOutcome.OK

    def remove_all(self, attachments: list[Attachment]) -> list[RemovalOutcome]:
        return [self.remove(a) for a in attachments]

    # ---- Merge ----

    @staticmethod
    def merge_unique(
        existing: list[Attachment], incoming: list[Attachment]
    ) -> tuple[list[Attachment], list[Attachment]]:
        """
        Split incoming into (kept, dropped). An incoming attachment is dropped when
        its file_name is already in existing or earlier in incoming.
        """
        seen = {a.file_name for a in existing}
        kept: list[Attachment] = []
        dropped: list[Attachment] = []
        for att in incoming:
            if att.file_name in seen:
                dropped.append(att)
                continue
            seen.add(att.file_name)
            kept.append(att)
        return kept, dropped


def get_attachment_store() -> AttachmentStore:
    """FastAPI dependency; overridden in tests."""
    settings = get_settings()
    return AttachmentStore(
        upload_dir(),
        url_prefix=settings.upload_url_prefix,
        max_files=settings.max_files_per_request,
        max_size=settings.max_upload_size_bytes,
    )
