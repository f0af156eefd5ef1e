"""Upload policy and storage of multipart files under the attachment root."""
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from fastapi import UploadFile
from bulletin.config import get_settings
from bulletin.errors import ValidationError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024  # 1 MB

# MIME type -> extension used for the stored name
ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-powerpoint": ".ppt",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ".pptx",
    "text/plain": ".txt",
    "text/csv": ".csv",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}


@dataclass
class StoredUpload:
    """A file already written under the upload root."""
    original_name: str
    stored_name: str
    size: int
    mime_type: str


def upload_dir() -> Path:
    settings = get_settings()
    if settings.upload_dir:
        return Path(settings.upload_dir)
    return Path(__file__).resolve().parent.parent.parent / "uploads"


def _content_type(file: UploadFile) -> str:
    return (file.content_type or "").split(";")[0].strip().lower()


def _stored_name(content_type: str) -> str:
    return f"{uuid.uuid4().hex}{ALLOWED_CONTENT_TYPES[content_type]}"


def validate_uploads(files: list[UploadFile], max_files: int, max_size: int) -> None:
    """Check the whole batch before anything is written."""
    if len(files) > max_files:
        raise ValidationError(f"Maximum {max_files} files per request", "TOO_MANY_FILES")
    for file in files:
        if not file.filename:
            raise ValidationError("Uploaded file has no name", "INVALID_FILE")
        if _content_type(file) not in ALLOWED_CONTENT_TYPES:
            raise ValidationError(
                f"File type not allowed: {file.filename}",
                "UNSUPPORTED_FILE_TYPE",
            )
        if file.size is not None and file.size > max_size:
            raise ValidationError(f"File too large: {file.filename}", "FILE_TOO_LARGE")


def save_uploads(files: list[UploadFile], root: Path, max_size: int) -> list[StoredUpload]:
    """
    Write each file under root with a generated name. If any file fails, the
    files already written by this call are removed and the error propagates.
    """
    root.mkdir(parents=True, exist_ok=True)
    stored: list[StoredUpload] = []
    try:
        for file in files:
            stored.append(_save_one(file, root, max_size))
    except Exception:
        for item in stored:
            (root / item.stored_name).unlink(missing_ok=True)
        raise
    return stored


def _save_one(file: UploadFile, root: Path, max_size: int) -> StoredUpload:
    content_type = _content_type(file)
    name = _stored_name(content_type)
    path = root / name
    size = 0
    try:
        with path.open("wb") as f:
            while chunk := file.file.read(CHUNK_SIZE):
                size += len(chunk)
                if size > max_size:
                    raise ValidationError(f"File too large: {file.filename}", "FILE_TOO_LARGE")
                f.write(chunk)
    except Exception:
        path.unlink(missing_ok=True)
        raise
    logger.info("Stored upload %s (%d bytes)", name, size)
    return StoredUpload(
        original_name=Path(file.filename).name,
        stored_name=name,
        size=size,
        mime_type=content_type,
    )
