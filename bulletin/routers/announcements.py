"""
Announcement endpoints:
- GET    /api/announcements                                 list (public; ?authorId, ?category)
- GET    /api/announcements/{id}                            one announcement (public)
- POST   /api/announcements                                 create (teacher; multipart, files)
- PUT    /api/announcements/{id}                            partial update (owner; multipart, files)
- POST   /api/announcements/{id}/regenerate-image           new cover image or custom URL (owner)
- POST   /api/announcements/{id}/upload                     add attachments (owner; rate limited)
- DELETE /api/announcements/{id}/attachment/{attachmentId}  remove one attachment (owner)
- DELETE /api/announcements/{id}                            delete with attachment files (owner)
"""
import asyncio
import json
import logging
from fastapi import APIRouter, Body, Depends, Query, Request, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile as StarletteUploadFile

from bulletin.auth import require_teacher
from bulletin.database import get_db
from bulletin.errors import ValidationError
from bulletin.models.announcement import Announcement, Attachment
from bulletin.repositories.announcement_repository import is_valid_id
from bulletin.schemas.announcement import (
    AnnouncementForm,
    AnnouncementListResponse,
    AnnouncementMessageResponse,
    AnnouncementOut,
    AnnouncementResponse,
    AttachmentOut,
    MessageResponse,
    RegenerateImageRequest,
    UploadResponse,
    UploadResult,
)
from bulletin.schemas.auth import CallerIdentity
from bulletin.services.announcement_service import AnnouncementService
from bulletin.services.attachment_store import AttachmentStore, get_attachment_store
from bulletin.services.content_generator import ContentGenerator, get_content_generator
from bulletin.services.upload_rate_limiter import enforce_upload_limit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/announcements", tags=["announcements"])

FILE_FIELDS = ("files", "files[]")


# ---------- Dependencies ----------


def _get_announcement_service_dep(
    generator: ContentGenerator = Depends(get_content_generator),
    store: AttachmentStore = Depends(get_attachment_store),
) -> AnnouncementService:
    return AnnouncementService(content_generator=generator, attachment_store=store)


def _upload_rate_limit_dep(
    announcement_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_teacher),
) -> CallerIdentity:
    """5 upload requests per caller per window; counted before the request is processed."""
    enforce_upload_limit(db, caller.id, announcement_id if is_valid_id(announcement_id) else None)
    return caller


# ---------- Helpers ----------


def _attachment_out(a: Attachment) -> AttachmentOut:
    return AttachmentOut(
        id=a.id,
        file_name=a.file_name,
        file_url=a.file_url,
        file_size=a.file_size,
        file_type=a.file_type,
        uploaded_at=a.uploaded_at,
    )


def _announcement_out(x: Announcement) -> AnnouncementOut:
    return AnnouncementOut(
        id=x.id,
        title=x.title,
        original_description=x.original_description,
        summary=x.summary,
        image_url=x.image_url,
        tags=list(x.tags or []),
        category=x.category,
        audience=x.audience,
        students=list(x.students or []),
        staff=list(x.staff or []),
        attachments=[_attachment_out(a) for a in x.attachments],
        author_id=x.author_id,
        created_at=x.created_at,
    )


async def _read_request(request: Request) -> tuple[AnnouncementForm, list[StarletteUploadFile]]:
    """Multipart (or JSON) body -> raw form fields + uploaded files. Empty strings are kept."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            body = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationError("Request body is not valid JSON", "JSON_PARSE_ERROR")
        if not isinstance(body, dict):
            raise ValidationError("Request body must be an object", "INVALID_INPUT")
        try:
            return AnnouncementForm.from_form(body), []
        except PydanticValidationError:
            raise ValidationError("Invalid input format detected", "INVALID_INPUT")

    form = await request.form()
    files = [
        f
        for field in FILE_FIELDS
        for f in form.getlist(field)
        if isinstance(f, StarletteUploadFile) and f.filename
    ]
    fields = {k: v for k, v in form.items() if not isinstance(v, StarletteUploadFile)}
    return AnnouncementForm.from_form(fields), files


# ---------- Reads ----------


@router.get("", response_model=AnnouncementListResponse)
def list_announcements(
    author_id: str | None = Query(None, alias="authorId"),
    category: str | None = Query(None),
    db: Session = Depends(get_db),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    items = service.list_announcements(db, author_id=author_id, category=category)
    return AnnouncementListResponse(data=[_announcement_out(x) for x in items])


@router.get("/{announcement_id}", response_model=AnnouncementResponse)
def get_announcement(
    announcement_id: str,
    db: Session = Depends(get_db),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    return AnnouncementResponse(data=_announcement_out(service.get(db, announcement_id)))


# ---------- Mutations (teacher only) ----------


@router.post("", response_model=AnnouncementResponse, status_code=status.HTTP_201_CREATED)
async def create_announcement(
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_teacher),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    form, files = await _read_request(request)
    loop = asyncio.get_event_loop()
    item = await loop.run_in_executor(None, lambda: service.create(db, caller, form, files))
    return AnnouncementResponse(data=_announcement_out(item))


@router.put("/{announcement_id}", response_model=AnnouncementResponse)
async def update_announcement(
    announcement_id: str,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_teacher),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    form, files = await _read_request(request)
    loop = asyncio.get_event_loop()
    item = await loop.run_in_executor(
        None, lambda: service.update(db, caller, announcement_id, form, files)
    )
    return AnnouncementResponse(data=_announcement_out(item))


@router.post("/{announcement_id}/regenerate-image", response_model=AnnouncementResponse)
def regenerate_image(
    announcement_id: str,
    body: RegenerateImageRequest | None = Body(None),
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_teacher),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    custom = body.custom_image_url if body else None
    item = service.regenerate_image(db, caller, announcement_id, custom)
    return AnnouncementResponse(data=_announcement_out(item))


@router.post("/{announcement_id}/upload", response_model=UploadResponse)
async def upload_attachments(
    announcement_id: str,
    request: Request,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(_upload_rate_limit_dep),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    _, files = await _read_request(request)
    loop = asyncio.get_event_loop()
    added, item = await loop.run_in_executor(
        None, lambda: service.upload_attachments(db, caller, announcement_id, files)
    )
    return UploadResponse(
        message="Files uploaded successfully",
        data=UploadResult(
            attachments=[_attachment_out(a) for a in added],
            announcement=_announcement_out(item),
        ),
    )


@router.delete(
    "/{announcement_id}/attachment/{attachment_id}",
    response_model=AnnouncementMessageResponse,
)
def delete_attachment(
    announcement_id: str,
    attachment_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_teacher),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    item = service.delete_attachment(db, caller, announcement_id, attachment_id)
    return AnnouncementMessageResponse(message="Attachment deleted", data=_announcement_out(item))


@router.delete("/{announcement_id}", response_model=MessageResponse)
def delete_announcement(
    announcement_id: str,
    db: Session = Depends(get_db),
    caller: CallerIdentity = Depends(require_teacher),
    service: AnnouncementService = Depends(_get_announcement_service_dep),
):
    service.delete(db, caller, announcement_id)
    return MessageResponse(message="Announcement deleted successfully")
