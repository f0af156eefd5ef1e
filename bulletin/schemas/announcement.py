from datetime import datetime
from typing import Any
from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """JSON uses camelCase (originalDescription, imageUrl, ...); Python uses snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# ---- Recipients ----

class StudentRecipient(CamelModel):
    name: str = ""
    reg_id: str = ""
    email: str = ""


class StaffRecipient(CamelModel):
    name: str = ""
    staff_id: str = ""
    email: str = ""


# ---- Input ----

class AnnouncementForm(BaseModel):
    """
    Raw fields of a create/update request, as they arrive in multipart form data.
    tags/students/staff may be JSON-encoded strings or already-decoded lists.
    None means "not sent"; an empty string summary means "regenerate".
    """
    title: str | None = None
    description: str | None = None
    summary: str | None = None
    tags: Any = None
    category: str | None = None
    audience: str | None = None
    students: Any = None
    staff: Any = None

    @classmethod
    def from_form(cls, form) -> "AnnouncementForm":
        # authorId is never read from the client
        return cls(**{name: form.get(name) for name in cls.model_fields if form.get(name) is not None})


class RegenerateImageRequest(CamelModel):
    custom_image_url: str | None = None


# ---- Output ----

class AttachmentOut(CamelModel):
    id: str
    file_name: str
    file_url: str
    file_size: int | None = None
    file_type: str | None = None
    uploaded_at: datetime


class AnnouncementOut(CamelModel):
    id: str
    title: str
    original_description: str
    summary: str
    image_url: str
    tags: list[str] = Field(default_factory=list)
    category: str
    audience: str
    students: list[StudentRecipient] = Field(default_factory=list)
    staff: list[StaffRecipient] = Field(default_factory=list)
    attachments: list[AttachmentOut] = Field(default_factory=list)
    author_id: str
    created_at: datetime


class AnnouncementListResponse(BaseModel):
    success: bool = True
    data: list[AnnouncementOut]


class AnnouncementResponse(BaseModel):
    success: bool = True
    data: AnnouncementOut


class AnnouncementMessageResponse(BaseModel):
    success: bool = True
    message: str
    data: AnnouncementOut


class UploadResult(BaseModel):
    attachments: list[AttachmentOut]
    announcement: AnnouncementOut


class UploadResponse(BaseModel):
    success: bool = True
    message: str
    data: UploadResult


class MessageResponse(BaseModel):
    success: bool = True
    message: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
