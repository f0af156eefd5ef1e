from bulletin.models.announcement import Announcement, Attachment, Category, Audience
from bulletin.models.upload_log import UploadLog

__all__ = ["Announcement", "Attachment", "Category", "Audience", "UploadLog"]
