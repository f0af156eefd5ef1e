"""Attachment upload requests per caller, for rate limiting."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from bulletin.database import Base


class UploadLog(Base):
    __tablename__ = "upload_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(36), nullable=False, index=True)
    announcement_id = Column(String(36), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
