import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Text, Integer, DateTime, ForeignKey, JSON, Index
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship
from bulletin.database import Base


class Category(str, enum.Enum):
    ALL = "All"
    ACADEMIC = "Academic"
    ADMINISTRATIVE = "Administrative/Misc"
    SPORTS_CULTURAL = "Sports/Cultural"
    CO_CURRICULAR = "Co-curricular/Sports/Cultural"
    PLACEMENT = "Placement"
    BENEFITS = "Benefits"
    COMPETITIONS = "Competitions"


class Audience(str, enum.Enum):
    FACULTY = "Faculty"
    STUDENTS = "Students"
    BOTH = "Both"


class Announcement(Base):
    __tablename__ = "announcements"
    __table_args__ = (
        Index("ix_announcements_author_created", "author_id", "created_at"),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(200), nullable=False)
    original_description = Column(Text, nullable=False)
    summary = Column(Text, nullable=False)      # author-supplied or generated, <= 60 words
    image_url = Column(String(1024), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    category = Column(String(40), nullable=False, default=Category.ALL.value, index=True)
    audience = Column(String(20), nullable=False, default=Audience.BOTH.value)
    students = Column(JSON, nullable=False, default=list)  # [{"name", "regId", "email"}]
    staff = Column(JSON, nullable=False, default=list)     # [{"name", "staffId", "email"}]
    author_id = Column(String(36), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    attachments = relationship(
        "Attachment",
        back_populates="announcement",
        cascade="all, delete-orphan",
        order_by="Attachment.position",
        collection_class=ordering_list("position"),
    )


class Attachment(Base):
    __tablename__ = "announcement_attachments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    announcement_id = Column(
        String(36),
        ForeignKey("announcements.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position = Column(Integer, nullable=False, default=0)
    file_name = Column(String(255), nullable=False)   # original filename for display
    file_url = Column(String(512), nullable=False)    # /uploads/<stored name>
    file_size = Column(Integer, nullable=True)        # bytes
    file_type = Column(String(127), nullable=True)    # MIME type
    uploaded_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    announcement = relationship("Announcement", back_populates="attachments")
