"""
Shared fixtures: in-memory SQLite, a temporary upload root, and a recording
content generator injected through FastAPI dependency overrides.
"""
import io

import pytest
from fastapi import UploadFile
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.datastructures import Headers

import bulletin.models  # noqa: F401 - register tables
from bulletin.auth import create_access_token
from bulletin.database import Base, get_db
from bulletin.main import app
from bulletin.schemas.auth import CallerIdentity
from bulletin.services.announcement_service import AnnouncementService
from bulletin.services.attachment_store import AttachmentStore, get_attachment_store
from bulletin.services.content_generator import get_content_generator

TEACHER_ID = "11111111-1111-4111-8111-111111111111"
OTHER_TEACHER_ID = "22222222-2222-4222-8222-222222222222"
STUDENT_ID = "33333333-3333-4333-8333-333333333333"


class RecordingGenerator:
    """Deterministic stand-in for ContentGenerator that counts calls."""

    def __init__(self):
        self.summary_calls: list[str] = []
        self.image_calls: list[tuple[str, list[str]]] = []

    def summarize(self, text: str) -> str:
        self.summary_calls.append(text)
        return f"Generated summary {len(self.summary_calls)}"

    def render_image(self, title: str, tags: list[str]) -> str:
        self.image_calls.append((title, list(tags)))
        return f"https://images.example.com/{len(self.image_calls)}.jpg"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def upload_root(tmp_path):
    root = tmp_path / "uploads"
    root.mkdir()
    return root


@pytest.fixture
def store(upload_root):
    return AttachmentStore(upload_root, url_prefix="/uploads", max_files=5, max_size=1024 * 1024)


@pytest.fixture
def generator():
    return RecordingGenerator()


@pytest.fixture
def service(generator, store):
    return AnnouncementService(content_generator=generator, attachment_store=store)


@pytest.fixture
def teacher():
    return CallerIdentity(id=TEACHER_ID, role="teacher")


@pytest.fixture
def other_teacher():
    return CallerIdentity(id=OTHER_TEACHER_ID, role="teacher")


@pytest.fixture
def make_upload():
    """Factory for in-memory UploadFile objects as produced by multipart parsing."""

    def _make(filename: str, content: bytes = b"%PDF-1.4 test", content_type: str = "application/pdf"):
        return UploadFile(
            file=io.BytesIO(content),
            filename=filename,
            size=len(content),
            headers=Headers({"content-type": content_type}),
        )

    return _make


@pytest.fixture
def client(session_factory, store, generator):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_attachment_store] = lambda: store
    app.dependency_overrides[get_content_generator] = lambda: generator
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _bearer(user_id: str, role: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role)}"}


@pytest.fixture
def teacher_headers():
    return _bearer(TEACHER_ID, "teacher")


@pytest.fixture
def other_teacher_headers():
    return _bearer(OTHER_TEACHER_ID, "teacher")


@pytest.fixture
def student_headers():
    return _bearer(STUDENT_ID, "student")
