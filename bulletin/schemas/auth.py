import enum
from pydantic import BaseModel


class CallerRole(str, enum.Enum):
    TEACHER = "teacher"
    STUDENT = "student"


class TokenPayload(BaseModel):
    sub: str
    role: str
    exp: int | None = None


class CallerIdentity(BaseModel):
    """Authenticated actor, resolved from the bearer token before reaching the service."""
    id: str
    role: str

    @property
    def is_teacher(self) -> bool:
        return self.role == CallerRole.TEACHER.value
