import uuid
from datetime import datetime, timedelta
from jose import ExpiredSignatureError, JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from bulletin.config import get_settings
from bulletin.errors import AuthenticationError, AuthorizationError
from bulletin.schemas.auth import CallerIdentity, CallerRole, TokenPayload

settings = get_settings()
security = HTTPBearer(auto_error=False)


def create_access_token(user_id: str, role: str) -> str:
    expire = datetime.utcnow() + timedelta(
        minutes=settings.access_token_expire_minutes
    )
    payload = {
        "sub": user_id,
        "role": role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> TokenPayload:
    """Raises AuthenticationError for expired, forged or malformed tokens."""
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
        )
    except ExpiredSignatureError:
        raise AuthenticationError("Token has expired. Please login again.", "TOKEN_EXPIRED")
    except JWTError:
        raise AuthenticationError("Invalid token. Please login again.", "INVALID_TOKEN")

    sub = payload.get("sub")
    role = payload.get("role")
    if not isinstance(sub, str) or not isinstance(role, str) or not _is_uuid(sub):
        raise AuthenticationError("Invalid token. Please login again.", "INVALID_TOKEN")
    return TokenPayload(sub=sub, role=role, exp=payload.get("exp"))


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


def get_current_caller(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> CallerIdentity:
    if not credentials:
        raise AuthenticationError(
            "Authentication required. Please provide a valid token.",
            "NO_TOKEN",
        )
    payload = decode_token(credentials.credentials)
    return CallerIdentity(id=payload.sub, role=payload.role)


def require_teacher(
    caller: CallerIdentity = Depends(get_current_caller),
) -> CallerIdentity:
    """Caller must be logged in with the teacher role."""
    if caller.role != CallerRole.TEACHER.value:
        raise AuthorizationError("You do not have permission to perform this action")
    return caller
