import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from bulletin.config import get_settings
from bulletin.errors import AnnouncementAPIError, code_for_status
from bulletin.logging_config import setup_logging
from bulletin.schemas.announcement import ErrorResponse
from bulletin.routers import announcements

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("Bulletin API starting (%s)", settings.environment)
    yield


app = FastAPI(title="Bulletin API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str, code: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code).model_dump(),
        headers=headers,
    )


@app.exception_handler(AnnouncementAPIError)
async def announcement_error_handler(request: Request, exc: AnnouncementAPIError):
    return _error(exc.status_code, str(exc.detail), exc.error_code, exc.headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, str(exc.detail), code_for_status(exc.status_code), getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return _error(status.HTTP_400_BAD_REQUEST, message, "VALIDATION_ERROR")


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Internal server error" if settings.is_production else f"{type(exc).__name__}: {exc}"
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, message, "INTERNAL_ERROR")


app.include_router(announcements.router)


@app.get("/")
def root():
    return {"message": "Bulletin API", "docs": "/docs"}
