from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # "development" shows error details on 500s, "production" hides them
    environment: str = "development"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./bulletin.db"

    # JWT (issued by the auth service; we only verify)
    secret_key: str = "your-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24  # 1 day

    # Frontend URL for CORS
    frontend_url: str = "http://localhost:5173"

    # Attachments: absolute path to upload folder (empty = backend/uploads)
    upload_dir: str = ""
    upload_url_prefix: str = "/uploads"
    max_upload_size_bytes: int = 10 * 1024 * 1024  # 10 MB
    max_files_per_request: int = 5

    # Upload rate limit per caller
    upload_rate_limit_max: int = 5
    upload_rate_limit_window_minutes: int = 15

    # Gemini for summaries: API key, or Vertex AI project (empty both = fallback summary)
    gemini_api_key: str = ""
    vertex_project_id: str = ""
    vertex_location: str = "us-central1"
    vertex_credentials_path: str = ""  # path to service account JSON; empty = use ADC
    gemini_model: str = "gemini-2.0-flash"
    ai_timeout_seconds: float = 20.0

    # Stock photo search (empty = provider skipped)
    unsplash_access_key: str = ""
    pexels_api_key: str = ""
    image_search_timeout_seconds: float = 8.0

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
