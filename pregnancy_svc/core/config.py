"""
Service settings, read from the environment and ``.env``.

``PREGNANCY_SVC_API_KEY`` is the only required value and must be at least
32 characters; importing this module fails without it. ``GEMINI_API_KEY`` may
be left empty, in which case records and exports still work and the
AI-backed routes answer 503.
"""
import sys
import logging
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    pregnancy_svc_api_key: str = Field(..., min_length=32, description="Shared key expected in X-API-Key")

    # Record store
    pregnancy_svc_db_dir: str = "data"
    pregnancy_svc_db_file: str = "pregnancy.db"
    pregnancy_svc_db_busy_timeout: int = Field(default=5000, description="Milliseconds")

    # Server
    pregnancy_svc_host: str = "0.0.0.0"
    pregnancy_svc_port: int = 8000
    pregnancy_svc_reload: bool = False

    # Lab report photos and captured report regions
    pregnancy_svc_upload_dir: str = "uploads"
    pregnancy_svc_upload_max_size: int = Field(default=10 * 1024 * 1024, description="Bytes")

    gemini_api_key: str = ""
    gemini_model: str = "gemini-flash-latest"

    chat_max_sessions: int = Field(default=1000, ge=1, description="Least recently used sessions are evicted past this")
    chat_idle_timeout_seconds: int = Field(default=1800, ge=0, description="0 keeps idle sessions forever")

    @model_validator(mode="after")
    def check_startup_values(self) -> "Settings":
        if not self.gemini_api_key:
            logger.warning("GEMINI_API_KEY not set; assessment, chat and OCR are disabled")

        if self.pregnancy_svc_upload_max_size <= 0:
            logger.critical("PREGNANCY_SVC_UPLOAD_MAX_SIZE must be a positive number of bytes")
            sys.exit(1)

        return self

    @property
    def database_path(self) -> str:
        return str(Path(self.pregnancy_svc_db_dir) / self.pregnancy_svc_db_file)

    def ensure_directories(self) -> None:
        for directory in (self.pregnancy_svc_db_dir, self.pregnancy_svc_upload_dir):
            Path(directory).mkdir(parents=True, exist_ok=True)


settings = Settings()
settings.ensure_directories()

DATABASE_PATH = settings.database_path
DATABASE_BUSY_TIMEOUT = settings.pregnancy_svc_db_busy_timeout

API_HOST = settings.pregnancy_svc_host
API_PORT = settings.pregnancy_svc_port
API_RELOAD = settings.pregnancy_svc_reload

UPLOAD_DIR = settings.pregnancy_svc_upload_dir
UPLOAD_MAX_SIZE = settings.pregnancy_svc_upload_max_size

API_KEY = settings.pregnancy_svc_api_key
