# config/settings.py
import os
import sys
from typing import Literal
from dotenv import load_dotenv
from pydantic import ValidationError, Field
from pydantic_settings import BaseSettings
from util.enums import Environment
import logging


if os.getenv("APP_ENV", Environment.DEV) == Environment.DEV:
    load_dotenv()

_log = logging.getLogger("config.settings")


class Settings(BaseSettings):
    # App
    APP_ENV: str = Field(..., validation_alias="APP_ENV")
    REDIS_URL: str = Field(..., validation_alias="REDIS_URL")

    # CORS & Limits
    ALLOWED_ORIGIN: str = Field(..., validation_alias="ALLOWED_ORIGIN")
    RATE_LIMIT_TIMES: int = Field(..., validation_alias="RATE_LIMIT_TIMES")
    RATE_LIMIT_SECONDS: int = Field(..., validation_alias="RATE_LIMIT_SECONDS")
    MAX_FILE_MB: int = Field(default=10, validation_alias="MAX_FILE_MB")
    TRUST_PROXY: bool = Field(default=False, validation_alias="TRUST_PROXY")

    # Document storage
    # DOCUMENTS_DIR is the on-disk directory behind DOCUMENT_URL_ROOT.
    DOCUMENTS_DIR: str = Field(
        default="uploads/documents", validation_alias="DOCUMENTS_DIR"
    )
    DOCUMENT_URL_ROOT: str = Field(
        default="/uploads/documents", validation_alias="DOCUMENT_URL_ROOT"
    )
    LEGACY_URL_ROOT: str = Field(default="/documents", validation_alias="LEGACY_URL_ROOT")
    STAGING_PREFIXES: tuple[str, ...] = ("temp-", "staging")
    ALLOWED_EXTENSIONS: tuple[str, ...] = ("pdf", "jpg", "jpeg", "png")

    # Locks (per-namespace advisory locks in Redis)
    LOCK_TIMEOUT_SECONDS: float = Field(default=60.0, validation_alias="LOCK_TIMEOUT_SECONDS")
    LOCK_BLOCKING_TIMEOUT_SECONDS: float = Field(
        default=10.0, validation_alias="LOCK_BLOCKING_TIMEOUT_SECONDS"
    )

    # Scan / repair / promotion behaviour
    SCAN_PAGE_SIZE: int = Field(default=100, validation_alias="SCAN_PAGE_SIZE")
    PROMOTION_EXISTING_POLICY: Literal["purge", "reject"] = Field(
        default="purge", validation_alias="PROMOTION_EXISTING_POLICY"
    )
    REPAIR_WRITE_PLACEHOLDERS: bool = Field(
        default=True, validation_alias="REPAIR_WRITE_PLACEHOLDERS"
    )
    REPAIR_TRIGGER: Literal["inline", "http", "none"] = Field(
        default="inline", validation_alias="REPAIR_TRIGGER"
    )
    REPAIR_TRIGGER_URL: str = Field(
        default="http://localhost:8000/api/v1/documents/repair",
        validation_alias="REPAIR_TRIGGER_URL",
    )
    REPAIR_TRIGGER_TIMEOUT_SECONDS: float = 30.0

    # Logging knobs
    LOGGER_NAME: str = "client-docs"
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_FILE: bool = Field(default=False, validation_alias="LOG_TO_FILE")
    LOG_DIR: str = Field(default="logs", validation_alias="LOG_DIR")
    LOG_FILE_NAME: str = Field(default="app.log", validation_alias="LOG_FILE_NAME")
    LOG_MAX_BYTES: int = Field(
        default=50 * 1024 * 1024, validation_alias="LOG_MAX_BYTES"
    )
    LOG_BACKUP_COUNT: int = Field(default=5, validation_alias="LOG_BACKUP_COUNT")


try:
    settings = Settings()
except ValidationError as e:
    print("❌ Missing/invalid environment variables:", file=sys.stderr)
    for err in e.errors():
        loc = ".".join(str(x) for x in err.get("loc", []))
        msg = err.get("msg", "")
        print(f" - {loc}: {msg}", file=sys.stderr)
    sys.exit(1)
except Exception as e:
    print(f"❌ Settings initialization failed: {e}", file=sys.stderr)
    sys.exit(1)
