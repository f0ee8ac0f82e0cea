from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    app_name: str = Field("receipt-extractor", alias="APP_NAME")
    app_env: str = Field("dev", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # Image storage (served statically under uploads_url_prefix)
    uploads_dir: str = Field("uploads", alias="UPLOADS_DIR")
    uploads_url_prefix: str = Field("/uploads", alias="UPLOADS_URL_PREFIX")

    # Receipt ledger (defaults to <uploads_dir>/receipts.json)
    ledger_path: str | None = Field(default=None, alias="LEDGER_PATH")
    ledger_on_corrupt: Literal["reset", "fail"] = Field("reset", alias="LEDGER_ON_CORRUPT")

    # OCR engine: tesseract | azure | http
    ocr_engine: str = Field("tesseract", alias="OCR_ENGINE")
    ocr_language: str = Field("eng", alias="OCR_LANGUAGE")
    tesseract_cmd: str | None = Field(default=None, alias="TESSERACT_CMD")

    # Azure Document Intelligence
    az_di_endpoint: str | None = Field(default=None, alias="AZ_DI_ENDPOINT")
    az_di_api_key: str | None = Field(default=None, alias="AZ_DI_API_KEY")

    # Remote OCR service
    ocr_service_url: str = Field("http://localhost:8001", alias="OCR_SERVICE_URL")
    ocr_timeout_seconds: float = Field(60.0, alias="OCR_TIMEOUT_SECONDS")

    # CORS allowed origins (comma-separated list)
    cors_origins: str = Field("http://localhost:5173", alias="CORS_ORIGINS")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def resolved_ledger_path(self) -> Path:
        if self.ledger_path:
            return Path(self.ledger_path)
        return Path(self.uploads_dir) / "receipts.json"

settings = Settings()
