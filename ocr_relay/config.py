import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

DEFAULT_UPSTREAM_URL = "https://ocr-slip.onrender.com/parse-slip-image"
DEFAULT_ALLOWED_ORIGINS = "https://jxxmey.github.io,http://localhost:3000,http://127.0.0.1:3000"


@dataclass(frozen=True)
class Settings:
    upstream_url: str = os.getenv("OCR_UPSTREAM_URL", DEFAULT_UPSTREAM_URL)
    timeout_seconds: float = float(os.getenv("OCR_TIMEOUT_SECONDS", "30"))
    max_upload_bytes: int = int(os.getenv("OCR_MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)
    host: str = os.getenv("HOST", "0.0.0.0")
    port: int = int(os.getenv("PORT", "3000"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = os.getenv("LOG_JSON", "true").lower() == "true"


@dataclass(frozen=True)
class RelayConfig:
    upstream_url: str = DEFAULT_UPSTREAM_URL
    timeout_s: float = 30.0
    max_upload_bytes: int = 10 * 1024 * 1024

    @classmethod
    def from_settings(cls, source: Settings) -> "RelayConfig":
        return cls(
            upstream_url=source.upstream_url,
            timeout_s=source.timeout_seconds,
            max_upload_bytes=source.max_upload_bytes,
        )


settings = Settings()


def get_allowed_origins(source: Settings | None = None) -> list[str]:
    raw = (source or settings).allowed_origins
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
