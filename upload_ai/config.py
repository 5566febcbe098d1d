"""Runtime settings read from the environment (and an optional .env file)."""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# 25 "megabytes" of 1_848_576 bytes each, roughly 46 MB
DEFAULT_MAX_UPLOAD_BYTES = 1_848_576 * 25


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration handed to the application factory."""

    cors_origin: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3333
    database_path: str = "dev.db"
    upload_dir: str = "tmp"
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
    openai_api_key: Optional[str] = None
    transcription_model: str = "whisper-1"
    transcription_language: str = "pt"
    completion_model: str = "gpt-3.5-turbo-16k"

    @property
    def allowed_origin(self) -> str:
        """Value used for Access-Control-Allow-Origin."""
        return self.cors_origin or "*"

    @classmethod
    def from_env(cls) -> "Settings":
        # override=False keeps variables already set by the process environment
        load_dotenv(override=False)
        return cls(
            cors_origin=os.getenv("CORS_ORIGIN") or None,
            host=os.getenv("HOST", cls.host),
            port=_getenv_int("PORT", cls.port),
            database_path=os.getenv("DATABASE_PATH", cls.database_path),
            upload_dir=os.getenv("UPLOAD_DIR", cls.upload_dir),
            max_upload_bytes=_getenv_int("MAX_UPLOAD_BYTES", cls.max_upload_bytes),
            openai_api_key=os.getenv("OPENAI_API_KEY") or None,
            transcription_model=os.getenv("TRANSCRIPTION_MODEL", cls.transcription_model),
            transcription_language=os.getenv("TRANSCRIPTION_LANGUAGE", cls.transcription_language),
            completion_model=os.getenv("COMPLETION_MODEL", cls.completion_model),
        )
