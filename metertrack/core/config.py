"""Application settings loaded from the environment / .env file."""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]
ENV_PATH = BASE_DIR / ".env"

STORAGE_FILE = "file"
STORAGE_MEMORY = "memory"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        extra="ignore",
    )

    DEBUG: bool = Field(default=False)

    # Persistence: "file" keeps one JSON file per meter under DATA_DIR,
    # "memory" is the session-scoped demo store
    STORAGE_BACKEND: str = Field(default=STORAGE_FILE)
    DATA_DIR: Path = Field(default=BASE_DIR / "data")

    # Gemini vision API
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = Field(default="gemini-2.5-flash-lite")

    # Photo uploads
    MAX_PHOTO_BYTES: int = Field(default=10 * 1024 * 1024, gt=0)

    # Reporting
    LOCALE: str = Field(default="es")
    MONTHS_BACK: int = Field(default=6, gt=0, le=36)

    @property
    def gemini_configured(self) -> bool:
        return bool((self.GEMINI_API_KEY or "").strip())


settings = Settings()
