"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - get_settings() is cached (lru_cache) — single instance per process
    - records_path is always derived from data_dir + records_filename

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support (ADR: developer UX)
    - media_retention defaults to "retain": image files outlive their listing unless
      an operator opts into "purge" (ADR: orphaned media is an explicit policy)
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Storage
    data_dir: Path = Path("data")
    records_filename: str = "properties.json"
    images_dir: Path = Path("uploads/images")

    # Images
    max_image_bytes: int = 10 * 1024 * 1024
    media_retention: Literal["retain", "purge"] = "retain"

    # API
    cors_origins: list[str] = ["*"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def records_path(self) -> Path:
        return self.data_dir / self.records_filename


@lru_cache
def get_settings() -> Settings:
    return Settings()
