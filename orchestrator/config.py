"""Runtime configuration, read from ``PLANNER_*`` environment variables or a ``.env`` file."""
from __future__ import annotations

import typing as t
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PLANNER_", env_file=".env", extra="ignore")

    # Storage
    data_dir: Path = Path.home() / ".syllabus_planner"

    # Inference
    openai_model: str = "gpt-5"
    max_text_chars: int = 30000

    # Ingestion
    min_text_length: int = 100
    max_concurrent_uploads: t.Optional[int] = None

    # Logging
    log_level: str = "WARNING"


def get_settings() -> Settings:
    return Settings()
