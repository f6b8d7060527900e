"""
Configuration management for the comic tag watcher.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

import shlex
from enum import Enum
from functools import lru_cache
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict


class CollisionPolicy(str, Enum):
    """What to do when the target filename already exists."""

    SKIP = "skip"
    OVERWRITE = "overwrite"


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # Watched directory
    watch_dir: Path = Path("./incoming")
    file_extension: str = ".cbz"

    # Tagger Configuration
    tagger_path: Path = Path("comictagger")
    tagger_write_args: str = "-s -o -t cr,cbl"
    tagger_read_args: str = "-p --json"

    # Logging Configuration
    log_file: Path = Path("comic_tagger.log")
    log_level: str = "INFO"

    # Timing Configuration
    retry_interval: float = 3600  # seconds
    settle_delay: float = 5.0  # seconds

    # Rename Configuration
    collision_policy: CollisionPolicy = CollisionPolicy.SKIP

    # Worker Configuration
    worker_threads: int = 2
    queue_size: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_extension(self) -> str:
        """Tracked extension, lower-cased with a leading dot."""
        ext = self.file_extension.strip().lower()
        return ext if ext.startswith('.') else f".{ext}"

    def get_tagger_write_args(self) -> list[str]:
        """Parse write-mode tagger arguments into a list."""
        return shlex.split(self.tagger_write_args)

    def get_tagger_read_args(self) -> list[str]:
        """Parse read-mode tagger arguments into a list."""
        return shlex.split(self.tagger_read_args)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
