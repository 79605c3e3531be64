from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from songsort.core.models import SortStrategyName


REPO_ROOT = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_ignore_empty=True,
    )

    api_host: str = Field(default="0.0.0.0", alias="SONGSORT_API_HOST")
    api_port: int = Field(default=8787, alias="SONGSORT_API_PORT")
    api_base_url: str = Field(default="http://127.0.0.1:8787", alias="SONGSORT_API_BASE_URL")

    song_lists_dir: str = Field(default="song_lists", alias="SONGSORT_SONG_LISTS_DIR")
    state_dir: str = Field(default=".songsort_state", alias="SONGSORT_STATE_DIR")

    default_strategy: SortStrategyName = Field(
        default=SortStrategyName.MERGE_INSERTION,
        alias="SONGSORT_DEFAULT_STRATEGY",
    )
    shuffle: bool = Field(default=False, alias="SONGSORT_SHUFFLE")
    clean_preferences: bool = Field(default=False, alias="SONGSORT_CLEAN_PREFERENCES")
    notice_limit: int = Field(default=50, ge=1, alias="SONGSORT_NOTICE_LIMIT")
    log_level: str = Field(default="INFO", alias="SONGSORT_LOG_LEVEL")

    def resolve_path(self, path_value: str) -> Path:
        candidate = Path(path_value).expanduser()
        if candidate.is_absolute():
            return candidate
        return REPO_ROOT / candidate

    @property
    def song_lists_path(self) -> Path:
        return self.resolve_path(self.song_lists_dir)

    @property
    def state_path(self) -> Path:
        return self.resolve_path(self.state_dir)

    def ensure_runtime_dirs(self) -> None:
        self.song_lists_path.mkdir(parents=True, exist_ok=True)
        self.state_path.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.ensure_runtime_dirs()
    return settings
