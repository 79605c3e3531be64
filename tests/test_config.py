from __future__ import annotations

from pathlib import Path

from songsort.core.config import REPO_ROOT, Settings
from songsort.core.models import SortStrategyName


def test_repo_root_points_at_project_root() -> None:
    assert (REPO_ROOT / "pyproject.toml").exists()
    assert (REPO_ROOT / "songsort").is_dir()


def test_defaults_without_env_file() -> None:
    settings = Settings(_env_file=None)

    assert settings.api_port == 8787
    assert settings.default_strategy == SortStrategyName.MERGE_INSERTION
    assert settings.shuffle is False
    assert settings.clean_preferences is False
    assert settings.notice_limit == 50
    assert settings.song_lists_path == REPO_ROOT / "song_lists"
    assert settings.state_path == REPO_ROOT / ".songsort_state"


def test_aliases_and_environment_override_defaults(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("SONGSORT_API_PORT", "9999")
    monkeypatch.setenv("SONGSORT_DEFAULT_STRATEGY", "merge")

    settings = Settings(
        _env_file=None,
        SONGSORT_CLEAN_PREFERENCES=True,
        SONGSORT_STATE_DIR=str(tmp_path / "state"),
    )

    assert settings.api_port == 9999
    assert settings.default_strategy == SortStrategyName.MERGE
    assert settings.clean_preferences is True
    assert settings.state_path == tmp_path / "state"


def test_ensure_runtime_dirs_creates_directories(tmp_path: Path) -> None:
    settings = Settings(
        _env_file=None,
        SONGSORT_SONG_LISTS_DIR=str(tmp_path / "lists"),
        SONGSORT_STATE_DIR=str(tmp_path / "state"),
    )

    settings.ensure_runtime_dirs()

    assert (tmp_path / "lists").is_dir()
    assert (tmp_path / "state").is_dir()
