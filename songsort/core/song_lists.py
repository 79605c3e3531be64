from __future__ import annotations

from pathlib import Path

import yaml

from songsort.core.config import Settings
from songsort.core.models import SongList, SongListCandidate


SONG_LIST_SUFFIXES = {".yaml", ".yml"}


def is_song_list(path: Path) -> bool:
    return path.is_file() and path.suffix.lower() in SONG_LIST_SUFFIXES


def resolve_song_list_path(settings: Settings, candidate: str) -> Path:
    raw = Path(candidate).expanduser()
    if raw.is_absolute():
        return raw

    direct = (Path.cwd() / raw).resolve()
    if direct.exists():
        return direct

    return (settings.song_lists_path / raw).resolve()


def discover_song_lists(settings: Settings, max_items: int = 500) -> list[SongListCandidate]:
    root = settings.song_lists_path
    root.mkdir(parents=True, exist_ok=True)

    candidates: list[SongListCandidate] = []
    for path in sorted(root.rglob("*")):
        if len(candidates) >= max_items:
            break
        if not is_song_list(path):
            continue
        candidates.append(
            SongListCandidate(
                path=str(path),
                relative_to_song_lists=path.relative_to(root).as_posix(),
            )
        )
    return candidates


def load_song_list(settings: Settings, candidate: str) -> SongList:
    path = resolve_song_list_path(settings, candidate)
    if not path.exists() or not path.is_file():
        raise FileNotFoundError(f"Song list file not found: {path}")
    if path.suffix.lower() not in SONG_LIST_SUFFIXES:
        raise ValueError("Song list file must end in .yaml or .yml")

    payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValueError("Song list root must be a mapping/object")

    payload.setdefault("list_id", payload.pop("id", None) or path.stem)
    payload.setdefault("name", path.stem.replace("_", " ").replace("-", " ").title())
    return SongList.model_validate(payload)
