from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"


class DecisionKind(str, Enum):
    DIRECT = "direct"
    INFERRED = "inferred"
    IMPORTED = "imported"


class SortStrategyName(str, Enum):
    MERGE = "merge"
    MERGE_INSERTION = "merge-insertion"


class SessionStatus(str, Enum):
    RUNNING = "running"
    AWAITING_INPUT = "awaiting_input"
    COMPLETED = "completed"
    FAILED = "failed"


class Decision(BaseModel):
    """One resolved preference: ``chosen`` is preferred over ``rejected``.

    ``ordinal`` numbers direct decisions from 1; inferred and imported
    entries carry ``None`` and no elapsed time.
    """

    model_config = ConfigDict(frozen=True)

    chosen: str
    rejected: str
    kind: DecisionKind = DecisionKind.DIRECT
    ordinal: int | None = Field(default=None, ge=1)
    elapsed_seconds: float | None = Field(default=None, ge=0.0)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def marker(self) -> str:
        if self.kind == DecisionKind.IMPORTED:
            return "X"
        if self.kind == DecisionKind.INFERRED or self.ordinal is None:
            return "I"
        return str(self.ordinal)


class ComparisonRequest(BaseModel):
    left: str
    right: str
    requested_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class Estimate(BaseModel):
    completed: int = 0
    best_case: int = 0
    worst_case: int = 0

    def progress_ratio(self) -> float:
        if self.best_case <= 0:
            return 1.0 if self.completed >= self.worst_case else 0.0
        return min(1.0, self.completed / self.best_case)

    def label(self) -> str:
        current = self.completed + 1
        if self.best_case == self.worst_case:
            return f"Comparison #{current} of {self.best_case}"
        return f"Comparison #{current} of {self.best_case} to {self.worst_case}"


class ImportSummary(BaseModel):
    parsed: int = 0
    added: int = 0
    skipped: int = 0
    cleaned: int = 0
    cycle: int = 0

    def message(self) -> str:
        conflicts = f", {self.cycle} conflicts" if self.cycle else ""
        return (
            f"Imported {self.parsed} decisions: {self.added} added, {self.skipped} skipped, "
            f"{self.cleaned} cleaned{conflicts}"
        )


class SongList(BaseModel):
    list_id: str
    name: str
    songs: list[str]

    @field_validator("songs")
    @classmethod
    def validate_songs(cls, value: list[str]) -> list[str]:
        songs = [str(song).strip() for song in value if str(song).strip()]
        if not songs:
            raise ValueError("Song list must contain at least one song")
        duplicates = sorted({song for song in songs if songs.count(song) > 1})
        if duplicates:
            raise ValueError(f"Song list contains duplicate songs: {', '.join(duplicates)}")
        return songs


class SongListCandidate(BaseModel):
    path: str
    relative_to_song_lists: str


class LoadSongListRequest(BaseModel):
    path: str


class CreateSessionRequest(BaseModel):
    session_id: str | None = Field(default=None, description="Stable session id; if omitted a slug is generated")
    title: str | None = Field(default=None)
    songs: list[str] = Field(default_factory=list)
    strategy: SortStrategyName | None = Field(default=None, description="Defaults to the configured strategy")
    shuffle: bool | None = Field(default=None)

    @field_validator("songs")
    @classmethod
    def validate_songs(cls, value: list[str]) -> list[str]:
        songs = [song.strip() for song in value if song and song.strip()]
        if not songs:
            raise ValueError("At least one song is required")
        if len(set(songs)) != len(songs):
            raise ValueError("Songs must be unique")
        return songs


class ResolveRequest(BaseModel):
    direction: Direction


class ImportDecisionsRequest(BaseModel):
    text: str
    clean: bool | None = Field(default=None, description="Run imports through closure + reduction first")


class SessionState(BaseModel):
    session_id: str
    title: str
    strategy: SortStrategyName
    status: SessionStatus
    songs: list[str]
    active_request: ComparisonRequest | None = None
    pending_count: int = 0
    estimate: Estimate = Field(default_factory=Estimate)
    ranking: list[str] | None = None
    decisions: list[Decision] = Field(default_factory=list)
    notices: list[str] = Field(default_factory=list)
    created_at: datetime
    ended_at: datetime | None = None
    error: str | None = None


class ListSessionsResponse(BaseModel):
    sessions: list[SessionState]


class ImportDecisionsResponse(BaseModel):
    summary: ImportSummary
    message: str
    session: SessionState


class ExportResponse(BaseModel):
    session_id: str
    kind: str
    text: str
    count: int
