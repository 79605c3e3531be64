from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from songsort.core.config import Settings
from songsort.core.decision_text import exportable_decisions, format_decisions, format_ranking, parse_decision_lines
from songsort.core.models import (
    CreateSessionRequest,
    Direction,
    ImportSummary,
    SessionState,
    SessionStatus,
    SortStrategyName,
)
from songsort.runtime.engine import ComparisonEngine
from songsort.runtime.importer import reconcile_imports
from songsort.runtime.sorting import SortStrategy
from songsort.runtime.strategies import create_strategy


logger = logging.getLogger(__name__)

EXPORT_KINDS = ("ranking", "preferences", "history")


def slugify(value: str) -> str:
    cleaned = re.sub(r"[^a-zA-Z0-9._-]+", "-", value.strip())
    cleaned = cleaned.strip("-")
    cleaned = re.sub(r"-+", "-", cleaned)
    return cleaned or "ranking"


def build_session_id(title: str | None) -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%d-%H%M%S-%f")
    return f"{slugify(title or 'ranking')}-{stamp}"


@dataclass
class RankingSession:
    session_id: str
    title: str
    songs: list[str]
    strategy_name: SortStrategyName
    engine: ComparisonEngine
    strategy: SortStrategy
    shuffle: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    ended_at: datetime | None = None
    ranking: list[str] | None = None
    error: str | None = None
    task: asyncio.Task[None] | None = None

    def start(self) -> None:
        self.task = asyncio.create_task(self._run(), name=f"songsort-{self.session_id}")

    async def _run(self) -> None:
        try:
            self.ranking = await self.strategy.run(self.songs, shuffle=self.shuffle)
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.exception("Ranking session %s failed", self.session_id)
            self.error = str(exc)
        finally:
            self.ended_at = datetime.now(UTC)

    @property
    def status(self) -> SessionStatus:
        if self.error is not None:
            return SessionStatus.FAILED
        if self.ranking is not None:
            return SessionStatus.COMPLETED
        if self.engine.active_request is not None:
            return SessionStatus.AWAITING_INPUT
        return SessionStatus.RUNNING

    async def settle(self) -> None:
        """Let the sort run until it waits on a question or finishes."""
        while self.task is not None and not self.task.done() and self.engine.active_request is None:
            await asyncio.sleep(0)

    async def close(self) -> None:
        if self.task is None or self.task.done():
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass

    def state(self) -> SessionState:
        return SessionState(
            session_id=self.session_id,
            title=self.title,
            strategy=self.strategy_name,
            status=self.status,
            songs=list(self.songs),
            active_request=self.engine.active_request,
            pending_count=len(self.engine.pending_requests),
            estimate=self.engine.estimate.model_copy(),
            ranking=list(self.ranking) if self.ranking is not None else None,
            decisions=list(self.engine.decisions),
            notices=self.engine.notices,
            created_at=self.created_at,
            ended_at=self.ended_at,
            error=self.error,
        )


class SessionManager:
    def __init__(self, settings: Settings):
        self.settings = settings
        self._sessions: dict[str, RankingSession] = {}

    def get_session(self, session_id: str) -> RankingSession | None:
        return self._sessions.get(session_id)

    def require_session(self, session_id: str) -> RankingSession:
        session = self._sessions.get(session_id)
        if session is None:
            raise KeyError(f"Session not found: {session_id}")
        return session

    def list_sessions(self) -> list[RankingSession]:
        return sorted(self._sessions.values(), key=lambda session: session.created_at, reverse=True)

    async def create_session(self, request: CreateSessionRequest) -> RankingSession:
        session_id = request.session_id or build_session_id(request.title)
        if session_id in self._sessions:
            raise ValueError(f"Session id already exists: {session_id}")

        strategy_name = request.strategy or self.settings.default_strategy
        shuffle = self.settings.shuffle if request.shuffle is None else request.shuffle
        engine = ComparisonEngine(notice_limit=self.settings.notice_limit)
        session = RankingSession(
            session_id=session_id,
            title=request.title or session_id,
            songs=list(request.songs),
            strategy_name=strategy_name,
            engine=engine,
            strategy=create_strategy(strategy_name, engine),
            shuffle=shuffle,
        )
        self._sessions[session_id] = session
        logger.info("Starting session %s with %s songs (%s)", session_id, len(session.songs), strategy_name.value)
        session.start()
        await session.settle()
        return session

    async def resolve(self, session_id: str, direction: Direction) -> RankingSession:
        session = self.require_session(session_id)
        if session.engine.resolve(direction) is None:
            logger.debug("Session %s had no pending comparison to resolve", session_id)
        await session.settle()
        return session

    async def import_text(
        self,
        session_id: str,
        text: str,
        clean: bool | None = None,
    ) -> tuple[ImportSummary, RankingSession]:
        session = self.require_session(session_id)
        if not text.strip():
            raise ValueError("No decisions to import")

        parsed = parse_decision_lines(text)
        if not parsed:
            raise ValueError("No valid decisions found")

        use_clean = self.settings.clean_preferences if clean is None else clean
        summary = reconcile_imports(session.engine, parsed, session.songs, clean=use_clean)
        session.engine.notify(summary.message())
        await session.settle()
        return summary, session

    def export_text(self, session_id: str, kind: str, clean: bool | None = None) -> tuple[str, int]:
        session = self.require_session(session_id)
        if kind not in EXPORT_KINDS:
            raise ValueError(f"Unknown export kind: {kind}. Expected one of: {', '.join(EXPORT_KINDS)}")

        if kind == "ranking":
            if session.ranking is None:
                raise ValueError("Ranking is not complete yet")
            return format_ranking(session.title, session.ranking), len(session.ranking)

        use_clean = self.settings.clean_preferences if clean is None else clean
        decisions = session.engine.decisions
        text = format_decisions(session.title, decisions, partial=kind == "preferences", clean=use_clean)
        return text, len(exportable_decisions(decisions, clean=use_clean))

    async def dismiss_session(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        logger.info("Dismissed session %s", session_id)
        return True

    async def shutdown(self) -> None:
        sessions = list(self._sessions.values())
        self._sessions.clear()
        await asyncio.gather(*(session.close() for session in sessions))
