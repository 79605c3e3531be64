from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, FastAPI, HTTPException

from songsort.core.config import Settings, get_settings
from songsort.core.models import (
    CreateSessionRequest,
    ExportResponse,
    ImportDecisionsRequest,
    ImportDecisionsResponse,
    ListSessionsResponse,
    LoadSongListRequest,
    ResolveRequest,
    SessionState,
    SongList,
)
from songsort.core.song_lists import discover_song_lists, load_song_list
from songsort.runtime.session_manager import RankingSession, SessionManager


def build_router(*, settings: Settings, manager: SessionManager) -> APIRouter:
    router = APIRouter()

    def _session(session_id: str) -> RankingSession:
        session = manager.get_session(session_id)
        if session is None:
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return session

    @router.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "time": datetime.now(UTC).isoformat()}

    @router.get("/api/song-lists")
    def list_song_lists() -> dict[str, Any]:
        candidates = discover_song_lists(settings)
        return {
            "song_lists_root": str(settings.song_lists_path),
            "candidates": [candidate.model_dump() for candidate in candidates],
        }

    @router.post("/api/song-lists/load", response_model=SongList)
    def load_song_list_endpoint(payload: LoadSongListRequest) -> SongList:
        try:
            return load_song_list(settings, payload.path)
        except FileNotFoundError as exc:
            raise HTTPException(status_code=404, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @router.get("/api/sessions", response_model=ListSessionsResponse)
    def list_sessions() -> ListSessionsResponse:
        return ListSessionsResponse(sessions=[session.state() for session in manager.list_sessions()])

    @router.post("/api/sessions", response_model=SessionState)
    async def create_session(payload: CreateSessionRequest) -> SessionState:
        try:
            session = await manager.create_session(payload)
        except ValueError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return session.state()

    @router.get("/api/sessions/{session_id}", response_model=SessionState)
    def get_session(session_id: str) -> SessionState:
        return _session(session_id).state()

    @router.post("/api/sessions/{session_id}/resolve", response_model=SessionState)
    async def resolve(session_id: str, payload: ResolveRequest) -> SessionState:
        _session(session_id)
        session = await manager.resolve(session_id, payload.direction)
        return session.state()

    @router.post("/api/sessions/{session_id}/import", response_model=ImportDecisionsResponse)
    async def import_decisions(session_id: str, payload: ImportDecisionsRequest) -> ImportDecisionsResponse:
        _session(session_id)
        try:
            summary, session = await manager.import_text(session_id, payload.text, clean=payload.clean)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return ImportDecisionsResponse(summary=summary, message=summary.message(), session=session.state())

    @router.get("/api/sessions/{session_id}/export", response_model=ExportResponse)
    def export_session(session_id: str, kind: str = "history", clean: bool | None = None) -> ExportResponse:
        _session(session_id)
        try:
            text, count = manager.export_text(session_id, kind, clean=clean)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        return ExportResponse(session_id=session_id, kind=kind, text=text, count=count)

    @router.post("/api/sessions/{session_id}/dismiss")
    async def dismiss_session(session_id: str) -> dict[str, Any]:
        _session(session_id)
        dismissed = await manager.dismiss_session(session_id)
        return {"session_id": session_id, "dismissed": dismissed}

    return router


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    manager = SessionManager(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        try:
            yield
        finally:
            await manager.shutdown()

    app = FastAPI(title="songsort", version="0.1.0", lifespan=lifespan)
    app.state.manager = manager
    app.include_router(build_router(settings=settings, manager=manager))
    return app
