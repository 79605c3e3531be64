from __future__ import annotations

from pathlib import Path

import pytest

from songsort.core.config import Settings
from songsort.core.models import CreateSessionRequest, Direction, SessionStatus, SortStrategyName
from songsort.runtime.session_manager import SessionManager, build_session_id


def _build_settings(tmp_path: Path, **overrides) -> Settings:
    settings = Settings(
        _env_file=None,
        SONGSORT_SONG_LISTS_DIR=str(tmp_path / "song_lists"),
        SONGSORT_STATE_DIR=str(tmp_path / "state"),
        **overrides,
    )
    settings.ensure_runtime_dirs()
    return settings


async def _answer_all(manager: SessionManager, session_id: str, truth: list[str]) -> None:
    position = {item: index for index, item in enumerate(truth)}
    session = manager.require_session(session_id)
    while session.status == SessionStatus.AWAITING_INPUT:
        request = session.engine.active_request
        direction = Direction.LEFT if position[request.left] < position[request.right] else Direction.RIGHT
        await manager.resolve(session_id, direction)


def test_build_session_id_slugs_the_title() -> None:
    session_id = build_session_id("My Favourite Songs!")

    assert session_id.startswith("My-Favourite-Songs-")
    assert build_session_id(None).startswith("ranking-")


@pytest.mark.asyncio
async def test_session_runs_until_the_first_question(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path))

    session = await manager.create_session(
        CreateSessionRequest(session_id="s1", title="Pop", songs=["a", "b", "c"], strategy="merge")
    )

    assert session.status == SessionStatus.AWAITING_INPUT
    state = session.state()
    assert state.active_request is not None
    assert (state.active_request.left, state.active_request.right) == ("a", "b")
    assert state.strategy == SortStrategyName.MERGE
    assert state.estimate.worst_case == 3
    await manager.shutdown()


@pytest.mark.asyncio
async def test_session_uses_configured_defaults(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path, SONGSORT_DEFAULT_STRATEGY="merge"))

    session = await manager.create_session(CreateSessionRequest(songs=["a", "b"]))

    assert session.strategy_name == SortStrategyName.MERGE
    assert session.shuffle is False
    assert session.title == session.session_id
    await manager.shutdown()


@pytest.mark.asyncio
async def test_answering_every_question_completes_the_ranking(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path))
    truth = ["d", "b", "e", "a", "c"]
    await manager.create_session(CreateSessionRequest(session_id="s1", title="Pop", songs=["a", "b", "c", "d", "e"]))

    await _answer_all(manager, "s1", truth)

    session = manager.require_session("s1")
    assert session.status == SessionStatus.COMPLETED
    assert session.ranking == truth
    assert session.ended_at is not None

    text, count = manager.export_text("s1", "ranking")
    assert text == "My Pop Song Ranking:\n\n1. d\n2. b\n3. e\n4. a\n5. c"
    assert count == 5

    history, history_count = manager.export_text("s1", "history")
    assert history.startswith("My Pop Decision History:\n\n1. ")
    assert history_count == session.engine.ledger.direct_count


@pytest.mark.asyncio
async def test_single_song_session_completes_immediately(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path))

    session = await manager.create_session(CreateSessionRequest(songs=["only"]))

    assert session.status == SessionStatus.COMPLETED
    assert session.ranking == ["only"]


@pytest.mark.asyncio
async def test_import_can_finish_a_ranking(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path))
    await manager.create_session(CreateSessionRequest(session_id="s1", songs=["a", "b", "c"], strategy="merge"))

    summary, session = await manager.import_text("s1", "1. c > b\n2. b > a\n")

    assert summary.added == 2
    assert session.status == SessionStatus.COMPLETED
    assert session.ranking == ["c", "b", "a"]
    assert any(notice.startswith("Imported 2 decisions") for notice in session.engine.notices)


@pytest.mark.asyncio
async def test_partial_export_and_errors(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path))
    await manager.create_session(CreateSessionRequest(session_id="s1", title="Pop", songs=["a", "b", "c"]))
    await manager.resolve("s1", Direction.LEFT)

    text, count = manager.export_text("s1", "preferences")
    assert text == "My Partial Pop Decision History:\n\n1. a > b"
    assert count == 1

    with pytest.raises(ValueError, match="not complete"):
        manager.export_text("s1", "ranking")
    with pytest.raises(ValueError, match="Unknown export kind"):
        manager.export_text("s1", "pdf")
    with pytest.raises(ValueError, match="No decisions"):
        await manager.import_text("s1", "   ")
    with pytest.raises(ValueError, match="No valid decisions"):
        await manager.import_text("s1", "hello world")
    with pytest.raises(ValueError, match="already exists"):
        await manager.create_session(CreateSessionRequest(session_id="s1", songs=["x"]))
    with pytest.raises(KeyError):
        manager.require_session("missing")
    await manager.shutdown()


@pytest.mark.asyncio
async def test_dismiss_cancels_and_forgets_the_session(tmp_path: Path) -> None:
    manager = SessionManager(_build_settings(tmp_path))
    session = await manager.create_session(CreateSessionRequest(session_id="s1", songs=["a", "b"]))

    assert await manager.dismiss_session("s1") is True
    assert await manager.dismiss_session("s1") is False
    assert manager.get_session("s1") is None
    assert session.task is not None and session.task.cancelled()
    assert manager.list_sessions() == []
