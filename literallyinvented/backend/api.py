"""FastAPI endpoints for game sessions, leaderboard and websocket sync."""

from __future__ import annotations

import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import Depends, FastAPI, Header, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .config import load_settings
from .content import games_missing_keys, load_answer_keys
from .errors import PartialFinalizeFailure, RemoteUnavailable
from .judge import RemoteJudge, await_judge, create_judge
from .permission import check_play_permission
from .registry import SessionRegistry
from .sessions import GameSession
from .shuffle import make_rng
from .variants import VARIANTS, GameVariant, get_variant

logger = logging.getLogger(__name__)


class AnswerRequest(BaseModel):
    item_id: str = Field(min_length=1, max_length=100)
    value: Any = None


class BatchRequest(BaseModel):
    answers: dict[str, Any]


class ProgressRequest(BaseModel):
    answers: dict[str, Any]


class SessionResponse(BaseModel):
    state: dict[str, Any]


class AnswerResponse(BaseModel):
    result: dict[str, Any]
    state: dict[str, Any]


class ProgressResponse(BaseModel):
    saved: bool


class GameSummary(BaseModel):
    key: str
    level: int
    title: str
    batch: bool
    max_attempts: int | None


class PermissionResponse(BaseModel):
    permission: str
    can_play: bool
    reason: str | None = None
    existing_score: int | None = None


class LeaderboardRow(BaseModel):
    player_id: str
    display_name: str
    total_score: int
    completed_levels: int


class LeaderboardResponse(BaseModel):
    entries: list[LeaderboardRow]


class SessionWebSocketHub:
    def __init__(self) -> None:
        self._connections: dict[str, set[WebSocket]] = defaultdict(set)

    @staticmethod
    def channel(player_id: str, game: str) -> str:
        return f"{player_id}:{game}"

    async def connect(self, channel: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[channel].add(websocket)

    def disconnect(self, channel: str, websocket: WebSocket) -> None:
        connections = self._connections.get(channel)
        if connections is None:
            return
        connections.discard(websocket)
        if not connections:
            self._connections.pop(channel, None)

    async def send_state(self, websocket: WebSocket, state: dict[str, Any]) -> None:
        await websocket.send_json({"type": "state.full", "state": state})

    async def broadcast_state(self, channel: str, state: dict[str, Any]) -> None:
        stale_connections: list[WebSocket] = []
        for websocket in list(self._connections.get(channel, set())):
            try:
                await self.send_state(websocket, state)
            except RuntimeError:
                stale_connections.append(websocket)
        for websocket in stale_connections:
            self.disconnect(channel=channel, websocket=websocket)


def _default_judge() -> RemoteJudge:
    settings = load_settings()
    answer_keys = load_answer_keys(settings.answer_keys_path)
    if settings.database_url is None:
        for game in games_missing_keys(answer_keys):
            logger.warning("no answer keys for %s; every answer will be scored incorrect", game)
    return create_judge(settings.database_url, answer_keys=answer_keys)


def _default_registry(judge: RemoteJudge) -> SessionRegistry:
    settings = load_settings()
    return SessionRegistry(
        judge=judge,
        timeout_s=settings.judge_timeout_s,
        rng=make_rng(settings.shuffle_seed) if settings.shuffle_seed is not None else None,
    )


def require_player(x_player_id: str | None = Header(default=None)) -> str:
    if x_player_id is None or x_player_id.strip() == "":
        raise HTTPException(status_code=401, detail="not authenticated")
    return x_player_id.strip()


def resolve_variant(game: str) -> GameVariant:
    try:
        return get_variant(game)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Unknown game {game}") from None


def create_app(judge: RemoteJudge | None = None, registry: SessionRegistry | None = None) -> FastAPI:
    remote_judge = judge if judge is not None else _default_judge()
    sessions = registry if registry is not None else _default_registry(remote_judge)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        sessions.close_all()

    app = FastAPI(title="Literally Invented API", version="1.0.0", lifespan=lifespan)
    websocket_hub = SessionWebSocketHub()
    app.state.websocket_hub = websocket_hub
    app.state.sessions = sessions

    async def publish_session(session: GameSession) -> None:
        channel = SessionWebSocketHub.channel(session.engine.player_id, session.engine.variant.key)
        await websocket_hub.broadcast_state(channel=channel, state=session.snapshot())

    def get_judge() -> RemoteJudge:
        return remote_judge

    def get_registry() -> SessionRegistry:
        return sessions

    def current_session(local_sessions: SessionRegistry, player_id: str, variant: GameVariant) -> GameSession:
        session = local_sessions.get(player_id, variant.key)
        if session is None:
            raise HTTPException(status_code=409, detail="No open session; start one first")
        return session

    @app.get("/api/games", response_model=list[GameSummary])
    def list_games() -> list[GameSummary]:
        return [
            GameSummary(
                key=variant.key,
                level=variant.level,
                title=variant.title,
                batch=variant.batch,
                max_attempts=variant.max_attempts,
            )
            for variant in sorted(VARIANTS.values(), key=lambda variant: variant.level)
        ]

    @app.get("/api/games/{game}/permission", response_model=PermissionResponse)
    async def get_permission(
        game: str,
        player_id: str = Depends(require_player),
        local_judge: RemoteJudge = Depends(get_judge),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> PermissionResponse:
        variant = resolve_variant(game)
        result = await check_play_permission(local_judge, player_id, variant, timeout_s=local_sessions.timeout_s)
        return PermissionResponse(
            permission=result.permission.value,
            can_play=result.can_play,
            reason=result.reason,
            existing_score=result.existing_score.score if result.existing_score is not None else None,
        )

    @app.post("/api/games/{game}/session", response_model=SessionResponse)
    async def start_session(
        game: str,
        player_id: str = Depends(require_player),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> SessionResponse:
        variant = resolve_variant(game)
        session = await local_sessions.open(player_id, variant, on_change=publish_session)
        return SessionResponse(state=session.snapshot())

    @app.get("/api/games/{game}/session", response_model=SessionResponse)
    def get_session(
        game: str,
        player_id: str = Depends(require_player),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> SessionResponse:
        session = current_session(local_sessions, player_id, resolve_variant(game))
        return SessionResponse(state=session.snapshot())

    @app.post("/api/games/{game}/answers", response_model=AnswerResponse)
    async def post_answer(
        game: str,
        payload: AnswerRequest,
        player_id: str = Depends(require_player),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> AnswerResponse:
        session = current_session(local_sessions, player_id, resolve_variant(game))
        try:
            result = await session.answer(payload.item_id, payload.value)
        except RemoteUnavailable as exc:
            raise HTTPException(status_code=503, detail=f"Judge unavailable, try again: {exc}") from exc
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return AnswerResponse(result=result, state=session.snapshot())

    @app.post("/api/games/{game}/batch", response_model=AnswerResponse)
    async def post_batch(
        game: str,
        payload: BatchRequest,
        player_id: str = Depends(require_player),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> AnswerResponse:
        session = current_session(local_sessions, player_id, resolve_variant(game))
        try:
            result = await session.answer_batch(payload.answers)
        except RemoteUnavailable as exc:
            raise HTTPException(status_code=503, detail=f"Judge unavailable, try again: {exc}") from exc
        return AnswerResponse(result=result, state=session.snapshot())

    @app.post("/api/games/{game}/finalize", response_model=SessionResponse)
    async def post_finalize(
        game: str,
        player_id: str = Depends(require_player),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> SessionResponse:
        session = current_session(local_sessions, player_id, resolve_variant(game))
        try:
            await session.engine.retry_finalize()
        except PartialFinalizeFailure as exc:
            raise HTTPException(status_code=502, detail=f"Finalize failed, try again: {exc}") from exc
        return SessionResponse(state=session.snapshot())

    @app.put("/api/games/{game}/progress", response_model=ProgressResponse)
    async def put_progress(
        game: str,
        payload: ProgressRequest,
        player_id: str = Depends(require_player),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> ProgressResponse:
        session = current_session(local_sessions, player_id, resolve_variant(game))
        try:
            saved = await session.save_draft(payload.answers)
        except RemoteUnavailable as exc:
            raise HTTPException(status_code=503, detail=f"Judge unavailable, try again: {exc}") from exc
        return ProgressResponse(saved=saved)

    @app.get("/api/leaderboard", response_model=LeaderboardResponse)
    async def get_leaderboard(
        limit: int = 10,
        local_judge: RemoteJudge = Depends(get_judge),
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> LeaderboardResponse:
        try:
            entries = await await_judge(local_judge.leaderboard(limit=limit), local_sessions.timeout_s, "leaderboard")
        except RemoteUnavailable as exc:
            raise HTTPException(status_code=503, detail=f"Judge unavailable, try again: {exc}") from exc
        return LeaderboardResponse(
            entries=[
                LeaderboardRow(
                    player_id=entry.player_id,
                    display_name=entry.display_name,
                    total_score=entry.total_score,
                    completed_levels=entry.completed_levels,
                )
                for entry in entries
            ]
        )

    @app.websocket("/ws/games/{game}")
    async def session_ws(
        websocket: WebSocket,
        game: str,
        local_sessions: SessionRegistry = Depends(get_registry),
    ) -> None:
        player_id = websocket.query_params.get("player_id")
        if player_id is None or player_id == "" or game not in VARIANTS:
            await websocket.close(code=1008)
            return

        channel = SessionWebSocketHub.channel(player_id, game)
        await websocket_hub.connect(channel=channel, websocket=websocket)
        session = local_sessions.get(player_id, game)
        if session is not None:
            await websocket_hub.send_state(websocket=websocket, state=session.snapshot())

        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            websocket_hub.disconnect(channel=channel, websocket=websocket)

    return app


app = create_app()
