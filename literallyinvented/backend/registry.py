"""Open sessions keyed by player and game."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

from literallyinvented.backend.crossword import CrosswordSession
from literallyinvented.backend.engine import DEFAULT_TIMEOUT_S, SessionEngine
from literallyinvented.backend.judge import RemoteJudge
from literallyinvented.backend.matching import MatchingSession
from literallyinvented.backend.sessions import BluffSession, GameSession
from literallyinvented.backend.timeline import TimelineSession
from literallyinvented.backend.variants import BLUFF, CROSSWORD, MATCHING, TIMELINE, GameVariant

logger = logging.getLogger(__name__)

_SESSION_TYPES: dict[str, type[GameSession]] = {
    MATCHING.key: MatchingSession,
    TIMELINE.key: TimelineSession,
    CROSSWORD.key: CrosswordSession,
    BLUFF.key: BluffSession,
}


def create_session(engine: SessionEngine) -> GameSession:
    return _SESSION_TYPES.get(engine.variant.key, GameSession)(engine)


@dataclass
class SessionRegistry:
    judge: RemoteJudge
    timeout_s: float | None = DEFAULT_TIMEOUT_S
    rng: random.Random | None = None

    def __post_init__(self) -> None:
        self._sessions: dict[tuple[str, str], GameSession] = {}

    def get(self, player_id: str, game: str) -> GameSession | None:
        return self._sessions.get((player_id, game))

    async def open(
        self,
        player_id: str,
        variant: GameVariant,
        on_change: Callable[[GameSession], Awaitable[None]] | None = None,
    ) -> GameSession:
        """Start a fresh session, tearing down any previous one for the same game."""
        engine = SessionEngine(
            judge=self.judge,
            player_id=player_id,
            variant=variant,
            rng=self.rng,
            timeout_s=self.timeout_s,
        )
        session = create_session(engine)
        if on_change is not None:
            engine.add_listener(lambda _state: on_change(session))
        self.close(player_id, variant.key)
        try:
            await session.start()
        except Exception:
            session.close()
            raise
        self._sessions[(player_id, variant.key)] = session
        return session

    def close(self, player_id: str, game: str) -> None:
        previous = self._sessions.pop((player_id, game), None)
        if previous is not None:
            logger.debug("closing previous %s session for %s", game, player_id)
            previous.close()

    def close_all(self) -> None:
        for session in self._sessions.values():
            session.close()
        self._sessions.clear()
