"""Rebuild session state from what the judge already stored."""

from __future__ import annotations

import logging
import random
from typing import Sequence

from literallyinvented.backend.errors import AuthMissing, RemoteUnavailable
from literallyinvented.backend.judge import RemoteJudge, await_judge
from literallyinvented.backend.models import Item
from literallyinvented.backend.shuffle import shuffle
from literallyinvented.backend.state import Phase, SessionState, build_initial_state
from literallyinvented.backend.variants import GameVariant

logger = logging.getLogger(__name__)


async def reconcile(
    judge: RemoteJudge,
    player_id: str | None,
    variant: GameVariant,
    pool: Sequence[Item],
    rng: random.Random | None = None,
    timeout_s: float | None = None,
) -> SessionState:
    """Return the resumed state for ``player_id`` in ``variant``.

    A finalized score short-circuits to ``COMPLETED``. A session whose items
    are all resolved but never finalized comes back as ``FINALIZING`` and the
    caller is expected to finalize it. If the judge cannot be queried the
    session opens fresh with the whole pool.
    """
    if not player_id:
        raise AuthMissing()

    state = build_initial_state(game=variant.key, player_id=player_id)
    try:
        final = await await_judge(
            judge.get_finalized_score(player_id, variant.key), timeout_s, "get_finalized_score"
        )
        if final is not None:
            state.final = final
            state.running_score = final.score
            state.correct_count = final.correct_count
            state.advance(Phase.COMPLETED)
            return state

        progress = await await_judge(
            judge.get_partial_progress(player_id, variant.key), timeout_s, "get_partial_progress"
        )
    except RemoteUnavailable as exc:
        logger.warning("progress lookup failed for %s/%s, starting fresh: %s", player_id, variant.key, exc)
        state.last_error = str(exc)
        state.pending = shuffle(pool, rng)
        state.advance(Phase.IN_PROGRESS)
        return state

    pool_ids = {item.id for item in pool}
    for record in progress.records:
        if record.item_id not in pool_ids:
            logger.info("ignoring stored answer for unknown item %s in %s", record.item_id, variant.key)
            continue
        if record.item_id in state.locked:
            continue
        state.answered[record.item_id] = record
        state.locked.add(record.item_id)
        if record.is_correct:
            state.correct_count += 1

    state.attempts = {
        item_id: count for item_id, count in progress.attempts.items() if item_id in pool_ids
    }
    state.running_score = progress.score
    state.pending = shuffle([item for item in pool if item.id not in state.locked], rng)

    if not state.pending:
        state.advance(Phase.FINALIZING)
    else:
        state.advance(Phase.IN_PROGRESS)
    logger.debug(
        "reconciled %s/%s: %d locked, %d pending, phase %s",
        player_id,
        variant.key,
        len(state.locked),
        len(state.pending),
        state.phase.value,
    )
    return state
