"""Whether a player may (re)start a game."""

from __future__ import annotations

import logging

from literallyinvented.backend.errors import AuthMissing, RemoteUnavailable
from literallyinvented.backend.judge import RemoteJudge, await_judge
from literallyinvented.backend.models import PermissionResult, PlayPermission
from literallyinvented.backend.variants import GameVariant

logger = logging.getLogger(__name__)


async def check_play_permission(
    judge: RemoteJudge,
    player_id: str | None,
    variant: GameVariant,
    timeout_s: float | None = None,
) -> PermissionResult:
    """Return ``UNKNOWN`` rather than guessing when the judge cannot answer."""
    if not player_id:
        raise AuthMissing()
    try:
        final = await await_judge(
            judge.get_finalized_score(player_id, variant.key), timeout_s, "get_finalized_score"
        )
        if final is not None:
            return PermissionResult(
                permission=PlayPermission.DENIED,
                reason=f"{variant.title} already completed",
                existing_score=final,
            )
        if variant.max_attempts is None:
            return PermissionResult(permission=PlayPermission.ALLOWED)
        progress = await await_judge(
            judge.get_partial_progress(player_id, variant.key), timeout_s, "get_partial_progress"
        )
    except RemoteUnavailable as exc:
        logger.warning("permission check failed for %s/%s: %s", player_id, variant.key, exc)
        return PermissionResult(permission=PlayPermission.UNKNOWN, reason=str(exc))

    used = max(progress.attempts.values(), default=0)
    if used >= variant.max_attempts:
        return PermissionResult(
            permission=PlayPermission.DENIED,
            reason=f"{variant.title} completed - maximum {variant.max_attempts} attempts used",
        )
    return PermissionResult(permission=PlayPermission.ALLOWED)
