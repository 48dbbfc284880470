"""Error taxonomy for session play."""

from __future__ import annotations


class GameError(Exception):
    """Base class for errors raised by the session engine."""


class RemoteUnavailable(GameError):
    """The judge could not be reached or did not answer in time.

    Local state is left untouched when this is raised, so the triggering
    action can be retried.
    """


class InvalidTransition(GameError):
    """A submission or phase change that the current session state forbids."""


class PartialFinalizeFailure(GameError):
    """Every item is resolved but the finalize call did not complete."""


class AuthMissing(GameError):
    """No player identity was supplied."""

    def __init__(self, message: str = "not authenticated") -> None:
        super().__init__(message)
