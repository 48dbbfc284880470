"""Backend package for Literally Invented."""

from .config import BackendSettings, load_settings
from .engine import SessionEngine
from .errors import AuthMissing, GameError, InvalidTransition, PartialFinalizeFailure, RemoteUnavailable
from .judge import InMemoryRemoteJudge, PostgresRemoteJudge, RemoteJudge, create_judge
from .logconfig import configure_logging
from .permission import check_play_permission
from .reconcile import reconcile
from .registry import SessionRegistry
from .shuffle import shuffle
from .state import Phase, SessionState, build_initial_state
from .variants import VARIANTS, GameVariant, get_variant

__all__ = [
    "AuthMissing",
    "BackendSettings",
    "build_initial_state",
    "check_play_permission",
    "configure_logging",
    "create_judge",
    "GameError",
    "GameVariant",
    "get_variant",
    "InMemoryRemoteJudge",
    "InvalidTransition",
    "load_settings",
    "PartialFinalizeFailure",
    "Phase",
    "PostgresRemoteJudge",
    "reconcile",
    "RemoteJudge",
    "RemoteUnavailable",
    "SessionEngine",
    "SessionRegistry",
    "SessionState",
    "shuffle",
    "VARIANTS",
]
