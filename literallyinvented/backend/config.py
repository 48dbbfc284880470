"""Configuration helpers for backend runtime."""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class BackendSettings:
    database_url: str | None
    host: str
    port: int
    judge_timeout_s: float
    log_level: str
    shuffle_seed: int | None
    answer_keys_path: str | None


def load_settings() -> BackendSettings:
    port_raw = os.getenv("LITERALLYINVENTED_PORT", "8000")
    timeout_raw = os.getenv("LITERALLYINVENTED_JUDGE_TIMEOUT", "10")
    seed_raw = os.getenv("LITERALLYINVENTED_SEED")
    return BackendSettings(
        database_url=os.getenv("LITERALLYINVENTED_DATABASE_URL") or None,
        host=os.getenv("LITERALLYINVENTED_HOST", "127.0.0.1"),
        port=int(port_raw),
        judge_timeout_s=float(timeout_raw),
        log_level=os.getenv("LITERALLYINVENTED_LOG_LEVEL", "INFO").upper(),
        shuffle_seed=int(seed_raw) if seed_raw else None,
        answer_keys_path=os.getenv("LITERALLYINVENTED_ANSWER_KEYS") or None,
    )
