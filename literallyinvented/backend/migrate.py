"""Apply SQL schema and answer keys for local PostgreSQL setup."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from literallyinvented.backend.config import load_settings
from literallyinvented.backend.content import load_answer_keys
from literallyinvented.backend.logconfig import configure_logging

logger = logging.getLogger(__name__)


def answer_key_rows(answer_keys: dict[str, dict[str, Any]]) -> list[tuple[str, str, str]]:
    return [
        (game, item_id, json.dumps(expected))
        for game, answers in sorted(answer_keys.items())
        for item_id, expected in sorted(answers.items())
    ]


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    if not settings.database_url:
        raise RuntimeError("LITERALLYINVENTED_DATABASE_URL is required for migration")

    import psycopg

    schema_path = Path(__file__).with_name("db_schema.sql")
    schema_sql = schema_path.read_text(encoding="utf-8")
    rows = answer_key_rows(load_answer_keys(settings.answer_keys_path))

    with psycopg.connect(settings.database_url) as conn:
        with conn.cursor() as cur:
            cur.execute(schema_sql)
            cur.executemany(
                """
                INSERT INTO answer_keys (game, item_id, expected)
                VALUES (%s, %s, %s::jsonb)
                ON CONFLICT (game, item_id) DO UPDATE SET expected = EXCLUDED.expected
                """,
                rows,
            )
        conn.commit()
    logger.info("schema applied, %d answer keys loaded", len(rows))


if __name__ == "__main__":
    main()
