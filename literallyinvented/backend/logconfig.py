"""Logging setup shared by the API server and the migration script."""

from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    root = logging.getLogger()
    root.setLevel(level)
    if any(getattr(handler, "_literallyinvented", False) for handler in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler._literallyinvented = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    logging.getLogger("literallyinvented").setLevel(level)
