import logging

import pytest

from literallyinvented.backend import migrate, serve
from literallyinvented.backend.logconfig import configure_logging


def test_answer_key_rows_serializes_expected_values() -> None:
    rows = migrate.answer_key_rows({"timeline": {"timeline": ["1", "2"]}, "bluff": {"1-22": True}})

    assert rows == [
        ("bluff", "1-22", "true"),
        ("timeline", "timeline", '["1", "2"]'),
    ]


def test_migrate_requires_database_url(monkeypatch) -> None:
    monkeypatch.delenv("LITERALLYINVENTED_DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError):
        migrate.main()


def test_serve_arguments_default_to_settings(monkeypatch) -> None:
    monkeypatch.setenv("LITERALLYINVENTED_HOST", "0.0.0.0")
    monkeypatch.setenv("LITERALLYINVENTED_PORT", "9100")

    args = serve.parse_args([])
    overridden = serve.parse_args(["--port", "9200", "--reload"])

    assert args.host == "0.0.0.0"
    assert args.port == 9100
    assert args.reload is False
    assert overridden.port == 9200
    assert overridden.reload is True


def test_configure_logging_installs_one_handler() -> None:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    try:
        configure_logging("DEBUG")
        configure_logging("WARNING")

        added = [handler for handler in root.handlers if handler not in before]
        assert len(added) <= 1
        assert logging.getLogger("literallyinvented").level == logging.WARNING
    finally:
        for handler in root.handlers[:]:
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(level)
