import logging

import pytest

from durable_directives.logger import LOG_LEVEL_ENV, configure, set_level


def test_configure_reuses_handler() -> None:
    first = configure("durable_directives.test_reuse")
    second = configure("durable_directives.test_reuse")
    assert first is second
    tagged = [h for h in first.handlers if getattr(h, "_durable_directives", False)]
    assert len(tagged) == 1


def test_level_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "debug")
    assert configure("durable_directives.test_env").level == logging.DEBUG


def test_unknown_level_falls_back_to_warning(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv(LOG_LEVEL_ENV, "chatty")
    assert configure("durable_directives.test_bad_env").level == logging.WARNING


def test_set_level_applies_to_package_loggers() -> None:
    ours = configure("durable_directives.test_set_level")
    other = logging.getLogger("unrelated.test_set_level")
    other.setLevel(logging.ERROR)
    try:
        set_level("INFO")
        assert ours.level == logging.INFO
        assert other.level == logging.ERROR
    finally:
        set_level(logging.WARNING)
