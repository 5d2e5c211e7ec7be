"""Pytest configuration.

Tests here mutate process-wide logging state and exception hooks; the autouse
fixtures below put everything back so tests stay independent.
"""

from __future__ import annotations

import logging
import sys
import threading
from logging import Logger

import pytest

from logctl.exception_handler import HANDLER_ENV


@pytest.fixture(autouse=True)
def _restore_root_logger() -> None:
    root: Logger = logging.getLogger()
    old_level = root.level
    old_handlers = list(root.handlers)
    try:
        yield
    finally:
        root.setLevel(old_level)
        # Remove any handlers added during the test and restore originals
        for h in list(root.handlers):
            if h not in old_handlers:
                root.removeHandler(h)
                h.close()
        for h in old_handlers:
            if h not in root.handlers:
                root.addHandler(h)


@pytest.fixture(autouse=True)
def _restore_named_loggers() -> None:
    before = {
        name: (lg.level, list(lg.handlers), lg.propagate, lg.disabled)
        for name, lg in list(logging.root.manager.loggerDict.items())
        if isinstance(lg, logging.Logger)
    }
    yield
    for name, lg in list(logging.root.manager.loggerDict.items()):
        if not isinstance(lg, logging.Logger):
            continue
        level, handlers, propagate, disabled = before.get(name, (logging.NOTSET, [], True, False))
        lg.setLevel(level)
        for h in list(lg.handlers):
            if h not in handlers:
                lg.removeHandler(h)
                h.close()
        for h in handlers:
            if h not in lg.handlers:
                lg.addHandler(h)
        lg.propagate = propagate
        lg.disabled = disabled


@pytest.fixture(autouse=True)
def _restore_exception_hooks(monkeypatch: pytest.MonkeyPatch) -> None:
    # monkeypatch restores the originals at teardown
    monkeypatch.setattr(sys, 'excepthook', sys.excepthook)
    monkeypatch.setattr(threading, 'excepthook', threading.excepthook)
    monkeypatch.delenv(HANDLER_ENV, raising=False)


class ListHandler(logging.Handler):
    """Collects records; attached directly to the logger under test."""

    def __init__(self) -> None:
        super().__init__(logging.NOTSET)
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)

    def messages(self) -> list[str]:
        return [r.getMessage() for r in self.records]


@pytest.fixture
def capture():
    """Return a factory attaching a ListHandler to a named logger."""

    def _attach(name: str | None = None) -> ListHandler:
        handler = ListHandler()
        logging.getLogger(name).addHandler(handler)
        return handler

    return _attach
