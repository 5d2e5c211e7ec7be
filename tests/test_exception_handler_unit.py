from __future__ import annotations

import logging
import os
import sys
import threading

import pytest

from logctl import exception_handler as eh


class _ExplodingLogger(logging.Logger):
    def error(self, *args, **kwargs):  # type: ignore[override]
        raise RuntimeError('sink down')


def _run_in_thread(target, name: str = 'worker-1') -> None:
    t = threading.Thread(target=target, name=name)
    t.start()
    t.join(timeout=5)
    assert not t.is_alive()


@pytest.mark.unit
def test_register_installs_process_hooks_and_env_property():
    handler = eh.register()
    assert sys.excepthook is handler
    assert threading.excepthook == handler.thread_hook
    assert handler.logger is logging.getLogger()
    assert os.environ[eh.HANDLER_ENV] == 'logctl.exception_handler.LogExceptionHandler'


@pytest.mark.unit
def test_worker_thread_exception_logged_once_at_error(capture):
    logger = logging.getLogger('tests.crash')
    logger.propagate = False
    records = capture('tests.crash')
    eh.register(logger)

    def boom() -> None:
        raise ValueError('worker exploded')

    _run_in_thread(boom, name='worker-1')

    assert len(records.records) == 1
    rec = records.records[0]
    assert rec.levelno == logging.ERROR
    assert 'worker-1' in rec.getMessage()
    assert rec.exc_info is not None
    assert isinstance(rec.exc_info[1], ValueError)
    assert str(rec.exc_info[1]) == 'worker exploded'


@pytest.mark.unit
def test_main_thread_hook_reports_current_thread(capture):
    logger = logging.getLogger('tests.crash.main')
    logger.propagate = False
    records = capture('tests.crash.main')
    handler = eh.register(logger)

    try:
        raise KeyError('missing')
    except KeyError:
        sys.excepthook(*sys.exc_info())

    assert handler is sys.excepthook
    assert len(records.records) == 1
    rec = records.records[0]
    assert threading.current_thread().name in rec.getMessage()
    assert rec.exc_info[0] is KeyError
    assert rec.exc_info[2] is not None


@pytest.mark.unit
def test_handle_swallows_sink_failures():
    handler = eh.LogExceptionHandler(_ExplodingLogger('tests.exploding'))
    # Must return normally even though the sink raises
    assert handler.handle(threading.current_thread(), RuntimeError('original')) is None
    assert handler.handle(None, RuntimeError('no thread')) is None


@pytest.mark.unit
def test_exploding_sink_does_not_escape_worker_hook():
    eh.register(_ExplodingLogger('tests.exploding.worker'))
    finished = threading.Event()

    def boom() -> None:
        finished.set()
        raise RuntimeError('worker exploded')

    _run_in_thread(boom)
    assert finished.is_set()
    # Calling the installed hooks directly must not raise either
    sys.excepthook(RuntimeError, RuntimeError('direct'), None)


@pytest.mark.unit
def test_system_exit_on_worker_is_not_reported(capture):
    logger = logging.getLogger('tests.crash.exit')
    logger.propagate = False
    records = capture('tests.crash.exit')
    eh.register(logger)

    def leave() -> None:
        raise SystemExit(0)

    _run_in_thread(leave)
    assert records.records == []


@pytest.mark.unit
def test_last_registration_wins(capture):
    first = logging.getLogger('tests.crash.first')
    second = logging.getLogger('tests.crash.second')
    first.propagate = second.propagate = False
    rec_first = capture('tests.crash.first')
    rec_second = capture('tests.crash.second')
    eh.register(first)
    eh.register(second)

    def boom() -> None:
        raise ValueError('late')

    _run_in_thread(boom)
    assert rec_first.records == []
    assert len(rec_second.records) == 1
