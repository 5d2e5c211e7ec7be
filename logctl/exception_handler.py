"""Report uncaught exceptions to the logging system.

Once registered, exceptions escaping the main thread (`sys.excepthook`) or a
worker thread (`threading.excepthook`) are logged at ERROR on the configured
logger instead of being printed to stderr.

Public API
----------
- register(logger: logging.Logger | None = None) -> LogExceptionHandler
- LogExceptionHandler.handle(thread, exc) -> None
"""

from __future__ import annotations

import logging
import os
import sys
import threading
from types import TracebackType
from typing import Any

# Environment property naming the active handler class, read by GUI toolkits
# that route event-loop exceptions to a handler looked up by name.
HANDLER_ENV = 'LOGCTL_EXCEPTION_HANDLER'


class LogExceptionHandler:
    def __init__(self, logger: logging.Logger) -> None:
        self.logger = logger

    @classmethod
    def qualified_name(cls) -> str:
        return f'{cls.__module__}.{cls.__qualname__}'

    def handle(self, thread: threading.Thread | None, exc: BaseException) -> None:
        """Log `exc` raised on `thread` at ERROR; never raises."""
        try:
            name = thread.name if thread is not None else '<unknown>'
            self.logger.error(
                'unhandled exception caught in thread %s',
                name,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
        except Exception:  # noqa: S110
            # Raising from the process-wide hook would re-enter it.
            pass

    def __call__(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: TracebackType | None,
    ) -> None:
        if exc is None:
            exc = exc_type()
        if tb is not None and exc.__traceback__ is None:
            exc = exc.with_traceback(tb)
        self.handle(threading.current_thread(), exc)

    def thread_hook(self, args: Any) -> None:
        """Adapter for `threading.excepthook` (receives ExceptHookArgs)."""
        if args.exc_type is SystemExit:
            return
        exc = args.exc_value
        if exc is None:
            exc = args.exc_type()
        self.handle(args.thread, exc)


def register(logger: logging.Logger | None = None) -> LogExceptionHandler:
    """Install a LogExceptionHandler as the process default exception hook.

    Uses the root logger when `logger` is omitted. Later calls replace the
    previously installed handler.
    """
    handler = LogExceptionHandler(logger if logger is not None else logging.getLogger())
    sys.excepthook = handler
    threading.excepthook = handler.thread_hook
    os.environ[HANDLER_ENV] = LogExceptionHandler.qualified_name()
    logging.getLogger(__name__).debug(
        'Uncaught exception handler registered (logger=%s)', handler.logger.name
    )
    return handler


__all__ = ['HANDLER_ENV', 'LogExceptionHandler', 'register']
