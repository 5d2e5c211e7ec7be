"""Runtime log-level overrides.

Levels may be given as ints, numeric strings or level names (see
logging_setup.coerce_level). `Logger.setLevel` clears the logging manager's
isEnabledFor cache, so a change is visible to every existing logger object as
soon as the call returns.
"""

from __future__ import annotations

import logging

from .logging_setup import coerce_level

ROOT_NAMES = ('', 'root')


class UnknownLoggerError(LookupError):
    """Raised by strict lookups for a logger that was never created."""


def _resolve(name: str | None, strict: bool = False) -> logging.Logger:
    if name is None or name in ROOT_NAMES:
        return logging.getLogger()
    if strict and not isinstance(logging.root.manager.loggerDict.get(name), logging.Logger):
        raise UnknownLoggerError(name)
    return logging.getLogger(name)


def _registered_loggers() -> list[logging.Logger]:
    # loggerDict also holds PlaceHolder nodes for dotted parents never requested
    return [
        lg
        for lg in list(logging.root.manager.loggerDict.values())
        if isinstance(lg, logging.Logger)
    ]


def set_level(name: str | None, level: str | int, strict: bool = False) -> int:
    """Override the level of logger `name` and return its previous level.

    The previous value is the logger's own level (NOTSET when it inherits),
    so passing it back restores the original behavior. Unknown names create a
    logger that inherits from its ancestors, unless `strict` is set, in which
    case UnknownLoggerError is raised.
    """
    lvl = coerce_level(level)
    logger = _resolve(name, strict=strict)
    previous = logger.level
    logger.setLevel(lvl)
    logging.getLogger(__name__).debug(
        'Log level changed name=%s level=%s previous=%s',
        logger.name,
        logging.getLevelName(lvl),
        logging.getLevelName(previous),
    )
    return previous


def set_all_level(level: str | int) -> None:
    """Set root and every registered logger to `level`.

    Previous levels are not kept; record them with get_levels() first if they
    need restoring.
    """
    lvl = coerce_level(level)
    logging.getLogger().setLevel(lvl)
    for logger in _registered_loggers():
        logger.setLevel(lvl)
    logging.getLogger(__name__).debug('All log levels changed to %s', logging.getLevelName(lvl))


def get_level(name: str | None, strict: bool = False) -> int:
    return _resolve(name, strict=strict).level


def get_levels() -> dict[str, str]:
    levels = {'root': logging.getLevelName(logging.getLogger().level)}
    for logger in _registered_loggers():
        levels[logger.name] = logging.getLevelName(logger.level)
    return dict(sorted(levels.items()))


__all__ = ['UnknownLoggerError', 'get_level', 'get_levels', 'set_all_level', 'set_level']
