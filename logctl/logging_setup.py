from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s %(message)s'


def coerce_level(level: str | int, default: int | None = None) -> int:
    """Return the numeric logging level for an int, numeric string or level name.

    Names are matched case-insensitively against the levels registered with
    `logging` (so WARN/FATAL aliases and custom levels work). Unknown names
    raise ValueError unless a default is given.
    """
    if isinstance(level, int):
        return level
    raw = str(level).strip()
    try:
        return int(raw)
    except ValueError:
        pass
    resolved = logging.getLevelName(raw.upper())
    if isinstance(resolved, int):
        return resolved
    if default is not None:
        return default
    raise ValueError(f'unknown log level: {level!r}')


def _set_handler_level_safely(handler: logging.Handler, level: int) -> None:
    try:
        handler.setLevel(level)
    except Exception:
        logging.debug('Could not set handler level', exc_info=True)


def configure_logging(
    service: str,
    level_env: str,
    file_env: str | None = None,
    default: str | int = 'INFO',
    level: str | int | None = None,
    path: str | None = None,
) -> None:
    """Set the root level and attach a rotating file handler.

    Explicit `level` and `path` take precedence over the `level_env` and
    `file_env` environment variables.
    """
    raw = str(level if level is not None else (os.environ.get(level_env) or default)).strip()
    lvl = coerce_level(raw, default=logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)
    for h in list(root.handlers):
        _set_handler_level_safely(h, lvl)
    path_s = path or (os.environ.get(file_env) if file_env else None)
    if path_s:
        try:
            p = Path(path_s)
            p.parent.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(str(p), maxBytes=10 * 1024 * 1024, backupCount=5)
            fh.setLevel(lvl)
            fh.setFormatter(logging.Formatter(LOG_FORMAT))
            if not any(
                isinstance(h, RotatingFileHandler)
                and getattr(h, 'baseFilename', '') == fh.baseFilename
                for h in root.handlers
            ):
                root.addHandler(fh)
            else:
                fh.close()
        except Exception:
            logging.warning('Could not set up file logging at %s', path_s, exc_info=True)
    logging.info(
        '%s logging initialized (level=%s file=%s)',
        service,
        logging.getLevelName(lvl),
        path_s or 'none',
    )


__all__ = ['LOG_FORMAT', 'coerce_level', 'configure_logging']
