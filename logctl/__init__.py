"""Runtime control of Python logging.

- Routes uncaught thread exceptions into logging via `logctl.exception_handler`.
- Changes logger levels at runtime via `logctl.levels`.
- Reloads logging from an XML descriptor via `logctl.xml_config`.

Usage examples:
    from logctl import __version__
    from logctl import levels, exception_handler
"""

from __future__ import annotations

import importlib as _importlib
from importlib.metadata import PackageNotFoundError as _PackageNotFoundError
from importlib.metadata import version as _ver
from typing import Any as _Any

try:
    __version__ = _ver('logctl')
except _PackageNotFoundError:  # editable/dev without installed metadata
    __version__ = '0.0.0'

_SUBMODULES = ('config', 'exception_handler', 'levels', 'logging_setup', 'xml_config')

__all__ = ['__version__', *_SUBMODULES]


def __getattr__(name: str) -> _Any:  # PEP 562 lazy import of submodules
    if name in _SUBMODULES:
        return _importlib.import_module(f'.{name}', __name__)
    raise AttributeError(f'module {__name__!r} has no attribute {name!r}')
