"""Reinitialize logging from an XML descriptor.

The descriptor follows the familiar log4j2 layout and is translated into a
`logging.config.dictConfig` dictionary:

    <Configuration>
      <Properties>
        <Property name="logdir">/var/log/app</Property>
      </Properties>
      <Appenders>
        <Console name="console" target="SYSTEM_ERR">
          <PatternLayout pattern="%d %-5p %c - %m%n"/>
        </Console>
        <RollingFile name="file" fileName="${logdir}/app.log">
          <PatternLayout pattern="%d [%t] %p %c %m%n"/>
          <ThresholdFilter level="info"/>
          <Policies><SizeBasedTriggeringPolicy size="10 MB"/></Policies>
          <DefaultRolloverStrategy max="5"/>
        </RollingFile>
      </Appenders>
      <Loggers>
        <Logger name="app.db" level="warn" additivity="false">
          <AppenderRef ref="file"/>
        </Logger>
        <Root level="info">
          <AppenderRef ref="console"/>
        </Root>
      </Loggers>
    </Configuration>

Element names are matched case-insensitively. Supported appenders are
Console, File, RollingFile and Null.

Public API
----------
- parse(data: bytes | str) -> dict
- configure(source: IO) -> None
- configure_file(path: str | os.PathLike) -> None
"""

from __future__ import annotations

import logging
import logging.config
import os
import re
import xml.etree.ElementTree as ET  # nosec B405
from pathlib import Path
from typing import IO, Any

from .logging_setup import coerce_level

DEFAULT_PATTERN = '%(message)s'
DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_BACKUP_COUNT = 7

_PROP_RE = re.compile(r'\$\{([^}]+)\}')
_CONV_RE = re.compile(r'%(-?\d+)?(?:\.\d+)?([a-zA-Z]+|%)(\{[^}]*\})?')
_SIZE_RE = re.compile(r'^\s*(\d+(?:\.\d+)?)\s*([KMG]?B?)?\s*$', re.IGNORECASE)

# log4j conversion word -> (LogRecord attribute, printf type)
_CONVERSIONS: dict[str, tuple[str, str] | None] = {
    'd': ('asctime', 's'),
    'date': ('asctime', 's'),
    'p': ('levelname', 's'),
    'level': ('levelname', 's'),
    'c': ('name', 's'),
    'logger': ('name', 's'),
    'C': ('module', 's'),
    'class': ('module', 's'),
    'm': ('message', 's'),
    'msg': ('message', 's'),
    'message': ('message', 's'),
    't': ('threadName', 's'),
    'thread': ('threadName', 's'),
    'tn': ('threadName', 's'),
    'F': ('filename', 's'),
    'file': ('filename', 's'),
    'L': ('lineno', 'd'),
    'line': ('lineno', 'd'),
    'M': ('funcName', 's'),
    'method': ('funcName', 's'),
    'r': ('relativeCreated', 'd'),
    'relative': ('relativeCreated', 'd'),
    'pid': ('process', 'd'),
    # Formatter appends tracebacks and line ends itself
    'n': None,
    'ex': None,
    'throwable': None,
}

_SIZE_UNITS = {
    '': 1,
    'B': 1,
    'K': 1024,
    'KB': 1024,
    'M': 1024**2,
    'MB': 1024**2,
    'G': 1024**3,
    'GB': 1024**3,
}


class LogConfigError(OSError):
    """Raised when a descriptor is malformed, truncated or inconsistent."""


def _tag(el: ET.Element) -> str:
    return el.tag.rsplit('}', 1)[-1].lower()


def _children(el: ET.Element, tag: str) -> list[ET.Element]:
    return [c for c in el if _tag(c) == tag]


def _find(el: ET.Element, tag: str) -> ET.Element | None:
    for c in el.iter():
        if c is not el and _tag(c) == tag:
            return c
    return None


class _Substitutor:
    def __init__(self, props: dict[str, str]) -> None:
        self.props = props

    def _lookup(self, m: re.Match[str]) -> str:
        key = m.group(1)
        if key.startswith('env:'):
            return os.environ.get(key[4:], '')
        return self.props.get(key, m.group(0))

    def __call__(self, value: str | None) -> str | None:
        if value is None:
            return None
        return _PROP_RE.sub(self._lookup, value)


def translate_pattern(pattern: str) -> str:
    """Translate a log4j PatternLayout pattern into a %-style format string."""
    out: list[str] = []
    pos = 0

    def literal(text: str) -> None:
        if '%' in text:
            raise LogConfigError(f'dangling % in pattern {pattern!r}')
        out.append(text)

    for m in _CONV_RE.finditer(pattern):
        literal(pattern[pos : m.start()])
        pos = m.end()
        width, word, rest = m.group(1) or '', m.group(2), ''
        if word == '%':
            out.append('%%')
            continue
        if word not in _CONVERSIONS:
            # Longest known conversion wins; the remainder is literal text
            prefix = next(
                (word[:i] for i in range(len(word) - 1, 0, -1) if word[:i] in _CONVERSIONS),
                None,
            )
            if prefix is None:
                raise LogConfigError(f'unsupported pattern conversion %{word} in {pattern!r}')
            word, rest = prefix, word[len(prefix) :] + (m.group(3) or '')
        conv = _CONVERSIONS[word]
        if conv is not None:
            attr, kind = conv
            out.append(f'%({attr}){width}{kind}')
        literal(rest)
    literal(pattern[pos:])
    return ''.join(out)


def parse_size(value: str) -> int:
    m = _SIZE_RE.match(value or '')
    if not m:
        raise LogConfigError(f'invalid size {value!r}')
    unit = (m.group(2) or '').upper()
    return int(float(m.group(1)) * _SIZE_UNITS[unit])


def _level(value: str | None, where: str) -> int:
    try:
        return coerce_level(value or '')
    except ValueError as exc:
        raise LogConfigError(f'invalid level {value!r} on {where}') from exc


def _check_format(fmt: str, name: str) -> None:
    try:
        logging.Formatter(fmt)
    except ValueError as exc:
        raise LogConfigError(f'invalid layout on appender {name!r}: {exc}') from exc


def _required(el: ET.Element, attr: str, sub: _Substitutor) -> str:
    value = sub(el.get(attr))
    if not value:
        raise LogConfigError(f'<{el.tag}> requires attribute {attr!r}')
    return value


def _handler_config(el: ET.Element, name: str, sub: _Substitutor) -> dict[str, Any]:
    kind = _tag(el)
    if kind == 'console':
        target = (sub(el.get('target')) or 'SYSTEM_OUT').upper()
        if target not in ('SYSTEM_OUT', 'SYSTEM_ERR'):
            raise LogConfigError(f'invalid console target {target!r} on appender {name!r}')
        stream = 'ext://sys.stdout' if target == 'SYSTEM_OUT' else 'ext://sys.stderr'
        return {'class': 'logging.StreamHandler', 'stream': stream}
    if kind == 'file':
        append = (sub(el.get('append')) or 'true').lower() != 'false'
        return {
            'class': 'logging.FileHandler',
            'filename': _required(el, 'fileName', sub),
            'mode': 'a' if append else 'w',
            'encoding': 'utf-8',
        }
    if kind == 'rollingfile':
        policy = _find(el, 'sizebasedtriggeringpolicy')
        strategy = _find(el, 'defaultrolloverstrategy')
        max_bytes = DEFAULT_MAX_BYTES
        if policy is not None:
            max_bytes = parse_size(sub(policy.get('size')) or '')
        backups = DEFAULT_BACKUP_COUNT
        if strategy is not None and strategy.get('max'):
            try:
                backups = int(sub(strategy.get('max')) or '')
            except ValueError as exc:
                raise LogConfigError(f'invalid rollover max on appender {name!r}') from exc
        return {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': _required(el, 'fileName', sub),
            'maxBytes': max_bytes,
            'backupCount': backups,
            'encoding': 'utf-8',
        }
    if kind == 'null':
        return {'class': 'logging.NullHandler'}
    raise LogConfigError(f'unsupported appender type <{el.tag}>')


def _logger_config(
    el: ET.Element, where: str, handlers: dict[str, Any], sub: _Substitutor
) -> dict[str, Any]:
    conf: dict[str, Any] = {'handlers': []}
    level = sub(el.get('level'))
    if level:
        conf['level'] = _level(level, where)
    for ref in _children(el, 'appenderref'):
        target = _required(ref, 'ref', sub)
        if target not in handlers:
            raise LogConfigError(f'{where} references unknown appender {target!r}')
        conf['handlers'].append(target)
    return conf


def parse(data: bytes | str) -> dict[str, Any]:
    """Translate descriptor text into a dictConfig dictionary.

    Raises LogConfigError for malformed XML or an inconsistent descriptor.
    Does not touch logging state.
    """
    try:
        root = ET.fromstring(data)  # nosec B314
    except ET.ParseError as exc:
        raise LogConfigError(f'malformed logging descriptor: {exc}') from exc
    if _tag(root) != 'configuration':
        raise LogConfigError(f'expected <Configuration> root element, got <{root.tag}>')

    props: dict[str, str] = {}
    sub = _Substitutor(props)
    for section in _children(root, 'properties'):
        for prop in _children(section, 'property'):
            props[_required(prop, 'name', sub)] = sub(prop.text or '') or ''

    formatters: dict[str, Any] = {}
    handlers: dict[str, Any] = {}
    for section in _children(root, 'appenders'):
        for el in section:
            name = _required(el, 'name', sub)
            if name in handlers:
                raise LogConfigError(f'duplicate appender name {name!r}')
            handler = _handler_config(el, name, sub)
            layout = _find(el, 'patternlayout')
            pattern = sub(layout.get('pattern')) if layout is not None else None
            fmt = translate_pattern(pattern) if pattern else DEFAULT_PATTERN
            _check_format(fmt, name)
            formatters[name] = {'format': fmt}
            if handler['class'] != 'logging.NullHandler':
                handler['formatter'] = name
            threshold = _find(el, 'thresholdfilter')
            if threshold is not None:
                handler['level'] = _level(sub(threshold.get('level')), f'appender {name!r}')
            handlers[name] = handler

    config: dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': formatters,
        'handlers': handlers,
        'loggers': {},
    }
    for section in _children(root, 'loggers'):
        for el in section:
            kind = _tag(el)
            if kind == 'root':
                config['root'] = _logger_config(el, '<Root>', handlers, sub)
            elif kind == 'logger':
                name = _required(el, 'name', sub)
                conf = _logger_config(el, f'logger {name!r}', handlers, sub)
                conf['propagate'] = (sub(el.get('additivity')) or 'true').lower() != 'false'
                config['loggers'][name] = conf
            else:
                raise LogConfigError(f'unsupported logger element <{el.tag}>')
    return config


_LoggerState = tuple[int, list[logging.Handler], bool, bool]


def _all_loggers() -> list[logging.Logger]:
    loggers: list[logging.Logger] = [logging.getLogger()]
    loggers.extend(
        lg
        for lg in list(logging.root.manager.loggerDict.values())
        if isinstance(lg, logging.Logger)
    )
    return loggers


def _apply_state(lg: logging.Logger, state: _LoggerState) -> None:
    level, handlers, propagate, disabled = state
    lg.setLevel(level)
    for h in list(lg.handlers):
        lg.removeHandler(h)
    for h in handlers:
        lg.addHandler(h)
    lg.propagate = propagate
    lg.disabled = disabled


def _snapshot() -> dict[logging.Logger, _LoggerState]:
    return {
        lg: (lg.level, list(lg.handlers), lg.propagate, lg.disabled) for lg in _all_loggers()
    }


def _restore(saved: dict[logging.Logger, _LoggerState]) -> None:
    kept = {h for state in saved.values() for h in state[1]}
    for lg in _all_loggers():
        # Handlers opened by the failed configuration are dropped
        for h in lg.handlers:
            if h not in kept:
                h.close()
        _apply_state(lg, saved.get(lg, (logging.NOTSET, [], True, False)))


def _reset_loggers() -> None:
    root = logging.getLogger()
    for lg in _all_loggers():
        _apply_state(lg, (logging.NOTSET, [], True, False))
    root.setLevel(logging.WARNING)


def _ensure_log_dirs(config: dict[str, Any]) -> None:
    for handler in config['handlers'].values():
        filename = handler.get('filename')
        if filename:
            Path(filename).parent.mkdir(parents=True, exist_ok=True)


def configure(source: IO[Any]) -> None:
    """Replace the whole logging configuration with the descriptor in `source`.

    The stream is read to the end before anything changes. Read failures
    propagate as OSError; a malformed or truncated descriptor raises
    LogConfigError and leaves the current configuration in place.
    """
    data = source.read()
    config = parse(data)
    _ensure_log_dirs(config)
    saved = _snapshot()
    _reset_loggers()
    try:
        logging.config.dictConfig(config)
    except (ValueError, TypeError, AttributeError, ImportError) as exc:
        _restore(saved)
        raise LogConfigError(f'logging configuration failed: {exc}') from exc
    logging.getLogger(__name__).debug(
        'Logging reconfigured (appenders=%s loggers=%s)',
        ','.join(config['handlers']) or 'none',
        ','.join(config['loggers']) or 'none',
    )


def configure_file(path: str | os.PathLike[str]) -> None:
    with Path(path).open('rb') as f:
        configure(f)


__all__ = [
    'LogConfigError',
    'configure',
    'configure_file',
    'parse',
    'parse_size',
    'translate_pattern',
]
