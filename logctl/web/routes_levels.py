from __future__ import annotations

import io
import logging
from typing import Any, cast

from flask import Blueprint, abort, jsonify, request
from flask.typing import ResponseReturnValue

from .. import levels as _levels
from .. import xml_config as _xml_config
from .auth import token_required

bp = Blueprint('levels', __name__)

KEY_ERROR = 'error'
KEY_STATUS = 'status'
STATUS_OK = 'ok'


def _level_from_body() -> str:
    data = request.get_json(force=True, silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        abort(400, 'body must be a JSON object')
    raw = cast(dict[str, Any], data).get('level')
    level_s = '' if raw is None else str(raw).strip()
    if not level_s:
        abort(400, 'level is required')
    return level_s


@bp.route('/logs/levels', methods=['GET'])
@token_required
def all_levels() -> ResponseReturnValue:
    """Return {"levels": {logger name: level name}} for root and registered loggers."""
    return jsonify({'levels': _levels.get_levels()})


@bp.route('/logs/level', methods=['PUT'])
@token_required
def set_all_levels() -> ResponseReturnValue:
    """Set every logger, root included, to the level in body JSON {"level": ...}."""
    level_s = _level_from_body()
    logging.getLogger('api').debug('Set all log levels level=%s', level_s)
    try:
        _levels.set_all_level(level_s)
    except ValueError as exc:
        return jsonify({KEY_ERROR: str(exc)}), 400
    return jsonify({KEY_STATUS: STATUS_OK})


@bp.route('/logs/level/<name>', methods=['GET', 'PUT'])
@token_required
def logger_level(name: str) -> ResponseReturnValue:
    """Get or set the level of one logger ("root" names the root logger).

    Methods:
      - GET:  {"name": <name>, "level": <str>}; 404 if the logger was never created
      - PUT:  Body JSON {"level": "WARNING|INFO|DEBUG|<number>"}; responds with
              {"name", "level", "previous"} so a client can restore the old level.

    Errors:
      - 400 if level is missing or unknown on PUT
    """
    if request.method == 'GET':
        try:
            lvl = _levels.get_level(name, strict=True)
        except LookupError:
            abort(404)
        logging.getLogger('api').debug('Get log level name=%s level=%s', name, lvl)
        return jsonify({'name': name, 'level': logging.getLevelName(lvl)})
    level_s = _level_from_body()
    logging.getLogger('api').debug('Set log level name=%s level=%s', name, level_s)
    try:
        previous = _levels.set_level(name, level_s)
    except ValueError as exc:
        return jsonify({KEY_ERROR: str(exc)}), 400
    return jsonify(
        {
            'name': name,
            'level': logging.getLevelName(_levels.get_level(name)),
            'previous': logging.getLevelName(previous),
        }
    )


@bp.route('/logs/config', methods=['PUT'])
@token_required
def reload_config() -> ResponseReturnValue:
    """Replace the logging configuration with the XML descriptor in the request body."""
    body = request.get_data()
    if not body:
        abort(400, 'descriptor body is required')
    logging.getLogger('api').info('Reloading logging configuration (%d bytes)', len(body))
    try:
        _xml_config.configure(io.BytesIO(body))
    except OSError as exc:
        logging.getLogger('api').warning('Logging configuration rejected: %s', exc)
        return jsonify({KEY_ERROR: str(exc)}), 400
    return jsonify({KEY_STATUS: STATUS_OK})
