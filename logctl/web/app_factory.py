from __future__ import annotations

import logging
import time
from contextlib import suppress
from typing import Any, Final

from flask import Flask, g, request

from .. import exception_handler as _exception_handler
from .. import xml_config as _xml_config
from ..config import Config, load_config
from ..logging_setup import configure_logging
from .auth import CFG_TOKEN

_CFG_SETTINGS: Final[str] = 'logctl_config'


def _install_request_logging_hooks(app: Flask) -> None:
    @app.before_request
    def _log_request_start() -> None:
        g.request_start_time = time.time()
        logging.getLogger('api').info(
            'API %s %s from=%s',
            request.method,
            request.path,
            request.remote_addr,
        )

    @app.after_request
    def _log_request_end(response):
        try:
            start = getattr(g, 'request_start_time', None)
            dur_ms = (time.time() - start) * 1000.0 if start else 0.0
        except Exception:
            dur_ms = 0.0
        logging.getLogger('api').info(
            'API done %s %s status=%s duration=%.1fms',
            request.method,
            request.path,
            response.status_code,
            dur_ms,
        )
        return response

    @app.teardown_request
    def _log_request_teardown(exc):  # pragma: no cover - integration behavior
        if exc is not None:
            logging.getLogger('api').exception(
                'API error on %s %s: %s',
                request.method,
                request.path,
                exc,
            )


def _apply_descriptor(path: str) -> None:
    try:
        _xml_config.configure_file(path)
    except OSError as exc:
        # Keep the bootstrap configuration; the API can still load a descriptor later
        logging.getLogger('api').warning('Could not load logging descriptor %s: %s', path, exc)
    else:
        logging.getLogger('api').info('Logging descriptor loaded from %s', path)


def _register_blueprints(app: Flask) -> None:
    from .routes_levels import bp as levels_bp

    app.register_blueprint(levels_bp)


def create_app(config: Any | None = None, settings: Config | None = None) -> Flask:
    """Create and configure the Flask control application.

    Features:
      - Initializes process logging using logging_setup.configure_logging
        (level/file via LOGCTL_LOG_LEVEL and LOGCTL_LOG_FILE).
      - Applies the XML descriptor named by LOGCTL_CONFIG_FILE, if any.
      - Registers the uncaught-exception reporter unless LOGCTL_INSTALL_HANDLER=0.
      - Registers the levels blueprint providing the REST endpoints.

    Args:
        config: Optional dict with overrides for Flask app.config.
        settings: Optional Config; loaded from the environment when omitted.

    Returns:
        A configured Flask application instance.
    """
    cfg = settings or load_config()
    app = Flask(__name__)

    if isinstance(config, dict):
        with suppress(Exception):
            app.config.update(config)
    app.config[_CFG_SETTINGS] = cfg
    if cfg.api_token and not app.config.get(CFG_TOKEN):
        app.config[CFG_TOKEN] = cfg.api_token

    configure_logging(
        service='api',
        level_env='LOGCTL_LOG_LEVEL',
        file_env='LOGCTL_LOG_FILE',
        default=cfg.log_level,
        level=cfg.log_level,
        path=cfg.log_file,
    )
    if cfg.config_file:
        _apply_descriptor(cfg.config_file)
    if cfg.install_handler:
        _exception_handler.register()

    _install_request_logging_hooks(app)
    _register_blueprints(app)
    return app
