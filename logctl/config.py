from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass


@dataclass(frozen=True)
class Config:
    # Logging
    log_level: str
    log_file: str | None
    config_file: str | None
    install_handler: bool

    # Web
    api_host: str
    api_port: int
    api_token: str | None


def load_config(env: Mapping[str, str] | None = None) -> Config:
    e = os.environ if env is None else env
    return Config(
        log_level=e.get('LOGCTL_LOG_LEVEL', 'INFO'),
        log_file=e.get('LOGCTL_LOG_FILE') or None,
        config_file=e.get('LOGCTL_CONFIG_FILE') or None,
        install_handler=e.get('LOGCTL_INSTALL_HANDLER', '1') == '1',
        api_host=e.get('LOGCTL_API_HOST', '127.0.0.1'),
        api_port=int(e.get('LOGCTL_API_PORT', '5000')),
        api_token=e.get('LOGCTL_API_TOKEN') or None,
    )
