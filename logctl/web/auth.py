from __future__ import annotations

import hmac
import os
from functools import wraps
from typing import Any, Callable

from flask import current_app, jsonify, request

TOKEN_ENV = 'LOGCTL_API_TOKEN'
CFG_TOKEN = 'api_token'


def _expected_token() -> str | None:
    """Return the bearer token the API requires, or None when auth is off.

    Default: disabled. Enable by setting LOGCTL_API_TOKEN for the process or
    `api_token` in the Flask app config.
    """
    return current_app.config.get(CFG_TOKEN) or os.environ.get(TOKEN_ENV) or None


def token_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def _wrapped(*args: Any, **kwargs: Any):
        expected = _expected_token()
        if expected is None:
            return fn(*args, **kwargs)
        header = request.headers.get('Authorization', '')
        scheme, _, supplied = header.partition(' ')
        if scheme.lower() != 'bearer' or not hmac.compare_digest(
            supplied.strip().encode(), expected.encode()
        ):
            return jsonify({'error': 'unauthorized'}), 401
        return fn(*args, **kwargs)

    return _wrapped
