from __future__ import annotations

import hmac
from functools import wraps

from flask import jsonify, request

from .context import get_settings


def get_presented_secret() -> str:
    header = (request.headers.get("Authorization") or "").strip()
    if header.lower().startswith("bearer "):
        return header[7:].strip()
    return (request.headers.get("X-Cron-Secret") or "").strip()


def cron_secret_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        expected = get_settings().cron_secret
        if expected and not hmac.compare_digest(get_presented_secret().encode(), expected.encode()):
            return jsonify({"success": False, "error": "Unauthorized"}), 401
        return fn(*args, **kwargs)

    return wrapper
