from __future__ import annotations

import random
from datetime import date, datetime, timezone
from typing import Any

from flask import current_app, request

from ..config import SchedulerSettings
from .db_service import get_db
from .email_service import EmailNotifier
from .scheduler_service import Notifier
from .store import SeminarStore


def get_settings() -> SchedulerSettings:
    return current_app.extensions["seminar_settings"]


def get_store() -> SeminarStore:
    return SeminarStore(get_db())


def get_now() -> datetime:
    clock = current_app.config.get("CLOCK")
    if clock is not None:
        return clock()
    return datetime.now(timezone.utc)


def get_notifier() -> Notifier:
    notifier = current_app.config.get("NOTIFIER")
    if notifier is not None:
        return notifier
    return EmailNotifier(get_settings())


def get_rng() -> random.Random | None:
    return current_app.config.get("RNG")


def get_json_body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def parse_date(value: Any) -> date | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"Expected a YYYY-MM-DD string, got {type(value).__name__}")
    raw = value.strip()
    if not raw:
        return None
    return date.fromisoformat(raw)
