from __future__ import annotations

from flask import Flask

from .config import SchedulerSettings
from .logging import get_logger, setup_logging


log = get_logger(__name__)


def init_extensions(app: Flask, settings: SchedulerSettings) -> None:
    setup_logging(json_output=settings.log_json, log_level=settings.log_level)
    app.extensions["seminar_settings"] = settings
    log.info(
        "app_configured",
        timezone=settings.timezone,
        booking_window=f"{settings.booking_start_hour:02d}:{settings.booking_start_minute:02d}"
        f"-{settings.booking_end_hour:02d}:{settings.booking_end_minute:02d}",
        selection_time=f"{settings.selection_hour:02d}:{settings.selection_minute:02d}",
        fine_class_years=list(settings.fine_class_years),
        smtp_configured=bool(settings.smtp_host and settings.smtp_user),
    )
