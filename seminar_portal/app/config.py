from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import ConfigError


BASE_DIR = Path(__file__).resolve().parents[2]

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_PATH = Path(os.getenv("DB_PATH") or (BASE_DIR / "seminar.db"))

CLASS_YEARS = ("II-IT", "III-IT")

FINE_TYPE_NO_BOOKING = "seminar_no_booking"


@dataclass(frozen=True)
class SchedulerSettings:
    timezone: str = "Asia/Kolkata"
    booking_start_hour: int = 10
    booking_start_minute: int = 30
    booking_end_hour: int = 13
    booking_end_minute: int = 30
    selection_hour: int = 13
    selection_minute: int = 30
    selection_tolerance_minutes: int = 5
    fine_base_amount: Decimal = Decimal("10.00")
    fine_class_years: tuple[str, ...] = CLASS_YEARS
    holiday_search_limit_days: int = 30
    cron_secret: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    from_email: str = ""
    from_name: str = "College Seminar System"
    smtp_timeout_seconds: int = 10
    college_name: str = "Department of IT"
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def validate(self) -> SchedulerSettings:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigError(f"Unknown time zone: {self.timezone!r}") from exc

        for name in ("booking_start", "booking_end", "selection"):
            hour = getattr(self, f"{name}_hour")
            minute = getattr(self, f"{name}_minute")
            if not 0 <= hour <= 23:
                raise ConfigError(f"{name} hour must be between 0 and 23, got {hour}")
            if not 0 <= minute <= 59:
                raise ConfigError(f"{name} minute must be between 0 and 59, got {minute}")

        start = (self.booking_start_hour, self.booking_start_minute)
        end = (self.booking_end_hour, self.booking_end_minute)
        if end < start:
            raise ConfigError("Booking window must not span midnight (end is before start)")
        if self.selection_tolerance_minutes < 0:
            raise ConfigError("Selection tolerance must not be negative")
        if self.fine_base_amount < 0:
            raise ConfigError("Fine base amount must not be negative")
        if not self.fine_class_years:
            raise ConfigError("At least one fine class year is required")
        unknown = [c for c in self.fine_class_years if c not in CLASS_YEARS]
        if unknown:
            raise ConfigError(f"Unknown class years: {', '.join(unknown)}")
        if self.holiday_search_limit_days < 1:
            raise ConfigError("Holiday search limit must be at least one day")
        return self


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


def _env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


def _env_decimal(name: str, default: str) -> Decimal:
    raw = (os.getenv(name) or "").strip() or default
    try:
        return Decimal(raw).quantize(Decimal("0.01"))
    except InvalidOperation as exc:
        raise ConfigError(f"{name} must be a decimal amount, got {raw!r}") from exc


def _env_list(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    return tuple(part.strip() for part in raw.split(",") if part.strip())


def load_settings() -> SchedulerSettings:
    settings = SchedulerSettings(
        timezone=(os.getenv("SEMINAR_TIMEZONE") or "Asia/Kolkata").strip(),
        booking_start_hour=_env_int("BOOKING_WINDOW_START_HOUR", 10),
        booking_start_minute=_env_int("BOOKING_WINDOW_START_MINUTE", 30),
        booking_end_hour=_env_int("BOOKING_WINDOW_END_HOUR", 13),
        booking_end_minute=_env_int("BOOKING_WINDOW_END_MINUTE", 30),
        selection_hour=_env_int("SELECTION_HOUR", 13),
        selection_minute=_env_int("SELECTION_MINUTE", 30),
        selection_tolerance_minutes=_env_int("SELECTION_TOLERANCE_MINUTES", 5),
        fine_base_amount=_env_decimal("FINE_BASE_AMOUNT", "10.00"),
        fine_class_years=_env_list("FINE_CLASS_YEARS", CLASS_YEARS),
        holiday_search_limit_days=_env_int("HOLIDAY_SEARCH_LIMIT_DAYS", 30),
        cron_secret=(os.getenv("CRON_SECRET") or "").strip(),
        smtp_host=(os.getenv("SMTP_HOST") or "").strip(),
        smtp_port=_env_int("SMTP_PORT", 587),
        smtp_user=(os.getenv("SMTP_USER") or "").strip(),
        smtp_pass=os.getenv("SMTP_PASS") or "",
        from_email=(os.getenv("FROM_EMAIL") or "").strip(),
        from_name=(os.getenv("FROM_NAME") or "College Seminar System").strip(),
        smtp_timeout_seconds=_env_int("SMTP_TIMEOUT_SECONDS", 10),
        college_name=(os.getenv("COLLEGE_NAME") or "Department of IT").strip(),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").strip().upper(),
        log_json=_env_bool("LOG_JSON"),
    )
    return settings.validate()
