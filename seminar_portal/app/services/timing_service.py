from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any

from ..config import SchedulerSettings


@dataclass(frozen=True)
class BookingWindowInfo:
    is_open: bool
    phase: str
    selection_time: datetime
    time_until_open: timedelta | None = None
    time_until_close: timedelta | None = None
    time_until_selection: timedelta | None = None
    next_open_time: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        def ms(delta: timedelta | None) -> int | None:
            if delta is None:
                return None
            return int(delta.total_seconds() * 1000)

        return {
            "isOpen": self.is_open,
            "phase": self.phase,
            "timeUntilOpen": ms(self.time_until_open),
            "timeUntilClose": ms(self.time_until_close),
            "timeUntilSelection": ms(self.time_until_selection),
            "nextOpenTime": self.next_open_time.isoformat() if self.next_open_time else None,
            "selectionTime": self.selection_time.isoformat(),
        }


class TimingPolicy:
    """Booking-window and selection-time arithmetic in the configured zone.

    Every method takes ``now`` explicitly. Aware datetimes are converted to
    the seminar zone; naive ones are taken to already be local.
    """

    def __init__(self, settings: SchedulerSettings) -> None:
        self.settings = settings
        self.tz = settings.tz

    def localize(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def _at(self, now: datetime, hour: int, minute: int) -> datetime:
        local = self.localize(now)
        return datetime.combine(local.date(), time(hour, minute), tzinfo=self.tz)

    def booking_window_start(self, now: datetime) -> datetime:
        return self._at(now, self.settings.booking_start_hour, self.settings.booking_start_minute)

    def booking_window_end(self, now: datetime) -> datetime:
        return self._at(now, self.settings.booking_end_hour, self.settings.booking_end_minute)

    def selection_time(self, now: datetime) -> datetime:
        return self._at(now, self.settings.selection_hour, self.settings.selection_minute)

    def next_booking_window_start(self, now: datetime) -> datetime:
        start = self.booking_window_start(now)
        if self.localize(now) < start:
            return start
        return self._at(start + timedelta(days=1), start.hour, start.minute)

    def is_booking_window_open(self, now: datetime) -> bool:
        local = self.localize(now)
        return self.booking_window_start(local) <= local <= self.booking_window_end(local)

    def is_selection_time(self, now: datetime) -> bool:
        local = self.localize(now)
        return local >= self.selection_time(local)

    def should_trigger_auto_selection(self, now: datetime) -> bool:
        local = self.localize(now)
        diff = local - self.selection_time(local)
        return timedelta(0) <= diff <= timedelta(minutes=self.settings.selection_tolerance_minutes)

    def get_booking_window_info(self, now: datetime) -> BookingWindowInfo:
        local = self.localize(now)
        start = self.booking_window_start(local)
        end = self.booking_window_end(local)
        selection = self.selection_time(local)
        until_selection = max(selection - local, timedelta(0))

        if start <= local <= end:
            return BookingWindowInfo(
                is_open=True,
                phase="open",
                selection_time=selection,
                time_until_close=end - local,
                time_until_selection=until_selection,
            )
        if local < start:
            return BookingWindowInfo(
                is_open=False,
                phase="before_open",
                selection_time=selection,
                time_until_open=start - local,
                next_open_time=start,
            )
        next_open = self.next_booking_window_start(local)
        return BookingWindowInfo(
            is_open=False,
            phase="after_close",
            selection_time=selection,
            time_until_open=next_open - local,
            time_until_selection=until_selection,
            next_open_time=next_open,
        )

    def get_today_date(self, now: datetime) -> date:
        return self.localize(now).date()

    def get_next_seminar_date(self, now: datetime) -> date:
        return self.get_today_date(now) + timedelta(days=1)

    def get_booking_window_config(self) -> dict[str, str]:
        s = self.settings
        return {
            "startTime": format_time_12_hour(time(s.booking_start_hour, s.booking_start_minute)),
            "endTime": format_time_12_hour(time(s.booking_end_hour, s.booking_end_minute)),
            "selectionTime": format_time_12_hour(time(s.selection_hour, s.selection_minute)),
        }


def format_time_remaining(delta: timedelta) -> str:
    total = int(delta.total_seconds())
    if total <= 0:
        return "Time's up!"
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes > 0:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


def format_time_12_hour(value: time) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


def format_date_with_day(value: date) -> str:
    return f"{value.strftime('%A')}, {value.strftime('%B')} {value.day}, {value.year}"
