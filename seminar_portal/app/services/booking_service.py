from __future__ import annotations

from datetime import date, datetime
from typing import Any

from ..config import FINE_TYPE_NO_BOOKING
from ..errors import BookingError, DuplicateRecordError
from ..logging import get_logger
from .holiday_service import HolidayPolicy
from .store import SeminarStore
from .timing_service import TimingPolicy


log = get_logger(__name__)

MAX_TOPIC_LENGTH = 200


class BookingService:
    def __init__(self, store: SeminarStore, timing: TimingPolicy, holidays: HolidayPolicy) -> None:
        self.store = store
        self.timing = timing
        self.holidays = holidays

    def _student(self, register_number: str) -> dict[str, Any]:
        reg = str(register_number or "").strip()
        if not reg:
            raise BookingError("register_number is required")
        student = self.store.get_student_by_register_number(reg)
        if student is None:
            raise BookingError(f"Unknown register number: {reg}", status=404)
        return student

    def create_booking(
        self,
        register_number: str,
        topic: str | None,
        now: datetime,
        booking_date: date | None = None,
    ) -> dict[str, Any]:
        student = self._student(register_number)

        if not self.timing.is_booking_window_open(now):
            info = self.timing.get_booking_window_info(now)
            opens = info.next_open_time.isoformat() if info.next_open_time else None
            raise BookingError(f"Booking window is closed; next opens at {opens}", status=403)

        target = booking_date or self.holidays.get_holiday_aware_next_seminar_date(now)
        if target <= self.timing.get_today_date(now):
            raise BookingError("Bookings must be for a future date")
        check = self.holidays.is_holiday(target)
        if check.is_holiday:
            name = (check.holiday or {}).get("holiday_name") or "holiday"
            raise BookingError(f"{target.isoformat()} is not a working day ({name})")
        if self.store.selections_for_date(target) or self.store.fined_student_ids(target, FINE_TYPE_NO_BOOKING):
            # the draw and the fines for this date are final
            raise BookingError(f"Selection for {target.isoformat()} has already been made", status=409)

        clean_topic = str(topic or "").strip()[:MAX_TOPIC_LENGTH] or None
        try:
            booking_id = self.store.insert_booking(student["id"], target, clean_topic)
        except DuplicateRecordError as exc:
            raise BookingError("You have already booked for this date", status=409) from exc

        log.info(
            "booking_created",
            register_number=student["register_number"],
            booking_date=target.isoformat(),
        )
        return {
            "id": booking_id,
            "student_id": student["id"],
            "register_number": student["register_number"],
            "booking_date": target.isoformat(),
            "seminar_topic": clean_topic,
        }

    def get_student_booking(self, register_number: str, booking_date: date) -> dict[str, Any] | None:
        student = self._student(register_number)
        return self.store.get_booking(student["id"], booking_date)
