from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

from ..config import FINE_TYPE_NO_BOOKING, SchedulerSettings
from ..errors import DuplicateRecordError, StoreError
from ..logging import get_logger
from .holiday_service import HolidayPolicy
from .store import SeminarStore


log = get_logger(__name__)


@dataclass
class FineResult:
    success: bool
    message: str
    fines_created: int = 0
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "finesCreated": self.fines_created,
            "errors": list(self.errors),
        }


class FineIssuer:
    """Issues the fixed daily fine to students who neither booked nor presented.

    A student selected for any seminar date, past or future, is exempt.
    """

    def __init__(self, store: SeminarStore, holidays: HolidayPolicy, settings: SchedulerSettings) -> None:
        self.store = store
        self.holidays = holidays
        self.settings = settings

    def create_fines_for_non_booked_students(self, day: date) -> FineResult:
        iso = day.isoformat()
        if not self.holidays.is_working_day(day):
            return FineResult(True, f"No fines created - {iso} is not a working day")

        try:
            roster = self.store.list_students(self.settings.fine_class_years)
            booked = {int(b["student_id"]) for b in self.store.bookings_for_date(day)}
            selected_ever = self.store.selected_student_ids()
            already_fined = self.store.fined_student_ids(day, FINE_TYPE_NO_BOOKING)
        except StoreError as exc:
            log.error("fine_inputs_unavailable", date=iso, error=str(exc))
            return FineResult(False, "Failed to load students, bookings or selections", errors=[str(exc)])

        non_booked = [s for s in roster if s["id"] not in booked and s["id"] not in selected_ever]
        if not non_booked:
            return FineResult(True, "All students booked or were selected for this date")

        to_fine = [s for s in non_booked if s["id"] not in already_fined]
        if not to_fine:
            return FineResult(True, "Fines already exist for all non-booked students on this date")

        amount = self.settings.fine_base_amount
        created = 0
        errors: list[str] = []
        for student in to_fine:
            try:
                self.store.insert_fine(student["id"], FINE_TYPE_NO_BOOKING, day, amount)
            except DuplicateRecordError:
                continue
            except StoreError as exc:
                log.warning("fine_insert_failed", date=iso, student_id=student["id"], error=str(exc))
                errors.append(f"Student {student['register_number']}: {exc}")
                continue
            created += 1

        log.info("fines_issued", date=iso, created=created, failed=len(errors), amount=str(amount))
        if created == 0 and errors:
            return FineResult(False, f"Failed to create fines for {iso}", 0, errors)
        return FineResult(
            True,
            f"Created {amount} fine for {created} students who didn't book on {iso}",
            created,
            errors,
        )

    def get_student_fines(self, student_id: int) -> dict[str, Any]:
        fines = self.store.fines_for_student(student_id, payment_status="pending")
        total = Decimal("0.00")
        for fine in fines:
            current = Decimal(fine["base_amount"] or self.settings.fine_base_amount)
            fine["current_amount"] = str(current)
            total += current
        return {"fines": fines, "total_amount": str(total), "count": len(fines)}
