from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from ..config import SchedulerSettings
from ..errors import DuplicateRecordError, HolidaySearchExhausted, StoreError
from ..logging import get_logger
from .store import SeminarStore
from .timing_service import TimingPolicy


log = get_logger(__name__)

WEEKEND_DAYS = {5: "Saturday", 6: "Sunday"}


@dataclass(frozen=True)
class HolidayCheck:
    is_holiday: bool
    holiday: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"isHoliday": self.is_holiday, "holiday": self.holiday}


@dataclass
class RescheduleResult:
    needs_reschedule: bool
    original_date: date
    new_date: date | None = None
    holiday_name: str | None = None
    affected_students: int = 0
    moved: list[dict[str, Any]] = field(default_factory=list)
    kept: list[dict[str, Any]] = field(default_factory=list)
    mutated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "needsReschedule": self.needs_reschedule,
            "originalDate": self.original_date.isoformat(),
            "newDate": self.new_date.isoformat() if self.new_date else None,
            "holidayName": self.holiday_name,
            "result": {
                "affectedStudents": self.affected_students,
                "moved": self.moved,
                "kept": self.kept,
                "mutated": self.mutated,
            },
        }


class HolidayPolicy:
    def __init__(self, store: SeminarStore, settings: SchedulerSettings, timing: TimingPolicy | None = None) -> None:
        self.store = store
        self.settings = settings
        self.timing = timing or TimingPolicy(settings)

    def is_holiday(self, day: date) -> HolidayCheck:
        weekday = day.weekday()
        if weekday in WEEKEND_DAYS:
            return HolidayCheck(
                True,
                {
                    "holiday_date": day.isoformat(),
                    "holiday_name": WEEKEND_DAYS[weekday],
                    "holiday_type": "weekend",
                    "affects_seminars": True,
                },
            )

        try:
            row = self.store.get_holiday(day)
        except StoreError as exc:
            log.warning("holiday_lookup_failed", date=day.isoformat(), error=str(exc), fail_open=True)
            return HolidayCheck(False)

        if row is None or not row.get("affects_seminars"):
            return HolidayCheck(False)
        row["affects_seminars"] = bool(row["affects_seminars"])
        return HolidayCheck(True, row)

    def is_working_day(self, day: date) -> bool:
        return not self.is_holiday(day).is_holiday

    def get_next_working_day(self, day: date, skip: int = 1) -> date:
        if skip < 1:
            raise ValueError("skip must be at least 1")
        limit = self.settings.holiday_search_limit_days
        current = day
        found = 0
        for _ in range(limit):
            current = current + timedelta(days=1)
            if self.is_working_day(current):
                found += 1
                if found == skip:
                    return current
        raise HolidaySearchExhausted(
            f"No working day found within {limit} days after {day.isoformat()}"
        )

    def get_holiday_aware_next_seminar_date(self, now: datetime) -> date:
        candidate = self.timing.get_next_seminar_date(now)
        if self.is_working_day(candidate):
            return candidate
        return self.get_next_working_day(candidate)

    def check_and_reschedule_seminar(self, candidate: date, apply: bool = True) -> RescheduleResult:
        check = self.is_holiday(candidate)
        if not check.is_holiday:
            return RescheduleResult(needs_reschedule=False, original_date=candidate)

        new_date = self.get_next_working_day(candidate)
        result = RescheduleResult(
            needs_reschedule=True,
            original_date=candidate,
            new_date=new_date,
            holiday_name=(check.holiday or {}).get("holiday_name"),
        )

        selections = self.store.selections_for_date(candidate)
        result.affected_students = len(selections)
        if not selections:
            return result

        taken = {s["class_year"] for s in self.store.selections_for_date(new_date)}
        for sel in selections:
            entry = {
                "student_id": sel["student_id"],
                "register_number": sel["register_number"],
                "class_year": sel["class_year"],
            }
            if sel["class_year"] in taken:
                result.kept.append(entry)
                continue
            if apply:
                try:
                    self.store.move_selection(sel["id"], new_date)
                except DuplicateRecordError:
                    result.kept.append(entry)
                    continue
                result.mutated = True
            taken.add(sel["class_year"])
            result.moved.append(entry)

        log.info(
            "seminar_rescheduled" if result.mutated else "seminar_reschedule_planned",
            original_date=candidate.isoformat(),
            new_date=new_date.isoformat(),
            holiday_name=result.holiday_name,
            moved=len(result.moved),
            kept=len(result.kept),
        )
        return result

    def list_holidays(self, start: date | None = None, end: date | None = None) -> list[dict[str, Any]]:
        rows = self.store.list_holidays(start, end)
        for row in rows:
            row["affects_seminars"] = bool(row["affects_seminars"])
        return rows

    def add_holiday(
        self, day: date, name: str, holiday_type: str = "college", affects_seminars: bool = True
    ) -> tuple[dict[str, Any], RescheduleResult]:
        holiday_id = self.store.insert_holiday(day, name, holiday_type, affects_seminars)
        log.info("holiday_added", holiday_id=holiday_id, date=day.isoformat(), name=name)
        holiday = {
            "id": holiday_id,
            "holiday_date": day.isoformat(),
            "holiday_name": name,
            "holiday_type": holiday_type,
            "affects_seminars": affects_seminars,
        }
        return holiday, self.check_and_reschedule_seminar(day)
