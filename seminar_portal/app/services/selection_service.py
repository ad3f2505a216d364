from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from ..config import CLASS_YEARS, SchedulerSettings
from ..errors import DuplicateRecordError
from ..logging import get_logger
from .holiday_service import HolidayPolicy
from .store import SeminarStore


log = get_logger(__name__)


@dataclass
class SelectionOutcome:
    seminar_date: date
    message: str = ""
    skipped: str | None = None
    existing: list[dict[str, Any]] = field(default_factory=list)
    created: list[dict[str, Any]] = field(default_factory=list)
    summary: dict[str, Any] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        classes = {s["class_year"] for s in self.existing} | {s["class_year"] for s in self.created}
        return all(c in classes for c in CLASS_YEARS)


def selection_payload(selection: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": selection["id"],
        "student": {
            "register_number": selection["register_number"],
            "name": selection["name"],
            "email": selection["email"],
            "class_year": selection["class_year"],
        },
        "seminar_date": selection["seminar_date"],
        "selected_at": selection["selected_at"],
    }


class SelectionEngine:
    """Draws at most one presenter per class for a seminar date.

    The store's UNIQUE(seminar_date, class_year) constraint is the commit
    point; the re-read before insert only narrows the race window.
    """

    def __init__(
        self,
        store: SeminarStore,
        holidays: HolidayPolicy,
        settings: SchedulerSettings,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.holidays = holidays
        self.settings = settings
        self.rng = rng or random.Random()

    def selections_for_date(self, seminar_date: date) -> list[dict[str, Any]]:
        return self.store.selections_for_date(seminar_date)

    def select_presenters(self, seminar_date: date) -> SelectionOutcome:
        outcome = SelectionOutcome(seminar_date=seminar_date)

        check = self.holidays.is_holiday(seminar_date)
        if check.is_holiday:
            name = (check.holiday or {}).get("holiday_name") or "holiday"
            outcome.skipped = "not_working_day"
            outcome.message = f"No selection - {seminar_date.isoformat()} is not a working day ({name})"
            log.info("selection_skipped", seminar_date=seminar_date.isoformat(), reason=name)
            return outcome

        existing = self.store.selections_for_date(seminar_date)
        outcome.existing = existing
        has_class = {c: any(s["class_year"] == c for s in existing) for c in CLASS_YEARS}
        if all(has_class.values()):
            outcome.skipped = "already_selected"
            outcome.message = "Selections already exist for this date"
            log.info("selection_already_complete", seminar_date=seminar_date.isoformat())
            return outcome

        bookings = self.store.bookings_for_date(seminar_date)
        selected_today = {int(s["student_id"]) for s in existing}
        eligible = [b for b in bookings if int(b["student_id"]) not in selected_today]

        by_class: dict[str, list[dict[str, Any]]] = {c: [] for c in CLASS_YEARS}
        for booking in eligible:
            by_class.setdefault(booking["class_year"], []).append(booking)

        outcome.summary = {
            "total_bookings": len(bookings),
            "eligible_bookings": len(eligible),
            "already_selected_classes": sorted(c for c, v in has_class.items() if v),
            "bookings_by_class": {c: len(by_class[c]) for c in CLASS_YEARS},
            "selected_count": 0,
        }

        if not bookings:
            outcome.skipped = "no_bookings"
            outcome.message = "No bookings found for selection"
            log.info("selection_no_bookings", seminar_date=seminar_date.isoformat())
            return outcome

        candidates: list[dict[str, Any]] = []
        for class_year in CLASS_YEARS:
            pool = by_class[class_year]
            if has_class[class_year] or not pool:
                continue
            pick = pool[int(self.rng.random() * len(pool))]
            candidates.append(pick)
            log.debug(
                "selection_candidate",
                class_year=class_year,
                register_number=pick["register_number"],
                pool_size=len(pool),
            )

        if not candidates:
            outcome.skipped = "no_eligible"
            outcome.message = "No students available for selection from the remaining classes"
            return outcome

        # final check: a concurrent run may have committed since the first read
        latest = {s["class_year"] for s in self.store.selections_for_date(seminar_date)}
        survivors = [c for c in candidates if c["class_year"] not in latest]
        dropped = len(candidates) - len(survivors)
        if dropped:
            log.info("selection_lost_race", seminar_date=seminar_date.isoformat(), dropped=dropped)

        for booking in survivors:
            try:
                row = self.store.insert_selection(booking["student_id"], booking["class_year"], seminar_date)
            except DuplicateRecordError:
                log.debug(
                    "selection_conflict",
                    seminar_date=seminar_date.isoformat(),
                    class_year=booking["class_year"],
                )
                continue
            row.update(
                register_number=booking["register_number"],
                name=booking["name"],
                email=booking["email"],
                seminar_topic=booking.get("seminar_topic"),
            )
            outcome.created.append(row)
            log.info(
                "selection_committed",
                seminar_date=seminar_date.isoformat(),
                class_year=booking["class_year"],
                register_number=booking["register_number"],
            )

        outcome.summary["selected_count"] = len(outcome.created)
        if outcome.created:
            outcome.message = f"{len(outcome.created)} student(s) selected successfully"
        else:
            outcome.message = "Selections were made by another process"
        return outcome
