from __future__ import annotations

import random
from datetime import date, datetime
from typing import Any, Protocol

from ..config import SchedulerSettings
from ..logging import get_logger
from .email_service import NotificationResult
from .fine_service import FineIssuer
from .holiday_service import HolidayPolicy
from .selection_service import SelectionEngine, selection_payload
from .store import SeminarStore
from .timing_service import TimingPolicy, format_date_with_day


log = get_logger(__name__)


class Notifier(Protocol):
    def send_selection_notification(
        self,
        email: str,
        name: str,
        register_number: str,
        seminar_date: str,
        class_year: str,
        seminar_topic: str | None = None,
    ) -> NotificationResult: ...


class SeminarScheduler:
    """One run of the daily draw: reschedule, select, fine, notify.

    Holds no state between runs. Running it again for the same date only
    reports what already exists.
    """

    def __init__(
        self,
        store: SeminarStore,
        settings: SchedulerSettings,
        notifier: Notifier,
        rng: random.Random | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.notifier = notifier
        self.timing = TimingPolicy(settings)
        self.holidays = HolidayPolicy(store, settings, self.timing)
        self.selection = SelectionEngine(store, self.holidays, settings, rng)
        self.fines = FineIssuer(store, self.holidays, settings)

    def run(self, now: datetime, target_date: date | None = None) -> dict[str, Any]:
        requested = target_date or self.timing.get_next_seminar_date(now)
        log.info("scheduler_run_started", requested_date=requested.isoformat())

        reschedule = self.holidays.check_and_reschedule_seminar(requested)
        seminar_date = reschedule.new_date if reschedule.needs_reschedule else requested

        outcome = self.selection.select_presenters(seminar_date)
        fine_result = self.fines.create_fines_for_non_booked_students(seminar_date)
        emails = self._notify(outcome.created, seminar_date)

        message = outcome.message
        if reschedule.needs_reschedule:
            message = (
                f"{requested.isoformat()} is a holiday ({reschedule.holiday_name}); "
                f"using {seminar_date.isoformat()}. {message}"
            )

        log.info(
            "scheduler_run_finished",
            seminar_date=seminar_date.isoformat(),
            selected=len(outcome.created),
            fines_created=fine_result.fines_created,
            emails_sent=emails["sent"],
            emails_failed=emails["failed"],
        )
        return {
            "success": fine_result.success,
            "message": message,
            "requested_date": requested.isoformat(),
            "seminar_date": seminar_date.isoformat(),
            "selections": [selection_payload(s) for s in outcome.created],
            "existing_selections": [selection_payload(s) for s in outcome.existing],
            "summary": outcome.summary,
            "reschedule": reschedule.to_dict() if reschedule.needs_reschedule else None,
            "fines": fine_result.to_dict(),
            "emails": emails,
            "timestamp": self.timing.localize(now).isoformat(),
        }

    def _notify(self, created: list[dict[str, Any]], seminar_date: date) -> dict[str, Any]:
        pretty_date = format_date_with_day(seminar_date)
        results: list[dict[str, Any]] = []
        for sel in created:
            entry: dict[str, Any] = {"student": sel["register_number"], "class": sel["class_year"]}
            try:
                sent = self.notifier.send_selection_notification(
                    email=sel["email"],
                    name=sel["name"] or sel["register_number"],
                    register_number=sel["register_number"],
                    seminar_date=pretty_date,
                    class_year=sel["class_year"],
                    seminar_topic=sel.get("seminar_topic"),
                )
            except Exception as exc:
                log.error("notification_crashed", register_number=sel["register_number"], error=str(exc))
                sent = NotificationResult(False, str(exc))
            entry["emailSent"] = sent.success
            if sent.error:
                entry["error"] = sent.error
            results.append(entry)

        sent_count = sum(1 for r in results if r["emailSent"])
        return {"sent": sent_count, "failed": len(results) - sent_count, "results": results}
