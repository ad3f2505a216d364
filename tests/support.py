"""
Shared fixtures for the scheduler tests.

Each DbTestCase gets its own temporary SQLite file with the full schema, so
tests never touch a real seminar.db.
"""

from __future__ import annotations

import tempfile
import unittest
from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path

from seminar_portal.app.config import SchedulerSettings
from seminar_portal.app.services.db_service import connect, init_db
from seminar_portal.app.services.email_service import NotificationResult
from seminar_portal.app.services.store import SeminarStore


# Wednesday / Friday / Saturday / Sunday of the same week
WEDNESDAY = date(2025, 9, 3)
FRIDAY = date(2025, 9, 5)
SATURDAY = date(2025, 8, 30)
SUNDAY = date(2025, 8, 31)


def make_settings(**overrides) -> SchedulerSettings:
    base = SchedulerSettings(
        timezone="Asia/Kolkata",
        booking_start_hour=10,
        booking_start_minute=30,
        booking_end_hour=13,
        booking_end_minute=30,
        selection_hour=13,
        selection_minute=30,
        fine_base_amount=Decimal("10.00"),
    )
    return replace(base, **overrides)


class RecordingNotifier:
    def __init__(self, fail: bool = False, crash: bool = False) -> None:
        self.fail = fail
        self.crash = crash
        self.calls: list[dict] = []

    def send_selection_notification(self, **kwargs) -> NotificationResult:
        self.calls.append(kwargs)
        if self.crash:
            raise RuntimeError("smtp exploded")
        if self.fail:
            return NotificationResult(False, "mailbox unavailable")
        return NotificationResult(True)


class DbTestCase(unittest.TestCase):
    store_class = SeminarStore

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmp.name) / "seminar.db"
        init_db(self.db_path)
        self.conn = connect(self.db_path)
        self.store = self.store_class(self.conn)
        self.settings = make_settings()

    def tearDown(self) -> None:
        self.conn.close()
        self._tmp.cleanup()

    def add_student(self, reg: str, class_year: str = "II-IT") -> int:
        return SeminarStore(self.conn).insert_student(reg, f"Student {reg}", class_year, f"{reg.lower()}@example.edu")

    def add_booking(self, student_id: int, day: date, topic: str = "Edge computing") -> int:
        return SeminarStore(self.conn).insert_booking(student_id, day, topic)

    def add_selection(self, student_id: int, class_year: str, day: date) -> None:
        SeminarStore(self.conn).insert_selection(student_id, class_year, day)

    def add_holiday(self, day: date, name: str, affects_seminars: bool = True) -> None:
        SeminarStore(self.conn).insert_holiday(day, name, "college", affects_seminars)

    def count(self, table: str, where: str = "1 = 1", params: tuple = ()) -> int:
        return int(self.conn.execute(f"SELECT COUNT(*) FROM {table} WHERE {where}", params).fetchone()[0])
