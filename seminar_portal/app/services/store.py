from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Iterable

from ..errors import DuplicateRecordError, StoreError
from ..logging import get_logger


log = get_logger(__name__)


def _day(value: date | str) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class SeminarStore:
    """Filtered reads and inserts against the scheduling tables.

    Every sqlite3 failure is re-raised as StoreError; unique-constraint
    conflicts become DuplicateRecordError so callers can treat them as
    "already done".
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self.conn = conn

    def _fetch_all(self, sql: str, params: Iterable[Any] = ()) -> list[dict[str, Any]]:
        try:
            rows = self.conn.execute(sql, tuple(params)).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return [dict(r) for r in rows]

    def _fetch_one(self, sql: str, params: Iterable[Any] = ()) -> dict[str, Any] | None:
        try:
            row = self.conn.execute(sql, tuple(params)).fetchone()
        except sqlite3.Error as exc:
            raise StoreError(str(exc)) from exc
        return dict(row) if row is not None else None

    def _write(self, sql: str, params: Iterable[Any]) -> sqlite3.Cursor:
        try:
            # take the write lock up front so concurrent writers wait on the busy timeout
            if not self.conn.in_transaction:
                self.conn.execute("BEGIN IMMEDIATE")
            cur = self.conn.execute(sql, tuple(params))
            self.conn.commit()
        except sqlite3.IntegrityError as exc:
            self.conn.rollback()
            if "UNIQUE" in str(exc).upper():
                log.debug("insert_conflict", error=str(exc))
                raise DuplicateRecordError(str(exc)) from exc
            raise StoreError(str(exc)) from exc
        except sqlite3.Error as exc:
            self.conn.rollback()
            raise StoreError(str(exc)) from exc
        return cur

    def _insert(self, sql: str, params: Iterable[Any]) -> int:
        return int(self._write(sql, params).lastrowid)

    # students

    def get_student_by_register_number(self, register_number: str) -> dict[str, Any] | None:
        return self._fetch_one(
            "SELECT * FROM students WHERE register_number = ?",
            (register_number.strip().upper(),),
        )

    def list_students(self, class_years: Iterable[str]) -> list[dict[str, Any]]:
        years = list(class_years)
        if not years:
            return []
        placeholders = ",".join(["?"] * len(years))
        return self._fetch_all(
            f"SELECT id, register_number, name, class_year, email FROM students "
            f"WHERE class_year IN ({placeholders}) ORDER BY register_number",
            years,
        )

    def insert_student(self, register_number: str, name: str, class_year: str, email: str) -> int:
        return self._insert(
            """
            INSERT INTO students (register_number, name, class_year, email, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (register_number.strip().upper(), name, class_year, email, _now_iso()),
        )

    # bookings

    def bookings_for_date(self, day: date | str) -> list[dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT b.id, b.student_id, b.booking_date, b.seminar_topic, b.created_at,
                   s.register_number, s.name, s.email, s.class_year
            FROM seminar_bookings b
            JOIN students s ON s.id = b.student_id
            WHERE b.booking_date = ?
            ORDER BY b.id
            """,
            (_day(day),),
        )

    def get_booking(self, student_id: int, day: date | str) -> dict[str, Any] | None:
        return self._fetch_one(
            "SELECT * FROM seminar_bookings WHERE student_id = ? AND booking_date = ?",
            (student_id, _day(day)),
        )

    def insert_booking(self, student_id: int, day: date | str, topic: str | None) -> int:
        return self._insert(
            """
            INSERT INTO seminar_bookings (student_id, booking_date, seminar_topic, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (student_id, _day(day), topic, _now_iso()),
        )

    # selections

    def selections_for_date(self, day: date | str) -> list[dict[str, Any]]:
        return self._fetch_all(
            """
            SELECT sel.id, sel.student_id, sel.class_year, sel.seminar_date, sel.selected_at,
                   s.register_number, s.name, s.email
            FROM seminar_selections sel
            JOIN students s ON s.id = sel.student_id
            WHERE sel.seminar_date = ?
            ORDER BY sel.class_year
            """,
            (_day(day),),
        )

    def selected_student_ids(self) -> set[int]:
        rows = self._fetch_all("SELECT DISTINCT student_id FROM seminar_selections")
        return {int(r["student_id"]) for r in rows}

    def insert_selection(
        self, student_id: int, class_year: str, day: date | str, selected_at: str | None = None
    ) -> dict[str, Any]:
        stamp = selected_at or _now_iso()
        new_id = self._insert(
            """
            INSERT INTO seminar_selections (student_id, class_year, seminar_date, selected_at)
            VALUES (?, ?, ?, ?)
            """,
            (student_id, class_year, _day(day), stamp),
        )
        return {
            "id": new_id,
            "student_id": student_id,
            "class_year": class_year,
            "seminar_date": _day(day),
            "selected_at": stamp,
        }

    def move_selection(self, selection_id: int, new_day: date | str) -> None:
        self._write(
            "UPDATE seminar_selections SET seminar_date = ? WHERE id = ?",
            (_day(new_day), selection_id),
        )

    # holidays

    def get_holiday(self, day: date | str) -> dict[str, Any] | None:
        return self._fetch_one("SELECT * FROM holidays WHERE holiday_date = ?", (_day(day),))

    def list_holidays(self, start: date | str | None = None, end: date | str | None = None) -> list[dict[str, Any]]:
        where = []
        params: list[str] = []
        if start is not None:
            where.append("holiday_date >= ?")
            params.append(_day(start))
        if end is not None:
            where.append("holiday_date <= ?")
            params.append(_day(end))
        sql = "SELECT * FROM holidays"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY holiday_date ASC"
        return self._fetch_all(sql, params)

    def insert_holiday(
        self, day: date | str, name: str, holiday_type: str = "college", affects_seminars: bool = True
    ) -> int:
        return self._insert(
            """
            INSERT INTO holidays (holiday_date, holiday_name, holiday_type, affects_seminars, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (_day(day), name, holiday_type, 1 if affects_seminars else 0, _now_iso()),
        )

    # fines

    def fined_student_ids(self, day: date | str, fine_type: str) -> set[int]:
        rows = self._fetch_all(
            "SELECT student_id FROM student_fines WHERE reference_date = ? AND fine_type = ?",
            (_day(day), fine_type),
        )
        return {int(r["student_id"]) for r in rows}

    def insert_fine(
        self,
        student_id: int,
        fine_type: str,
        day: date | str,
        base_amount: Decimal,
        days_overdue: int = 1,
        payment_status: str = "pending",
    ) -> int:
        stamp = _now_iso()
        return self._insert(
            """
            INSERT INTO student_fines (
                student_id, fine_type, reference_date, base_amount, daily_increment,
                days_overdue, payment_status, created_at, updated_at
            )
            VALUES (?, ?, ?, ?, '0.00', ?, ?, ?, ?)
            """,
            (student_id, fine_type, _day(day), str(base_amount), days_overdue, payment_status, stamp, stamp),
        )

    def fines_for_student(self, student_id: int, payment_status: str | None = None) -> list[dict[str, Any]]:
        sql = "SELECT * FROM student_fines WHERE student_id = ?"
        params: list[Any] = [student_id]
        if payment_status:
            sql += " AND payment_status = ?"
            params.append(payment_status)
        sql += " ORDER BY reference_date DESC"
        return self._fetch_all(sql, params)
