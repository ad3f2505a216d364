import argparse
import os
import sqlite3
from datetime import date, datetime, timedelta, timezone
from pathlib import Path

from seminar_portal.app.config import SchedulerSettings
from seminar_portal.app.services.db_service import connect, init_db
from seminar_portal.app.services.holiday_service import HolidayPolicy
from seminar_portal.app.services.store import SeminarStore


STUDENTS = [
    ("21IT001", "Aarav Kumar", "II-IT"),
    ("21IT002", "Diya Raman", "II-IT"),
    ("21IT003", "Karthik Subramani", "II-IT"),
    ("21IT004", "Meera Nair", "II-IT"),
    ("21IT005", "Rahul Prakash", "II-IT"),
    ("21IT006", "Sneha Iyer", "II-IT"),
    ("20IT001", "Arjun Menon", "III-IT"),
    ("20IT002", "Divya Shankar", "III-IT"),
    ("20IT003", "Harish Babu", "III-IT"),
    ("20IT004", "Lakshmi Priya", "III-IT"),
    ("20IT005", "Naveen Raj", "III-IT"),
    ("20IT006", "Priya Venkat", "III-IT"),
]

TOPICS = [
    "Large language models in education",
    "Zero trust networking",
    "Edge computing for IoT",
    "Blockchain beyond cryptocurrency",
    "Quantum-safe cryptography",
]


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _insert(conn: sqlite3.Connection, table: str, row: dict) -> None:
    # seeding is re-runnable; rows hitting a unique key are left as they are
    keys = ", ".join(row)
    placeholders = ", ".join(["?"] * len(row))
    conn.execute(f"INSERT OR IGNORE INTO {table} ({keys}) VALUES ({placeholders})", list(row.values()))


def seed(db_path: Path, today: date | None = None) -> date:
    """Seed demo students, a holiday and bookings; return the booked seminar date."""
    init_db(db_path)
    today = today or date.today()

    conn = connect(db_path)
    try:
        for reg, name, class_year in STUDENTS:
            _insert(
                conn,
                "students",
                {
                    "register_number": reg,
                    "name": name,
                    "class_year": class_year,
                    "email": f"{reg.lower()}@example.edu",
                    "created_at": _now_iso(),
                },
            )

        # a mid-week holiday two weeks out, so rescheduling has something to show
        holiday = today + timedelta(days=14)
        while holiday.weekday() >= 5:
            holiday += timedelta(days=1)
        _insert(
            conn,
            "holidays",
            {
                "holiday_date": holiday.isoformat(),
                "holiday_name": "Department Day",
                "holiday_type": "college",
                "affects_seminars": 1,
                "created_at": _now_iso(),
            },
        )
        conn.commit()

        policy = HolidayPolicy(SeminarStore(conn), SchedulerSettings())
        seminar_date = policy.get_next_working_day(today)

        ids = [int(r[0]) for r in conn.execute("SELECT id FROM students ORDER BY id").fetchall()]
        # every other student books, leaving the rest to be fined
        for i, sid in enumerate(ids[::2]):
            _insert(
                conn,
                "seminar_bookings",
                {
                    "student_id": sid,
                    "booking_date": seminar_date.isoformat(),
                    "seminar_topic": TOPICS[i % len(TOPICS)],
                    "created_at": _now_iso(),
                },
            )
        conn.commit()
    finally:
        conn.close()
    return seminar_date


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate a dummy seminar.db with seed data")
    parser.add_argument(
        "--db",
        default=str(Path(__file__).with_name("seminar.db")),
        help="Path to sqlite db file (default: ./seminar.db)",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing db file if it exists",
    )
    args = parser.parse_args()

    db_path = Path(args.db).resolve()
    if db_path.exists():
        if not args.force:
            raise SystemExit(
                f"DB already exists at {db_path}. Re-run with --force to overwrite."
            )
        os.remove(db_path)

    seminar_date = seed(db_path)
    print(f"Dummy database created at: {db_path}")
    print(f"Bookings seeded for {seminar_date.isoformat()} ({_count_bookings(db_path)} students)")
    return 0


def _count_bookings(db_path: Path) -> int:
    conn = sqlite3.connect(db_path)
    try:
        return int(conn.execute("SELECT COUNT(*) FROM seminar_bookings").fetchone()[0])
    finally:
        conn.close()


if __name__ == "__main__":
    raise SystemExit(main())
