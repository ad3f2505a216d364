from __future__ import annotations

import sqlite3
from pathlib import Path

from flask import Flask, current_app, g

from ..config import DB_PATH


CONNECT_TIMEOUT_SECONDS = 30


def connect(db_path: Path | str | None = None) -> sqlite3.Connection:
    conn = sqlite3.connect(db_path or DB_PATH, timeout=CONNECT_TIMEOUT_SECONDS)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    return conn


def get_db() -> sqlite3.Connection:
    if "db" not in g:
        g.db = connect(current_app.config.get("DB_PATH") or DB_PATH)
    return g.db


def close_db(exception: Exception | None = None) -> None:
    conn = g.pop("db", None)
    if conn is not None:
        conn.close()


def init_app(app: Flask) -> None:
    app.teardown_appcontext(close_db)


def init_db(db_path: Path | str | None = None) -> None:
    path = db_path or DB_PATH
    db = sqlite3.connect(path, timeout=CONNECT_TIMEOUT_SECONDS)
    try:
        db.execute("PRAGMA foreign_keys = ON;")
        db.executescript(
            """
            CREATE TABLE IF NOT EXISTS students (
                id INTEGER PRIMARY KEY,
                register_number TEXT NOT NULL UNIQUE,
                name TEXT NOT NULL,
                class_year TEXT NOT NULL CHECK (class_year IN ('II-IT', 'III-IT')),
                email TEXT NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS seminar_bookings (
                id INTEGER PRIMARY KEY,
                student_id INTEGER NOT NULL,
                booking_date TEXT NOT NULL,
                seminar_topic TEXT,
                created_at TEXT NOT NULL,
                UNIQUE(student_id, booking_date),
                FOREIGN KEY(student_id) REFERENCES students(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS seminar_selections (
                id INTEGER PRIMARY KEY,
                student_id INTEGER NOT NULL,
                class_year TEXT NOT NULL,
                seminar_date TEXT NOT NULL,
                selected_at TEXT NOT NULL,
                UNIQUE(seminar_date, class_year),
                FOREIGN KEY(student_id) REFERENCES students(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS holidays (
                id INTEGER PRIMARY KEY,
                holiday_date TEXT NOT NULL UNIQUE,
                holiday_name TEXT NOT NULL,
                holiday_type TEXT NOT NULL DEFAULT 'college',
                affects_seminars INTEGER NOT NULL DEFAULT 1,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS student_fines (
                id INTEGER PRIMARY KEY,
                student_id INTEGER NOT NULL,
                fine_type TEXT NOT NULL,
                reference_date TEXT NOT NULL,
                base_amount TEXT NOT NULL,
                daily_increment TEXT NOT NULL DEFAULT '0.00',
                days_overdue INTEGER NOT NULL DEFAULT 1,
                payment_status TEXT NOT NULL DEFAULT 'pending'
                    CHECK (payment_status IN ('pending', 'paid', 'waived')),
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(student_id, fine_type, reference_date),
                FOREIGN KEY(student_id) REFERENCES students(id) ON DELETE CASCADE
            );

            CREATE INDEX IF NOT EXISTS idx_bookings_date ON seminar_bookings(booking_date);
            CREATE INDEX IF NOT EXISTS idx_selections_student ON seminar_selections(student_id);
            CREATE INDEX IF NOT EXISTS idx_students_class ON students(class_year);
            CREATE INDEX IF NOT EXISTS idx_fines_reference ON student_fines(fine_type, reference_date);
            """
        )
        db.commit()
    finally:
        db.close()
