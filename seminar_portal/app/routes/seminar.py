from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, jsonify, request

from ..errors import BookingError, HolidaySearchExhausted, StoreError
from ..logging import get_logger
from ..services.auth_service import cron_secret_required
from ..services.booking_service import BookingService
from ..services.context import (
    get_json_body,
    get_notifier,
    get_now,
    get_rng,
    get_settings,
    get_store,
    parse_date,
)
from ..services.holiday_service import HolidayPolicy
from ..services.scheduler_service import SeminarScheduler
from ..services.selection_service import selection_payload
from ..services.timing_service import TimingPolicy, format_time_remaining


bp = Blueprint("seminar", __name__)

log = get_logger(__name__)


def _utc_stamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _failure(message: str, details: str, status: int = 500):
    return jsonify({"success": False, "error": message, "details": details, "timestamp": _utc_stamp()}), status


def run_selection():
    body = get_json_body()
    try:
        target = parse_date(body.get("date") or request.args.get("date"))
    except ValueError:
        return _failure("Invalid date", "Expected YYYY-MM-DD", 400)

    scheduler = SeminarScheduler(get_store(), get_settings(), get_notifier(), get_rng())
    try:
        result = scheduler.run(get_now(), target)
    except (StoreError, HolidaySearchExhausted) as exc:
        log.error("scheduler_run_failed", error=str(exc))
        return _failure("Selection run failed", str(exc))
    except Exception as exc:
        log.exception("scheduler_run_crashed")
        return _failure("Internal server error", str(exc))

    return jsonify(result), 200 if result["success"] else 500


bp.add_url_rule("/run-selection", "run_selection", cron_secret_required(run_selection), methods=["POST"])
bp.add_url_rule(
    "/api/cron/direct-select",
    "cron_direct_select",
    cron_secret_required(run_selection),
    methods=["GET", "POST"],
)
bp.add_url_rule("/api/seminar/auto-select", "auto_select", cron_secret_required(run_selection), methods=["POST"])


@bp.get("/api/seminar/auto-select")
def selection_status():
    try:
        day = parse_date(request.args.get("date"))
    except ValueError:
        return _failure("Invalid date", "Expected YYYY-MM-DD", 400)
    if day is None:
        return jsonify({"error": "Date parameter is required"}), 400

    try:
        rows = get_store().selections_for_date(day)
    except StoreError as exc:
        return _failure("Failed to fetch selections", str(exc))

    return jsonify(
        {
            "selections": [selection_payload(r) for r in rows],
            "count": len(rows),
            "exists": bool(rows),
        }
    )


@bp.get("/api/seminar/booking-window")
def booking_window():
    timing = TimingPolicy(get_settings())
    now = get_now()
    info = timing.get_booking_window_info(now)
    payload = info.to_dict()
    remaining = info.time_until_close if info.is_open else info.time_until_open
    payload.update(
        {
            "config": timing.get_booking_window_config(),
            "timeRemaining": format_time_remaining(remaining) if remaining is not None else None,
            "shouldTriggerAutoSelection": timing.should_trigger_auto_selection(now),
            "nextSeminarDate": timing.get_next_seminar_date(now).isoformat(),
        }
    )
    return jsonify(payload)


@bp.get("/api/seminar/next-date")
def next_seminar_date():
    settings = get_settings()
    timing = TimingPolicy(settings)
    holidays = HolidayPolicy(get_store(), settings, timing)
    now = get_now()
    try:
        day = holidays.get_holiday_aware_next_seminar_date(now)
    except HolidaySearchExhausted as exc:
        return _failure("No working day found", str(exc))
    return jsonify({"date": day.isoformat(), "default_date": timing.get_next_seminar_date(now).isoformat()})


def _booking_service() -> BookingService:
    settings = get_settings()
    store = get_store()
    timing = TimingPolicy(settings)
    return BookingService(store, timing, HolidayPolicy(store, settings, timing))


@bp.get("/api/seminar/bookings")
def student_booking():
    register_number = request.args.get("register_number") or ""
    service = _booking_service()
    try:
        day = parse_date(request.args.get("date"))
        if day is None:
            day = service.holidays.get_holiday_aware_next_seminar_date(get_now())
        booking = service.get_student_booking(register_number, day)
    except ValueError:
        return _failure("Invalid date", "Expected YYYY-MM-DD", 400)
    except BookingError as exc:
        return jsonify({"success": False, "error": str(exc)}), exc.status
    except (StoreError, HolidaySearchExhausted) as exc:
        return _failure("Failed to fetch booking", str(exc))

    return jsonify({"booking_date": day.isoformat(), "booking": booking, "exists": booking is not None})


@bp.post("/api/seminar/bookings")
def create_booking():
    data = get_json_body()
    try:
        booking_date = parse_date(data.get("booking_date"))
    except ValueError:
        return _failure("Invalid date", "Expected YYYY-MM-DD", 400)

    service = _booking_service()
    try:
        booking = service.create_booking(
            data.get("register_number") or "",
            data.get("topic") or data.get("seminar_topic"),
            get_now(),
            booking_date,
        )
    except BookingError as exc:
        return jsonify({"success": False, "error": str(exc)}), exc.status
    except (StoreError, HolidaySearchExhausted) as exc:
        return _failure("Failed to create booking", str(exc))

    return jsonify({"success": True, "booking": booking}), 201
