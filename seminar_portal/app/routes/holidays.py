from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..errors import DuplicateRecordError, HolidaySearchExhausted, StoreError
from ..services.auth_service import cron_secret_required
from ..services.context import get_json_body, get_settings, get_store, parse_date
from ..services.holiday_service import HolidayPolicy


bp = Blueprint("holidays", __name__, url_prefix="/api/holidays")


def _policy() -> HolidayPolicy:
    return HolidayPolicy(get_store(), get_settings())


def _truthy(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


@bp.get("/check")
def check():
    try:
        day = parse_date(request.args.get("date"))
    except ValueError:
        return jsonify({"error": "Expected date as YYYY-MM-DD"}), 400
    if day is None:
        return jsonify({"error": "Date parameter is required"}), 400
    return jsonify(_policy().is_holiday(day).to_dict())


@bp.get("")
def list_holidays():
    try:
        start = parse_date(request.args.get("from"))
        end = parse_date(request.args.get("to"))
    except ValueError:
        return jsonify({"error": "Expected dates as YYYY-MM-DD"}), 400
    try:
        rows = _policy().list_holidays(start, end)
    except StoreError as exc:
        return jsonify({"error": "Failed to fetch holidays", "details": str(exc)}), 500
    return jsonify({"holidays": rows, "count": len(rows)})


@bp.post("")
@cron_secret_required
def create_holiday():
    data = get_json_body()
    name = str(data.get("holiday_name") or "").strip()
    try:
        day = parse_date(data.get("holiday_date"))
    except ValueError:
        return jsonify({"error": "Expected holiday_date as YYYY-MM-DD"}), 400
    if day is None or not name:
        return jsonify({"error": "holiday_date and holiday_name are required"}), 400

    try:
        holiday, reschedule = _policy().add_holiday(
            day,
            name,
            str(data.get("holiday_type") or "college").strip(),
            _truthy(data.get("affects_seminars", True)),
        )
    except DuplicateRecordError:
        return jsonify({"error": f"A holiday already exists on {day.isoformat()}"}), 409
    except (StoreError, HolidaySearchExhausted) as exc:
        return jsonify({"error": "Failed to create holiday", "details": str(exc)}), 500

    return jsonify({"success": True, "holiday": holiday, "reschedule": reschedule.to_dict()}), 201


@bp.post("/reschedule")
@cron_secret_required
def reschedule():
    data = get_json_body()
    try:
        day = parse_date(data.get("date") or request.args.get("date"))
    except ValueError:
        return jsonify({"error": "Expected date as YYYY-MM-DD"}), 400
    if day is None:
        return jsonify({"error": "Date is required"}), 400

    try:
        result = _policy().check_and_reschedule_seminar(day, apply=_truthy(data.get("apply", True)))
    except (StoreError, HolidaySearchExhausted) as exc:
        return jsonify({"error": "Reschedule failed", "details": str(exc)}), 500
    return jsonify(result.to_dict())
