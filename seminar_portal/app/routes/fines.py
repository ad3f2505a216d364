from __future__ import annotations

from flask import Blueprint, jsonify, request

from ..errors import StoreError
from ..services.auth_service import cron_secret_required
from ..services.context import get_json_body, get_now, get_settings, get_store, parse_date
from ..services.fine_service import FineIssuer
from ..services.holiday_service import HolidayPolicy
from ..services.timing_service import TimingPolicy


bp = Blueprint("fines", __name__, url_prefix="/api")


def _issuer() -> FineIssuer:
    settings = get_settings()
    store = get_store()
    return FineIssuer(store, HolidayPolicy(store, settings), settings)


@bp.post("/fines/run")
@cron_secret_required
def run_fines():
    data = get_json_body()
    try:
        day = parse_date(data.get("date") or request.args.get("date"))
    except ValueError:
        return jsonify({"error": "Expected date as YYYY-MM-DD"}), 400
    if day is None:
        day = TimingPolicy(get_settings()).get_today_date(get_now())

    result = _issuer().create_fines_for_non_booked_students(day)
    return jsonify(result.to_dict()), 200 if result.success else 500


@bp.get("/students/<register_number>/fines")
def student_fines(register_number: str):
    try:
        student = get_store().get_student_by_register_number(register_number)
        if student is None:
            return jsonify({"error": "Student not found"}), 404
        summary = _issuer().get_student_fines(student["id"])
    except StoreError as exc:
        return jsonify({"error": "Failed to fetch fines", "details": str(exc)}), 500

    return jsonify(
        {
            "student": {
                "register_number": student["register_number"],
                "name": student["name"],
                "class_year": student["class_year"],
            },
            **summary,
        }
    )
