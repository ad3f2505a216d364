"""
HTTP tests for the JSON API using Flask's test client.

The clock, notifier and random source are injected through app.config so
every response is deterministic.
"""

import random
import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from seminar_portal.app import create_app
from seminar_portal.app.services.db_service import connect
from seminar_portal.app.services.store import SeminarStore

from support import WEDNESDAY, RecordingNotifier, make_settings


class ApiTestCase(unittest.TestCase):
    now = datetime(2025, 9, 2, 11, 0)
    settings_overrides: dict = {}

    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmp.name) / "seminar.db"
        self.notifier = RecordingNotifier()
        self.app = create_app(
            make_settings(**self.settings_overrides),
            self.db_path,
            {
                "TESTING": True,
                "CLOCK": lambda: self.now,
                "NOTIFIER": self.notifier,
                "RNG": random.Random(5),
            },
        )
        self.client = self.app.test_client()
        self.conn = connect(self.db_path)
        self.store = SeminarStore(self.conn)

    def tearDown(self) -> None:
        self.conn.close()
        self._tmp.cleanup()

    def add_student(self, reg: str, class_year: str = "II-IT") -> int:
        return self.store.insert_student(reg, f"Student {reg}", class_year, f"{reg.lower()}@example.edu")


class TestRunSelection(ApiTestCase):
    now = datetime(2025, 9, 2, 13, 31)

    def test_run_selection(self) -> None:
        a = self.add_student("A1", "II-IT")
        b = self.add_student("B1", "III-IT")
        self.store.insert_booking(a, WEDNESDAY, "Edge computing")
        self.store.insert_booking(b, WEDNESDAY, None)

        resp = self.client.post("/run-selection")

        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertTrue(body["success"])
        self.assertEqual(len(body["selections"]), 2)
        self.assertEqual(body["emails"]["sent"], 2)
        self.assertEqual(body["fines"]["finesCreated"], 0)
        self.assertIn("timestamp", body)

    def test_cron_alias_and_nothing_to_do(self) -> None:
        resp = self.client.get("/api/cron/direct-select")
        self.assertEqual(resp.status_code, 200)
        body = resp.get_json()
        self.assertEqual(body["selections"], [])
        self.assertEqual(body["message"], "No bookings found for selection")

    def test_auto_select_alias_with_explicit_date(self) -> None:
        resp = self.client.post("/api/seminar/auto-select", json={"date": "2025-09-05"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["seminar_date"], "2025-09-05")

    def test_bad_date(self) -> None:
        resp = self.client.post("/run-selection", json={"date": "05/09/2025"})
        self.assertEqual(resp.status_code, 400)

    def test_store_failure_is_500(self) -> None:
        self.conn.execute("DROP TABLE seminar_selections")
        self.conn.commit()
        resp = self.client.post("/run-selection")
        self.assertEqual(resp.status_code, 500)
        body = resp.get_json()
        self.assertFalse(body["success"])
        self.assertIn("seminar_selections", body["details"])

    def test_numeric_date_is_rejected(self) -> None:
        for path in ("/run-selection", "/api/seminar/auto-select", "/api/fines/run", "/api/holidays/reschedule"):
            with self.subTest(path=path):
                resp = self.client.post(path, json={"date": 20250903})
                self.assertEqual(resp.status_code, 400)
        resp = self.client.post("/api/holidays", json={"holiday_date": 20250903, "holiday_name": "Onam"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.store.list_holidays(), [])

    def test_non_object_body_is_ignored(self) -> None:
        resp = self.client.post("/api/seminar/auto-select", json=["2025-09-05"])
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["seminar_date"], "2025-09-03")

    def test_selection_status(self) -> None:
        a = self.add_student("A1")
        self.store.insert_selection(a, "II-IT", WEDNESDAY)

        resp = self.client.get("/api/seminar/auto-select?date=2025-09-03")
        body = resp.get_json()
        self.assertEqual(body["count"], 1)
        self.assertTrue(body["exists"])
        self.assertEqual(body["selections"][0]["student"]["register_number"], "A1")

        self.assertEqual(self.client.get("/api/seminar/auto-select").status_code, 400)


class TestCronSecret(ApiTestCase):
    settings_overrides = {"cron_secret": "s3cret"}

    def test_requires_secret(self) -> None:
        self.assertEqual(self.client.post("/run-selection").status_code, 401)
        self.assertEqual(
            self.client.post("/run-selection", headers={"Authorization": "Bearer wrong"}).status_code,
            401,
        )
        ok = self.client.post("/run-selection", headers={"Authorization": "Bearer s3cret"})
        self.assertEqual(ok.status_code, 200)
        ok = self.client.get("/api/cron/direct-select", headers={"X-Cron-Secret": "s3cret"})
        self.assertEqual(ok.status_code, 200)

    def test_read_endpoints_stay_open(self) -> None:
        self.assertEqual(self.client.get("/api/seminar/booking-window").status_code, 200)


class TestBookingWindowAndBookings(ApiTestCase):
    def test_booking_window(self) -> None:
        body = self.client.get("/api/seminar/booking-window").get_json()
        self.assertTrue(body["isOpen"])
        self.assertEqual(body["timeRemaining"], "2h 30m 0s")
        self.assertFalse(body["shouldTriggerAutoSelection"])
        self.assertEqual(body["config"]["startTime"], "10:30 AM")
        self.assertEqual(body["nextSeminarDate"], "2025-09-03")

    def test_next_date(self) -> None:
        body = self.client.get("/api/seminar/next-date").get_json()
        self.assertEqual(body["date"], "2025-09-03")

    def test_create_booking(self) -> None:
        self.add_student("A1")
        resp = self.client.post("/api/seminar/bookings", json={"register_number": "a1", "topic": "Edge AI"})
        self.assertEqual(resp.status_code, 201)
        booking = resp.get_json()["booking"]
        self.assertEqual(booking["booking_date"], "2025-09-03")
        self.assertEqual(booking["seminar_topic"], "Edge AI")

        dup = self.client.post("/api/seminar/bookings", json={"register_number": "A1"})
        self.assertEqual(dup.status_code, 409)

    def test_unknown_student(self) -> None:
        resp = self.client.post("/api/seminar/bookings", json={"register_number": "ZZ9"})
        self.assertEqual(resp.status_code, 404)

    def test_non_string_fields(self) -> None:
        self.assertEqual(
            self.client.post("/api/seminar/bookings", json={"register_number": 42}).status_code, 404
        )
        self.add_student("A1")
        resp = self.client.post("/api/seminar/bookings", json={"register_number": "A1", "booking_date": 20250905})
        self.assertEqual(resp.status_code, 400)

    def test_lookup_booking(self) -> None:
        self.add_student("A1")
        self.client.post("/api/seminar/bookings", json={"register_number": "A1", "topic": "Edge AI"})

        body = self.client.get("/api/seminar/bookings?register_number=a1").get_json()
        self.assertTrue(body["exists"])
        self.assertEqual(body["booking_date"], "2025-09-03")
        self.assertEqual(body["booking"]["seminar_topic"], "Edge AI")

        friday = self.client.get("/api/seminar/bookings?register_number=A1&date=2025-09-05").get_json()
        self.assertFalse(friday["exists"])
        self.assertIsNone(friday["booking"])

        self.assertEqual(self.client.get("/api/seminar/bookings?register_number=ZZ9").status_code, 404)
        self.assertEqual(self.client.get("/api/seminar/bookings").status_code, 400)
        self.assertEqual(
            self.client.get("/api/seminar/bookings?register_number=A1&date=tomorrow").status_code, 400
        )

    def test_booking_refused_once_date_is_drawn(self) -> None:
        a = self.add_student("A1")
        b = self.add_student("B1", "III-IT")
        self.store.insert_selection(b, "III-IT", WEDNESDAY)
        resp = self.client.post("/api/seminar/bookings", json={"register_number": "A1"})
        self.assertEqual(resp.status_code, 409)
        self.assertIsNone(self.store.get_booking(a, WEDNESDAY))

    def test_weekend_booking_rejected(self) -> None:
        self.add_student("A1")
        resp = self.client.post(
            "/api/seminar/bookings", json={"register_number": "A1", "booking_date": "2025-09-06"}
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("not a working day", resp.get_json()["error"])


class TestClosedWindow(ApiTestCase):
    now = datetime(2025, 9, 2, 15, 0)

    def test_booking_outside_window(self) -> None:
        self.add_student("A1")
        resp = self.client.post("/api/seminar/bookings", json={"register_number": "A1"})
        self.assertEqual(resp.status_code, 403)
        self.assertIn("closed", resp.get_json()["error"])


class TestHolidayRoutes(ApiTestCase):
    def test_check_weekend(self) -> None:
        body = self.client.get("/api/holidays/check?date=2025-08-31").get_json()
        self.assertTrue(body["isHoliday"])
        self.assertEqual(body["holiday"]["holiday_name"], "Sunday")

    def test_create_holiday_and_reschedule(self) -> None:
        a = self.add_student("A1")
        self.store.insert_selection(a, "II-IT", WEDNESDAY)

        resp = self.client.post(
            "/api/holidays", json={"holiday_date": "2025-09-03", "holiday_name": "Onam"}
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.get_json()
        self.assertEqual(body["reschedule"]["newDate"], "2025-09-04")
        self.assertTrue(body["reschedule"]["result"]["mutated"])

        dup = self.client.post("/api/holidays", json={"holiday_date": "2025-09-03", "holiday_name": "Again"})
        self.assertEqual(dup.status_code, 409)

        listed = self.client.get("/api/holidays?from=2025-09-01&to=2025-09-30").get_json()
        self.assertEqual(listed["count"], 1)

    def test_reschedule_preview(self) -> None:
        self.store.insert_holiday(WEDNESDAY, "Onam")
        body = self.client.post("/api/holidays/reschedule", json={"date": "2025-09-03", "apply": False}).get_json()
        self.assertTrue(body["needsReschedule"])
        self.assertFalse(body["result"]["mutated"])


class TestFineRoutes(ApiTestCase):
    def test_run_fines_and_student_summary(self) -> None:
        self.add_student("C1")
        resp = self.client.post("/api/fines/run", json={"date": "2025-09-03"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.get_json()["finesCreated"], 1)

        summary = self.client.get("/api/students/C1/fines").get_json()
        self.assertEqual(summary["total_amount"], "10.00")
        self.assertEqual(summary["student"]["register_number"], "C1")

        self.assertEqual(self.client.get("/api/students/NOPE/fines").status_code, 404)

    def test_run_fines_on_saturday(self) -> None:
        self.add_student("C1")
        body = self.client.post("/api/fines/run", json={"date": "2025-08-30"}).get_json()
        self.assertTrue(body["success"])
        self.assertEqual(body["finesCreated"], 0)
        self.assertIn("not a working day", body["message"])


class TestErrors(ApiTestCase):
    def test_unknown_route_is_json(self) -> None:
        resp = self.client.get("/nope")
        self.assertEqual(resp.status_code, 404)
        self.assertFalse(resp.get_json()["success"])

    def test_health(self) -> None:
        self.assertEqual(self.client.get("/api/health").get_json(), {"status": "ok"})


if __name__ == "__main__":
    unittest.main()
