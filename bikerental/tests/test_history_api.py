import unittest
from datetime import datetime, timedelta, timezone

from bikerental.analytics_db import (
    ForecastPoint,
    ModelMetricsRecord,
    PredictionRecord,
    RentalRecord,
    RideRecord,
)
from bikerental.db import ApplicationRecord, BikeRecord
from bikerental.tests.api_case import ApiTestCase
from bikerental.types import JobKind, JobStatus

MANILA = timezone(timedelta(hours=8))


def local_ts(year, month, day, hour=12):
    return datetime(year, month, day, hour, tzinfo=MANILA).timestamp()


class RiderHistoryApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.rider = self.make_user(email="rider@example.edu")
        self.store.add_rental(
            RentalRecord(user_id=self.rider.id, email="rider@example.edu", bike_id="b1",
                         start_date=100.0, end_date=200.0, created_at=200.0)
        )
        self.store.add_rental(
            RentalRecord(user_id=None, email="legacy@example.edu", bike_id="b1",
                         start_date=100.0, end_date=200.0, created_at=200.0)
        )

    def test_session_user_history(self):
        response = self.client.get("/api/rentalhistory/me", headers=self.auth_headers(self.rider))
        payload = response.json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["items"][0]["userId"], self.rider.id)

    def test_email_fallback_when_no_rentals_by_id(self):
        response = self.client.get(
            "/api/rentalhistory/me", params={"userId": "old-id", "email": "legacy@example.edu"}
        )
        payload = response.json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["items"][0]["userId"], "old-id")

    def test_include_applications(self):
        self.db.create_application(
            ApplicationRecord(user_id=self.rider.id, email="rider@example.edu",
                              first_name="R", last_name="O", status="pending")
        )
        response = self.client.get(
            "/api/rentalhistory/me",
            params={"includeApplications": "true"},
            headers=self.auth_headers(self.rider),
        )
        statuses = sorted(item["status"] for item in response.json()["items"])
        self.assertEqual(statuses, ["Completed", "Pending"])


class AdminHistoryApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.admin_headers()
        self.rider = self.make_user(email="ana@example.edu", name="Ana Santos")
        self.db.create_bike(BikeRecord(name="BSU 001", id="b1"))
        self.store.add_rental(
            RentalRecord(user_id=self.rider.id, email="ana@example.edu", bike_id="b1",
                         college="CICS", start_date=local_ts(2025, 3, 1),
                         end_date=local_ts(2025, 3, 5))
        )
        self.db.create_application(
            ApplicationRecord(user_id="u9", email="cy@example.edu", first_name="Cy",
                              last_name="Uy", college="CAS", status="rejected",
                              created_at=local_ts(2025, 3, 20))
        )

    def test_json_listing(self):
        payload = self.client.get("/api/admin/rental-history", headers=self.headers).json()
        self.assertEqual(payload["total"], 2)
        self.assertEqual([i["type"] for i in payload["items"]], ["rejected", "rental"])
        self.assertEqual(payload["items"][1]["bikeName"], "BSU 001")
        self.assertEqual({u["name"] for u in payload["users"]}, {"Ana Santos", "Cy Uy"})
        self.assertEqual({c["name"] for c in payload["colleges"]}, {"CICS", "CAS"})

    def test_filters_keep_summaries_unfiltered(self):
        payload = self.client.get(
            "/api/admin/rental-history",
            params={"dateFrom": "2025-03-04", "dateTo": "2025-03-10"},
            headers=self.headers,
        ).json()
        self.assertEqual(payload["total"], 1)
        self.assertEqual(payload["items"][0]["type"], "rental")
        self.assertEqual(len(payload["users"]), 2)

    def test_csv_export(self):
        response = self.client.get(
            "/api/admin/rental-history",
            params={"format": "csv", "q": "ana"},
            headers=self.headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertIn("rental-history.csv", response.headers["content-disposition"])
        lines = response.text.splitlines()
        self.assertEqual(lines[0], "User,Email,College,Bike,Start,End,Status")
        self.assertEqual(
            lines[1],
            "Ana Santos,ana@example.edu,CICS,BSU 001,2025-03-01 12:00,2025-03-05 12:00,Completed",
        )

    def test_requires_admin(self):
        response = self.client.get(
            "/api/admin/rental-history", headers=self.auth_headers(self.rider)
        )
        self.assertEqual(response.status_code, 403)


class UsageApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.headers = self.admin_headers()
        self.db.create_application(
            ApplicationRecord(user_id="u1", email="a@x", first_name="A", last_name="B",
                              college="CICS", created_at=local_ts(2025, 3, 12))
        )
        self.store.add_rental(
            RentalRecord(user_id="u1", email="a@x", bike_id="b1", college="CAS",
                         start_date=local_ts(2025, 3, 10))
        )

    def test_usage_week(self):
        payload = self.client.get(
            "/api/admin/usage", params={"range": "week"}, headers=self.headers
        ).json()
        self.assertEqual(payload["range"], "week")
        self.assertEqual(payload["labels"][-1], "Wed")
        self.assertEqual(payload["apps"][-1], 1)
        self.assertEqual(payload["rentals"][4], 1)

    def test_usage_rejects_unknown_range(self):
        response = self.client.get(
            "/api/admin/usage", params={"range": "decade"}, headers=self.headers
        )
        self.assertEqual(response.status_code, 422)

    def test_college_usage(self):
        payload = self.client.get(
            "/api/admin/college-usage", params={"range": "month"}, headers=self.headers
        ).json()
        self.assertEqual(payload["applicationCounts"], [0, 0, 0, 0, 1])
        self.assertEqual(payload["rentalCounts"], [0, 0, 1, 0, 0])

    def test_by_bike(self):
        self.assertEqual(self.client.get("/api/analytics/by-bike").status_code, 400)
        self.store.add_ride(
            RideRecord(ride_date=datetime.now(timezone.utc).timestamp(), distance_km=4.0,
                       bike_id="b1", bike_name="BSU 001", avg_speed_kmh=18.0)
        )
        by_name = self.client.get(
            "/api/analytics/by-bike", params={"bikeId": "unknown", "bikeName": "BSU 001"}
        ).json()
        self.assertTrue(by_name["success"])
        self.assertEqual(by_name["distanceKmToday"], 4.0)
        self.assertEqual(by_name["fastestSpeedKmh"], 18.0)


class MaintenanceApiTests(ApiTestCase):
    def test_predictions_sorted_with_bike_names(self):
        self.db.create_bike(BikeRecord(name="BSU 001", id="b1"))
        self.store.upsert_prediction(PredictionRecord("b1", 80.0))
        self.store.upsert_prediction(PredictionRecord("b2", 15.0))
        self.store.save_metrics(ModelMetricsRecord(mae=1.0, mse=2.0, r2=0.9))
        payload = self.client.get("/api/maintenance/predictions").json()
        self.assertEqual(payload["metrics"]["r2"], 0.9)
        self.assertEqual([p["bikeId"] for p in payload["predictions"]], ["b2", "b1"])
        self.assertIsNone(payload["predictions"][0]["bikeName"])
        self.assertEqual(payload["predictions"][1]["bikeName"], "BSU 001")

    def test_predictions_empty(self):
        payload = self.client.get("/api/maintenance/predictions").json()
        self.assertEqual(payload, {"metrics": None, "predictions": []})

    def test_forecast(self):
        self.store.replace_forecast([ForecastPoint("2025-01-06", 1.0, 2.0)])
        payload = self.client.get("/api/maintenance/forecast").json()
        self.assertEqual(payload["points"], [{"weekStart": "2025-01-06", "yhat": 1.0,
                                              "yhat_plus_sim": 2.0}])
        self.assertIn("expectedMaintenance", payload["nextMonth"])

    def test_train_queues_job(self):
        self.assertEqual(self.client.post("/api/maintenance/train").status_code, 401)
        response = self.client.post("/api/maintenance/train", headers=self.admin_headers())
        self.assertEqual(response.status_code, 202)
        job = self.db.get_job(response.json()["job_id"])
        self.assertEqual(job.kind, JobKind.MAINTENANCE_TRAIN.value)
        self.assertEqual(response.json()["status"], "WAITING")

    def test_train_without_service(self):
        self.settings.maintenance_service_url = None
        response = self.client.post("/api/maintenance/train", headers=self.admin_headers())
        self.assertEqual(response.status_code, 503)


class MiscApiTests(ApiTestCase):
    def test_healthz(self):
        self.assertEqual(self.client.get("/healthz").json(), {"ok": True})

    def test_faq(self):
        entries = self.client.get("/api/faq").json()["entries"]
        self.assertEqual(len(entries), 25)
        answer = self.client.post("/api/faq/ask", json={"question": "How do I rent a bike?"})
        self.assertEqual(answer.json()["matched"], "5")
        too_long = self.client.post("/api/faq/ask", json={"question": "x" * 1001})
        self.assertEqual(too_long.status_code, 422)

    def test_job_status(self):
        job = self.db.create_job(JobKind.PASSWORD_RESET_EMAIL.value, {})
        self.db.update_job_status(job.job_id, JobStatus.ERROR, "smtp down")
        payload = self.client.get(f"/api/jobs/{job.job_id}").json()
        self.assertEqual(payload["status"], "ERROR")
        self.assertEqual(payload["error"], "smtp down")
        self.assertEqual(self.client.get("/api/jobs/missing").status_code, 404)

    def test_sign_url(self):
        params = {"path": "bike-rental/certificates/a1/cert.pdf"}
        self.assertEqual(self.client.get("/api/sign-url", params=params).status_code, 401)
        response = self.client.get("/api/sign-url", params=params, headers=self.admin_headers())
        self.assertIn("op=get", response.json()["url"])
        put = self.client.get(
            "/api/sign-url", params=dict(params, op="put", expires_in=120),
            headers=self.admin_headers(),
        )
        self.assertTrue(put.json()["url"].endswith("op=put&expires=120"))
        bad = self.client.get(
            "/api/sign-url", params=dict(params, op="delete"), headers=self.admin_headers()
        )
        self.assertEqual(bad.status_code, 422)


if __name__ == "__main__":
    unittest.main()
