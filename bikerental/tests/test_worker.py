import unittest
from unittest.mock import patch

import requests

from bikerental.analytics_db import InMemoryAnalyticsStore
from bikerental.config import Settings
from bikerental.db import ApplicationRecord, BikeRecord, InMemoryDbClient
from bikerental.mailer import InMemoryMailer
from bikerental.notifications import enqueue_job
from bikerental.queue import InMemoryJobQueue
from bikerental.types import JobKind, JobStatus
from bikerental.worker import process_next


class WorkerTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.queue = InMemoryJobQueue()
        self.mailer = InMemoryMailer()
        self.store = InMemoryAnalyticsStore()
        self.settings = Settings(
            use_in_memory_backends=True,
            frontend_base_url="https://rent.example.edu/",
            maintenance_service_url="http://maintenance.test",
        )
        self.application = self.db.create_application(
            ApplicationRecord(user_id="u1", email="ana@example.edu", first_name="Ana",
                              last_name="Santos")
        )

    def run_next(self):
        return process_next(
            db=self.db,
            queue=self.queue,
            mailer=self.mailer,
            store=self.store,
            settings=self.settings,
            block=False,
        )

    def enqueue(self, kind, payload):
        return enqueue_job(self.db, self.queue, kind, payload)

    def test_application_status_email(self):
        job = self.enqueue(
            JobKind.APPLICATION_STATUS_EMAIL,
            {"applicationId": self.application.id, "status": "approved"},
        )
        self.assertTrue(self.run_next())
        self.assertEqual(self.db.get_job(job.job_id).status, JobStatus.SUCCESS)
        self.assertEqual(len(self.mailer.outbox), 1)
        sent = self.mailer.outbox[0]
        self.assertEqual(sent.to, "ana@example.edu")
        self.assertIn("Approved", sent.subject)

    def test_bike_assigned_email_names_bike(self):
        bike = self.db.create_bike(BikeRecord(name="BSU 007"))
        self.enqueue(
            JobKind.BIKE_ASSIGNED_EMAIL,
            {"applicationId": self.application.id, "bikeId": bike.id},
        )
        self.run_next()
        self.assertIn("BSU 007", self.mailer.outbox[0].html)

    def test_password_reset_email_link(self):
        self.enqueue(
            JobKind.PASSWORD_RESET_EMAIL, {"email": "ana@example.edu", "token": "abc123"}
        )
        self.run_next()
        self.assertIn(
            "https://rent.example.edu/reset-password?token=abc123", self.mailer.outbox[0].text
        )

    def test_missing_application_marks_error(self):
        job = self.enqueue(
            JobKind.APPLICATION_STATUS_EMAIL, {"applicationId": "gone", "status": "rejected"}
        )
        self.assertTrue(self.run_next())
        failed = self.db.get_job(job.job_id)
        self.assertEqual(failed.status, JobStatus.ERROR)
        self.assertIn("gone", failed.error)
        self.assertEqual(self.mailer.outbox, [])

    def test_application_without_email_succeeds_silently(self):
        self.db.update_application(self.application.id, email="")
        job = self.enqueue(
            JobKind.APPLICATION_STATUS_EMAIL,
            {"applicationId": self.application.id, "status": "rejected"},
        )
        self.run_next()
        self.assertEqual(self.db.get_job(job.job_id).status, JobStatus.SUCCESS)
        self.assertEqual(self.mailer.outbox, [])

    def test_unknown_kind(self):
        job = self.db.create_job("carrier_pigeon", {})
        self.queue.enqueue(job.job_id)
        self.run_next()
        self.assertEqual(self.db.get_job(job.job_id).status, JobStatus.ERROR)

    @patch("bikerental.worker.request_training")
    def test_training_job_stores_result(self, mock_request):
        mock_request.return_value = {
            "metrics": {"mae": 1, "mse": 2, "r2": 0.5},
            "predictions": [{"bikeId": "b1", "predictedKmUntilMaintenance": 12}],
            "forecast": [{"weekStart": "2025-04-07", "yhat": 1.5}],
        }
        job = self.enqueue(JobKind.MAINTENANCE_TRAIN, {"requestedBy": "admin@example.edu"})
        self.run_next()
        mock_request.assert_called_once_with("http://maintenance.test")
        self.assertEqual(self.db.get_job(job.job_id).status, JobStatus.SUCCESS)
        self.assertEqual(self.store.latest_metrics().r2, 0.5)
        self.assertEqual(len(self.store.list_forecast()), 1)

    @patch("bikerental.worker.request_training")
    def test_training_failure_is_recorded(self, mock_request):
        mock_request.side_effect = requests.HTTPError("502 Bad Gateway")
        job = self.enqueue(JobKind.MAINTENANCE_TRAIN, {})
        self.run_next()
        failed = self.db.get_job(job.job_id)
        self.assertEqual(failed.status, JobStatus.ERROR)
        self.assertEqual(failed.error, "502 Bad Gateway")

    def test_unqueued_waiting_job_is_picked_up(self):
        job = self.db.create_job(
            JobKind.PASSWORD_RESET_EMAIL.value, {"email": "a@x", "token": "t"}
        )
        self.assertTrue(self.run_next())
        self.assertEqual(self.db.get_job(job.job_id).status, JobStatus.SUCCESS)

    def test_already_claimed_job_is_skipped(self):
        job = self.enqueue(JobKind.PASSWORD_RESET_EMAIL, {"email": "a@x", "token": "t"})
        self.db.claim_job(job.job_id)
        self.assertFalse(self.run_next())
        self.assertEqual(self.mailer.outbox, [])

    def test_unknown_queue_item(self):
        self.queue.enqueue("no-such-job")
        self.assertFalse(self.run_next())

    def test_no_jobs(self):
        self.assertFalse(self.run_next())


if __name__ == "__main__":
    unittest.main()
