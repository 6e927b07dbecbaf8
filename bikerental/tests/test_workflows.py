import unittest

from bikerental.analytics_db import InMemoryAnalyticsStore
from bikerental.db import ApplicationRecord, BikeRecord, InMemoryDbClient
from bikerental.workflows import (
    WorkflowError,
    assign_bike,
    current_assignment,
    end_rental,
    evaluation_complete,
    parse_duration_days,
    rental_duration_days,
    safe_filename,
)


def _app(**kwargs):
    defaults = dict(user_id="u1", email="a@x", first_name="A", last_name="B")
    defaults.update(kwargs)
    return ApplicationRecord(**defaults)


class DurationTests(unittest.TestCase):
    def test_parse_duration_days(self):
        self.assertEqual(parse_duration_days(30), 30)
        self.assertEqual(parse_duration_days("14 days"), 14)
        self.assertEqual(parse_duration_days(" 1 day "), 1)
        self.assertIsNone(parse_duration_days("a semester"))
        self.assertIsNone(parse_duration_days(0))
        self.assertIsNone(parse_duration_days(True))
        self.assertIsNone(parse_duration_days(None))

    def test_rental_duration_by_type(self):
        self.assertEqual(rental_duration_days(_app(details={"intendedDuration": "30"})), 30)
        other = _app(details={"intendedDuration": "Other", "intendedDurationOther": "45"})
        self.assertEqual(rental_duration_days(other), 45)
        staff = _app(application_type="staff", details={"durationDays": 7})
        self.assertEqual(rental_duration_days(staff), 7)


class EvaluationTests(unittest.TestCase):
    STAFF_COMPLETE = {
        "eligibilityStatus": "eligible",
        "eligibilitySignatureName": "A",
        "healthStatus": "fit",
        "healthSignatureName": "B",
        "approvedSignatureName": "C",
    }

    def test_staff_skips_ranking(self):
        staff = _app(application_type="staff", evaluation=dict(self.STAFF_COMPLETE))
        self.assertTrue(evaluation_complete(staff))
        student = _app(evaluation=dict(self.STAFF_COMPLETE))
        self.assertFalse(evaluation_complete(student))

    def test_student_ranking_allows_not_recommended(self):
        evaluation = dict(
            self.STAFF_COMPLETE,
            rankingScore=70,
            rankingRecommended=False,
            rankingSignatureName="D",
        )
        self.assertTrue(evaluation_complete(_app(evaluation=evaluation)))
        self.assertFalse(evaluation_complete(_app(evaluation=None)))


class AssignmentTests(unittest.TestCase):
    def setUp(self):
        self.db = InMemoryDbClient()
        self.store = InMemoryAnalyticsStore()
        self.bike = self.db.create_bike(BikeRecord(name="BSU 001"))

    def test_assign_without_duration_leaves_due_date_empty(self):
        app = self.db.create_application(_app(status="approved", details={}))
        assigned, bike = assign_bike(self.db, app.id, self.bike.id, now=1000.0)
        self.assertEqual(assigned.assigned_at, 1000.0)
        self.assertIsNone(assigned.due_date)
        self.assertEqual(bike.status, "rented")

    def test_end_rental_on_legacy_active_application(self):
        app = self.db.create_application(
            _app(status="active", bike_id=self.bike.id, created_at=500.0)
        )
        self.db.update_bike(self.bike.id, status="rented")
        rental = end_rental(self.db, self.store, app.id, now=900.0)
        self.assertEqual((rental.start_date, rental.end_date), (500.0, 900.0))
        self.assertEqual(self.db.get_application(app.id).completed_at, 900.0)

    def test_errors_carry_status_codes(self):
        with self.assertRaises(WorkflowError) as ctx:
            end_rental(self.db, self.store, "missing")
        self.assertEqual(ctx.exception.status_code, 404)

    def test_current_assignment_priority(self):
        approved = _app(status="approved", bike_id="b1", assigned_at=300.0)
        active = _app(status="active", bike_id="b2", assigned_at=200.0)
        assigned_old = _app(status="assigned", bike_id="b3", assigned_at=50.0)
        assigned_new = _app(status="Assigned", bike_id="b4", assigned_at=100.0)
        no_bike = _app(status="assigned")
        picked = current_assignment([approved, active, assigned_old, assigned_new, no_bike])
        self.assertIs(picked, assigned_new)
        self.assertIs(current_assignment([approved, active]), active)
        self.assertIsNone(current_assignment([no_bike]))

    def test_safe_filename(self):
        self.assertEqual(safe_filename("my cert (1).pdf"), "my_cert_1_.pdf")
        self.assertEqual(safe_filename("../../etc/passwd"), "_.._etc_passwd")
        self.assertEqual(safe_filename("   "), "document")


if __name__ == "__main__":
    unittest.main()
