import unittest

from bikerental.db import ApplicationRecord, BikeRecord
from bikerental.tests.api_case import ApiTestCase
from bikerental.types import JobKind

STUDENT_FORM = {
    "lastName": "Santos",
    "firstName": "Ana",
    "srCode": "21-12345",
    "sex": "F",
    "dateOfBirth": "2003-04-05",
    "phoneNumber": "09171234567",
    "email": "ana@example.edu",
    "college": "CICS",
    "houseNo": "12",
    "streetName": "Rizal St",
    "barangay": "Poblacion",
    "municipality": "Batangas City",
    "province": "Batangas",
    "distanceFromCampus": "3km",
    "familyIncome": "below 10k",
    "intendedDuration": "30",
}

COMPLETE_EVALUATION = {
    "eligibilityStatus": "eligible",
    "eligibilitySignatureName": "Officer A",
    "rankingScore": 88,
    "rankingRecommended": True,
    "rankingSignatureName": "Officer B",
    "healthStatus": "fit",
    "healthSignatureName": "Nurse C",
    "approvedSignatureName": "Director D",
}


class ApplicationApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.student = self.make_user(email="ana@example.edu", name="Ana Santos")

    def submit_student(self, files=None, headers=None):
        return self.client.post(
            "/api/applications",
            data=STUDENT_FORM,
            files=files or {},
            headers=headers if headers is not None else self.auth_headers(self.student),
        )

    def test_submit_student_application_uploads_documents(self):
        response = self.submit_student(
            files={
                "indigencyFile": ("cert.pdf", b"%PDF-cert", "application/pdf"),
                "gwaFile": ("grades.pdf", b"%PDF-gwa", "application/pdf"),
            }
        )
        self.assertEqual(response.status_code, 200)
        app_id = response.json()["application"]["id"]
        application = self.db.get_application(app_id)
        self.assertEqual(application.status, "pending")
        self.assertIsNone(application.bike_id)
        self.assertEqual(application.application_type, "student")
        self.assertEqual(application.user_id, self.student.id)
        self.assertEqual(
            application.details["certificatePath"],
            f"bike-rental/certificates/{app_id}/cert.pdf",
        )
        self.assertEqual(
            application.details["gwaDocumentPath"],
            f"bike-rental/documents/gwa/{app_id}/grades.pdf",
        )
        self.assertIsNone(application.details["itrDocumentPath"])
        self.assertEqual(
            self.storage.stored_objects[application.details["certificatePath"]], b"%PDF-cert"
        )

    def test_submit_requires_user(self):
        response = self.submit_student(headers={})
        self.assertEqual(response.status_code, 401)

    def test_submit_accepts_user_id_form_field(self):
        response = self.client.post(
            "/api/applications", data=dict(STUDENT_FORM, userId=self.student.id)
        )
        self.assertEqual(response.status_code, 200)

    def test_submit_missing_required_field(self):
        form = dict(STUDENT_FORM)
        form.pop("srCode")
        response = self.client.post(
            "/api/applications", data=form, headers=self.auth_headers(self.student)
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("srCode", response.json()["detail"])

    def test_only_one_open_application(self):
        self.assertEqual(self.submit_student().status_code, 200)
        second = self.submit_student()
        self.assertEqual(second.status_code, 400)

        staff = self.client.post(
            "/api/applications/staff",
            json=self.staff_payload(),
            headers=self.auth_headers(self.student),
        )
        self.assertEqual(staff.status_code, 400)

    def test_new_application_allowed_after_rejection(self):
        self.db.create_application(
            ApplicationRecord(
                user_id=self.student.id,
                email="ana@example.edu",
                first_name="Ana",
                last_name="Santos",
                status="rejected",
            )
        )
        self.assertEqual(self.submit_student().status_code, 200)

    def staff_payload(self, **overrides):
        payload = {
            "lastName": "Reyes",
            "firstName": "Carlo",
            "email": "carlo@example.edu",
            "department": "Registrar",
            "staffId": "S-001",
            "employeeType": "regular",
            "purpose": "commute",
            "startDate": "2025-06-01",
            "durationDays": 14,
        }
        payload.update(overrides)
        return payload

    def test_submit_staff_application(self):
        staff = self.make_user(email="carlo@example.edu", role="staff")
        response = self.client.post(
            "/api/applications/staff",
            json=self.staff_payload(),
            headers=self.auth_headers(staff),
        )
        self.assertEqual(response.status_code, 200)
        application = self.db.get_application(response.json()["application"]["id"])
        self.assertEqual(application.application_type, "staff")
        self.assertEqual(application.details["durationDays"], 14)
        self.assertEqual(application.details["department"], "Registrar")

    def test_staff_application_requires_fields(self):
        staff = self.make_user(email="carlo@example.edu", role="staff")
        response = self.client.post(
            "/api/applications/staff",
            json=self.staff_payload(purpose=""),
            headers=self.auth_headers(staff),
        )
        self.assertEqual(response.status_code, 400)


class AdminWorkflowApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.admin_headers()
        self.bike = self.db.create_bike(BikeRecord(name="BSU 001", device_id="dev-1"))
        self.application = self.db.create_application(
            ApplicationRecord(
                user_id="u1",
                email="ana@example.edu",
                first_name="Ana",
                last_name="Santos",
                college="CICS",
                details={"intendedDuration": "30"},
            )
        )

    def approve(self):
        self.client.post(
            "/api/admin/applications/evaluation",
            json={"applicationId": self.application.id, "evaluation": COMPLETE_EVALUATION},
            headers=self.admin,
        )
        return self.client.post(
            "/api/admin/applications",
            json={"applicationId": self.application.id, "status": "approved"},
            headers=self.admin,
        )

    def test_approval_requires_complete_evaluation(self):
        response = self.client.post(
            "/api/admin/applications",
            json={"applicationId": self.application.id, "status": "approved"},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 400)
        self.assertEqual(self.db.get_application(self.application.id).status, "pending")

    def test_reject_without_evaluation_queues_email(self):
        response = self.client.post(
            "/api/admin/applications",
            json={"applicationId": self.application.id, "status": "rejected"},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 200)
        job = self.db.get_job(response.json()["jobId"])
        self.assertEqual(job.kind, JobKind.APPLICATION_STATUS_EMAIL.value)
        self.assertEqual(job.payload, {"applicationId": self.application.id, "status": "rejected"})

    def test_invalid_status_rejected(self):
        response = self.client.post(
            "/api/admin/applications",
            json={"applicationId": self.application.id, "status": "completed"},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 400)

    def test_unknown_application(self):
        response = self.client.post(
            "/api/admin/applications",
            json={"applicationId": "missing", "status": "rejected"},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 404)

    def test_evaluation_merges_known_keys(self):
        self.client.post(
            "/api/admin/applications/evaluation",
            json={
                "applicationId": self.application.id,
                "evaluation": {"eligibilityStatus": "eligible", "unknownKey": 1},
            },
            headers=self.admin,
        )
        response = self.client.post(
            "/api/admin/applications/evaluation",
            json={"applicationId": self.application.id, "evaluation": {"healthStatus": "fit"}},
            headers=self.admin,
        )
        self.assertEqual(
            response.json()["evaluation"],
            {"eligibilityStatus": "eligible", "healthStatus": "fit"},
        )

    def test_full_rental_lifecycle(self):
        self.assertEqual(self.approve().status_code, 200)

        assign = self.client.post(
            "/api/admin/assign-bike",
            json={"applicationId": self.application.id, "bikeId": self.bike.id},
            headers=self.admin,
        )
        self.assertEqual(assign.status_code, 200)
        application = self.db.get_application(self.application.id)
        self.assertEqual(application.status, "assigned")
        self.assertEqual(application.bike_id, self.bike.id)
        self.assertAlmostEqual(application.due_date - application.assigned_at, 30 * 86400)
        self.assertEqual(self.db.get_bike(self.bike.id).status, "rented")
        job = self.db.get_job(assign.json()["jobId"])
        self.assertEqual(job.kind, JobKind.BIKE_ASSIGNED_EMAIL.value)

        status_change = self.client.post(
            "/api/admin/applications",
            json={"applicationId": self.application.id, "status": "pending"},
            headers=self.admin,
        )
        self.assertEqual(status_change.status_code, 409)

        end = self.client.post(
            "/api/admin/end-rental",
            json={"applicationId": self.application.id},
            headers=self.admin,
        )
        self.assertEqual(end.status_code, 200)
        self.assertEqual(self.db.get_application(self.application.id).status, "completed")
        self.assertEqual(self.db.get_bike(self.bike.id).status, "available")
        rentals = self.store.list_rentals(user_id="u1")
        self.assertEqual(len(rentals), 1)
        self.assertEqual(rentals[0].start_date, application.assigned_at)
        self.assertEqual(rentals[0].bike_name, "BSU 001")
        self.assertEqual(rentals[0].college, "CICS")

        again = self.client.post(
            "/api/admin/end-rental",
            json={"applicationId": self.application.id},
            headers=self.admin,
        )
        self.assertEqual(again.status_code, 409)

    def test_assign_requires_approval(self):
        response = self.client.post(
            "/api/admin/assign-bike",
            json={"applicationId": self.application.id, "bikeId": self.bike.id},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.db.get_bike(self.bike.id).status, "available")

    def test_assign_requires_available_bike(self):
        self.approve()
        self.db.update_bike(self.bike.id, status="maintenance")
        response = self.client.post(
            "/api/admin/assign-bike",
            json={"applicationId": self.application.id, "bikeId": self.bike.id},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 409)

    def test_assign_unknown_bike(self):
        self.approve()
        response = self.client.post(
            "/api/admin/assign-bike",
            json={"applicationId": self.application.id, "bikeId": "nope"},
            headers=self.admin,
        )
        self.assertEqual(response.status_code, 404)

    def test_admin_list_sort_and_filters(self):
        rejected = self.db.create_application(
            ApplicationRecord(
                user_id="u2", email="rej@example.edu", first_name="Rex", last_name="Jones",
                status="rejected", created_at=self.application.created_at + 10,
            )
        )
        assigned = self.db.create_application(
            ApplicationRecord(
                user_id="u3", email="as@example.edu", first_name="Ann", last_name="Lee",
                status="assigned", bike_id=self.bike.id, created_at=self.application.created_at + 5,
            )
        )
        response = self.client.get("/api/admin/applications", headers=self.admin)
        ids = [a["id"] for a in response.json()["applications"]]
        self.assertEqual(ids, [self.application.id, assigned.id, rejected.id])
        assigned_payload = response.json()["applications"][1]
        self.assertEqual(assigned_payload["bike"]["name"], "BSU 001")

        only_assigned = self.client.get(
            "/api/admin/applications", params={"status": "assigned"}, headers=self.admin
        )
        self.assertEqual([a["id"] for a in only_assigned.json()["applications"]], [assigned.id])

        search = self.client.get(
            "/api/admin/applications", params={"q": "rex jones"}, headers=self.admin
        )
        self.assertEqual([a["id"] for a in search.json()["applications"]], [rejected.id])

        bad = self.client.get(
            "/api/admin/applications", params={"status": "weird"}, headers=self.admin
        )
        self.assertEqual(bad.status_code, 400)

    def test_notify_routes_accept_secret(self):
        headers = {"Authorization": "Bearer notify-secret"}
        response = self.client.post(
            "/api/admin/applications/notify",
            json={"applicationId": self.application.id, "status": "approved"},
            headers=headers,
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["queued"])

        no_bike = self.client.post(
            "/api/admin/assign-bike/notify",
            json={"applicationId": self.application.id},
            headers=headers,
        )
        self.assertEqual(no_bike.status_code, 400)

        unauthorized = self.client.post(
            "/api/admin/applications/notify",
            json={"applicationId": self.application.id, "status": "approved"},
        )
        self.assertEqual(unauthorized.status_code, 401)

    def test_notify_without_email_succeeds_without_queueing(self):
        self.db.update_application(self.application.id, email="")
        response = self.client.post(
            "/api/admin/applications/notify",
            json={"applicationId": self.application.id, "status": "rejected"},
            headers=self.admin,
        )
        self.assertEqual(response.json(), {"success": True, "queued": False})
        self.assertEqual(self.queue.size(), 0)

    def test_stats(self):
        self.db.create_bike(BikeRecord(name="BSU 002", status="rented"))
        self.db.create_application(
            ApplicationRecord(
                user_id="u9", email="x@example.edu", first_name="X", last_name="Y",
                status="assigned", bike_id="b2",
            )
        )
        response = self.client.get("/api/admin/stats", headers=self.admin)
        stats = response.json()
        self.assertEqual(stats["totalApplications"], 2)
        self.assertEqual(stats["pendingApplications"], 1)
        self.assertEqual(stats["assignedApplications"], 1)
        self.assertEqual(stats["totalBikes"], 2)
        self.assertEqual(stats["availableBikes"], 1)
        self.assertEqual(stats["rentedBikes"], 1)
        self.assertIn("bike_damage", stats["issuesByCategory"])


if __name__ == "__main__":
    unittest.main()
