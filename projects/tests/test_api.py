# projects/tests/test_api.py
import json
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from core.exceptions import TransientFailure
from projects.applications import accept_application
from projects.ledger import append_update
from projects.models import Application, Project, ProjectUpdate, Review
from .factories import make_client, make_professional, make_project


class MarketplaceFlowTest(TestCase):
    """End-to-end: bid, accept, work, submit, complete, review."""

    def setUp(self):
        self.owner = make_client("carol")
        self.pro = make_professional("pat")
        self.rival = make_professional("sam")

        self.api_owner = APIClient()
        self.api_pro = APIClient()
        self.api_rival = APIClient()
        self.api_owner.force_authenticate(self.owner)
        self.api_pro.force_authenticate(self.pro)
        self.api_rival.force_authenticate(self.rival)

    def _create_project(self):
        r = self.api_owner.post(
            reverse("project-list"),
            {
                "title": "Replace water heater",
                "description": "40 gallon gas unit",
                "budget": "600.00",
                "category": "plumbing",
                "required_skills": ["plumbing", "gas", "plumbing"],
                "requirements": ["Licensed", "Haul away old unit"],
            },
            format="json",
        )
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(r.data["status"], Project.STATUS_OPEN)
        self.assertEqual(r.data["required_skills"], ["plumbing", "gas"])
        return r.data["id"]

    def test_full_flow(self):
        project_id = self._create_project()
        applications_url = reverse("project-applications", args=[project_id])

        # 1) Bid $500 on a $600 project, rival bids too, client accepts pat
        r = self.api_pro.post(applications_url, {"bid_amount": "500.00", "proposal": "Next week"}, format="json")
        self.assertEqual(r.status_code, 201, r.data)
        app_id = r.data["id"]
        r = self.api_rival.post(applications_url, {}, format="json")
        self.assertEqual(r.status_code, 201, r.data)
        rival_app_id = r.data["id"]
        self.assertEqual(r.data["bid_amount"], "600.00")

        r = self.api_owner.post(reverse("application-accept", args=[app_id]))
        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["status"], Application.STATUS_ACCEPTED)

        project = Project.objects.get(pk=project_id)
        self.assertEqual(project.status, Project.STATUS_ASSIGNED)
        self.assertEqual(project.assigned_to, self.pro)
        self.assertEqual(Application.objects.get(pk=rival_app_id).status, Application.STATUS_PENDING)

        # 4) Late bidder is turned away
        late = make_professional("late")
        api_late = APIClient()
        api_late.force_authenticate(late)
        r = api_late.post(applications_url, {"bid_amount": "450.00"}, format="json")
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "project_not_open")
        self.assertEqual(r.data["current_status"], Project.STATUS_ASSIGNED)

        # 2) Check in, then report completion in free text
        updates_url = reverse("project-updates", args=[project_id])
        r = self.api_pro.post(
            updates_url,
            {
                "update_type": "check_in",
                "metadata": {"checked_by": "pat", "geolocation": {"latitude": 30.2, "longitude": -97.7}},
            },
            format="json",
        )
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(r.data["category"], "activity")
        self.assertEqual(Project.objects.get(pk=project_id).status, Project.STATUS_IN_PROGRESS)

        r = self.api_pro.post(
            updates_url,
            {"update_type": "message", "message": "Job completed, ready for review"},
            format="json",
        )
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(Project.objects.get(pk=project_id).status, Project.STATUS_SUBMITTED)

        r = self.api_owner.get(updates_url)
        self.assertEqual(r.status_code, 200)
        self.assertEqual([u["update_type"] for u in r.data["results"]], ["message", "check_in"])

        # 3) Mark complete, review, second review refused
        r = self.api_pro.post(reverse("project-complete", args=[project_id]))
        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["status"], Project.STATUS_COMPLETED)

        review_url = reverse("project-review", args=[project_id])
        r = self.api_owner.post(review_url, {"rating": 5, "comment": "Spotless"}, format="json")
        self.assertEqual(r.status_code, 201, r.data)
        self.assertEqual(Project.objects.get(pk=project_id).status, Project.STATUS_ARCHIVED)

        r = self.api_owner.post(review_url, {"rating": 4}, format="json")
        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "review_already_exists")
        self.assertEqual(Review.objects.filter(project_id=project_id).count(), 1)

    def test_detail_lists_allowed_transitions(self):
        project_id = self._create_project()

        r = self.api_rival.get(reverse("project-detail", args=[project_id]))

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["allowed_transitions"], ["assigned", "cancelled"])

    def test_professional_cannot_create_project(self):
        r = self.api_pro.post(reverse("project-list"), {"title": "x", "budget": "10"}, format="json")
        self.assertEqual(r.status_code, 403)

    def test_zero_budget_rejected(self):
        r = self.api_owner.post(reverse("project-list"), {"title": "x", "budget": "0"}, format="json")
        self.assertEqual(r.status_code, 400)
        self.assertFalse(r.data["success"])

    def test_status_not_writable_via_patch(self):
        project_id = self._create_project()

        r = self.api_owner.patch(
            reverse("project-detail", args=[project_id]),
            {"title": "Replace tankless heater", "status": "completed"},
            format="json",
        )

        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["title"], "Replace tankless heater")
        self.assertEqual(r.data["status"], Project.STATUS_OPEN)

    def test_stranger_cannot_accept(self):
        project_id = self._create_project()
        r = self.api_pro.post(reverse("project-applications", args=[project_id]), {}, format="json")
        app_id = r.data["id"]

        r = self.api_rival.post(reverse("application-accept", args=[app_id]))

        self.assertIn(r.status_code, (403, 404))

    def test_append_on_open_project(self):
        project_id = self._create_project()

        r = self.api_pro.post(
            reverse("project-updates", args=[project_id]),
            {"update_type": "check_in"},
            format="json",
        )

        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "project_not_actionable")
        self.assertFalse(ProjectUpdate.objects.exists())

    def test_unknown_project_is_404(self):
        r = self.api_owner.get(reverse("project-detail", args=[987654]))
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.data["code"], "not_found")

    def test_my_applications(self):
        project_id = self._create_project()
        self.api_pro.post(reverse("project-applications", args=[project_id]), {}, format="json")

        r = self.api_pro.get(reverse("application-mine"))

        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.data["count"], 1)
        self.assertEqual(r.data["results"][0]["project"], project_id)


class UpdateAttachmentTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.project = make_project(self.owner)
        app = Application.objects.create(project=self.project, professional=self.pro, bid_amount="100")
        accept_application(app.id, self.owner)

        self.api = APIClient()
        self.api.force_authenticate(self.pro)
        self.url = reverse("project-updates", args=[self.project.id])

    @mock.patch("projects.serializers.get_signed_url", return_value="https://files.example/signed")
    @mock.patch("projects.views.upload_project_file", return_value="projects/1/updates/abc.jpg")
    def test_file_upload(self, upload, signed):
        photo = SimpleUploadedFile("after.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        r = self.api.post(
            self.url,
            {
                "update_type": "file_upload",
                "message": "After photo",
                "metadata": json.dumps({"description": "Finished wall"}),
                "file": photo,
            },
            format="multipart",
        )

        self.assertEqual(r.status_code, 201, r.data)
        upload.assert_called_once()
        self.assertEqual(r.data["attachment"], "projects/1/updates/abc.jpg")
        self.assertEqual(r.data["attachment_name"], "after.jpg")
        self.assertEqual(r.data["attachment_url"], "https://files.example/signed")
        self.assertEqual(r.data["metadata"], {"description": "Finished wall"})

    @mock.patch("projects.views.upload_project_file", side_effect=TransientFailure())
    def test_storage_outage_is_retryable(self, upload):
        photo = SimpleUploadedFile("after.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        r = self.api.post(self.url, {"update_type": "file_upload", "file": photo}, format="multipart")

        self.assertEqual(r.status_code, 503)
        self.assertEqual(r.data["code"], "transient_failure")
        self.assertEqual(r["Retry-After"], "5")
        self.assertFalse(ProjectUpdate.objects.exists())

    @mock.patch("projects.views.upload_project_file")
    def test_no_upload_once_work_is_submitted(self, upload):
        append_update(self.project.id, self.pro, ProjectUpdate.TYPE_CHECK_IN)
        append_update(self.project.id, self.pro, ProjectUpdate.TYPE_MESSAGE, message="All completed")
        photo = SimpleUploadedFile("late.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        r = self.api.post(self.url, {"update_type": "file_upload", "file": photo}, format="multipart")

        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "project_not_actionable")
        self.assertEqual(r.data["current_status"], Project.STATUS_SUBMITTED)
        upload.assert_not_called()

    @mock.patch("projects.views.delete_project_file")
    @mock.patch("projects.views.upload_project_file", return_value="projects/1/updates/abc.jpg")
    def test_refused_update_removes_stored_file(self, upload, delete):
        photo = SimpleUploadedFile("after.jpg", b"\xff\xd8\xff", content_type="image/jpeg")

        r = self.api.post(
            self.url,
            {"update_type": "file_upload", "file": photo, "metadata": json.dumps({"mood": "great"})},
            format="multipart",
        )

        self.assertEqual(r.status_code, 400)
        delete.assert_called_once_with("projects/1/updates/abc.jpg")
        self.assertEqual(ProjectUpdate.objects.filter(project=self.project).count(), 0)
