from unittest import mock

from django.db import OperationalError
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient, APIRequestFactory

from core.exceptions import TransientFailure, custom_exception_handler
from projects.exceptions import ProjectNotOpen


class HealthCheckTest(TestCase):
    def test_ok(self):
        r = APIClient().get(reverse("health-check"))

        self.assertEqual(r.status_code, 200)
        self.assertTrue(r.data["db"])
        self.assertTrue(r.data["cache"])

    @mock.patch("core.views.connections")
    def test_database_down(self, connections):
        connections.__getitem__.return_value.cursor.side_effect = OperationalError("down")

        r = APIClient().get(reverse("health-check"))

        self.assertEqual(r.status_code, 503)
        self.assertEqual(r.data["status"], "degraded")


class ExceptionHandlerTest(TestCase):
    def setUp(self):
        self.context = {"request": APIRequestFactory().get("/")}

    def test_lifecycle_error_carries_current_status(self):
        r = custom_exception_handler(ProjectNotOpen(current_status="assigned"), self.context)

        self.assertEqual(r.status_code, 409)
        self.assertEqual(r.data["code"], "project_not_open")
        self.assertEqual(r.data["current_status"], "assigned")
        self.assertFalse(r.data["success"])

    def test_database_error_becomes_retryable(self):
        r = custom_exception_handler(OperationalError("connection refused"), self.context)

        self.assertEqual(r.status_code, 503)
        self.assertEqual(r.data["code"], TransientFailure.default_code)
        self.assertEqual(r["Retry-After"], "5")
