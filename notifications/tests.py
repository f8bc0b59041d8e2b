from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from projects import applications, lifecycle
from projects.tests.factories import assigned_project, make_client, make_professional, make_project
from .models import Notification


class ProjectNotificationTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()

    def test_new_application_notifies_client(self):
        project = make_project(self.owner)
        applications.submit_application(project.id, self.pro)

        note = Notification.objects.get(user=self.owner)
        self.assertEqual(note.type, Notification.TYPE_NEW_APPLICATION)
        self.assertEqual(note.project, project)

    def test_acceptance_notifies_professional(self):
        assigned_project(self.owner, self.pro)

        types = set(Notification.objects.filter(user=self.pro).values_list("type", flat=True))
        self.assertIn(Notification.TYPE_APPLICATION_ACCEPTED, types)
        self.assertIn(Notification.TYPE_STATUS_CHANGED, types)

    def test_cancellation_reaches_former_assignee(self):
        project, _ = assigned_project(self.owner, self.pro)
        Notification.objects.all().delete()

        lifecycle.cancel_project(project.id, self.owner)

        note = Notification.objects.get(user=self.pro)
        self.assertEqual(note.type, Notification.TYPE_STATUS_CHANGED)
        self.assertFalse(Notification.objects.filter(user=self.owner).exists())


class MyNotificationsViewTest(TestCase):
    def setUp(self):
        self.user = make_client()
        self.api = APIClient()
        self.api.force_authenticate(self.user)
        for i in range(3):
            Notification.objects.create(user=self.user, type=Notification.TYPE_SYSTEM, title=f"n{i}")

    def test_list_and_mark_read(self):
        url = reverse("my-notifications")
        first_id = Notification.objects.filter(user=self.user).order_by("id").first().id

        r = self.api.post(url, {"ids": [first_id]}, format="json")
        self.assertEqual(r.data["marked_read"], 1)

        r = self.api.get(url, {"unread": "true"})
        self.assertEqual(len(r.data), 2)

        r = self.api.post(url, {}, format="json")
        self.assertEqual(r.data["marked_read"], 2)
