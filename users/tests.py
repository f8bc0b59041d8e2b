from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APIClient

from projects.tests.factories import make_client, make_professional


class UserDirectoryTest(TestCase):
    def setUp(self):
        self.owner = make_client("carol")
        self.plumber = make_professional("pat")
        self.plumber.skills = ["plumbing", "gas"]
        self.plumber.save()
        self.painter = make_professional("sam")
        self.painter.skills = ["painting"]
        self.painter.save()

        self.api = APIClient()
        self.api.force_authenticate(self.owner)

    def test_list_only_professionals(self):
        r = self.api.get(reverse("user-list"))

        self.assertEqual(r.status_code, 200)
        self.assertEqual([u["username"] for u in r.data["results"]], ["pat", "sam"])

    def test_filter_by_skill(self):
        r = self.api.get(reverse("user-list"), {"skill": "plumb"})
        self.assertEqual([u["username"] for u in r.data["results"]], ["pat"])

    def test_me_cannot_change_role(self):
        r = self.api.patch(
            reverse("user-me"),
            {"bio": "Homeowner in Austin", "role": "admin"},
            format="json",
        )

        self.assertEqual(r.status_code, 200, r.data)
        self.assertEqual(r.data["bio"], "Homeowner in Austin")
        self.assertEqual(r.data["role"], "client")

    def test_skills_must_be_strings(self):
        api = APIClient()
        api.force_authenticate(self.plumber)

        r = api.patch(reverse("user-me"), {"skills": ["plumbing", 3]}, format="json")

        self.assertEqual(r.status_code, 400)
