# projects/tests/test_applications.py
import threading
import unittest
from decimal import Decimal
from unittest import mock

from django.db import connection, connections
from django.test import TestCase, TransactionTestCase
from rest_framework.exceptions import ValidationError

from projects import applications
from projects.exceptions import (
    ApplicationNotPending,
    DuplicateApplication,
    NotApplicationOwner,
    NotFound,
    NotProjectOwner,
    ProjectNotOpen,
)
from projects.lifecycle import cancel_project
from projects.models import Application, Project
from .factories import make_client, make_professional, make_project


class SubmitApplicationTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.project = make_project(self.owner)

    def test_bid_defaults_to_budget(self):
        application = applications.submit_application(self.project.id, self.pro, proposal="Can do")

        self.assertEqual(application.status, Application.STATUS_PENDING)
        self.assertEqual(application.bid_amount, Decimal("600.00"))
        self.assertEqual(application.proposal, "Can do")

    def test_explicit_bid(self):
        application = applications.submit_application(self.project.id, self.pro, bid="500")
        self.assertEqual(application.bid_amount, Decimal("500"))

    def test_non_positive_bid_rejected(self):
        with self.assertRaises(ValidationError):
            applications.submit_application(self.project.id, self.pro, bid="0")
        self.assertFalse(Application.objects.exists())

    def test_duplicate_rejected(self):
        applications.submit_application(self.project.id, self.pro)

        with self.assertRaises(DuplicateApplication):
            applications.submit_application(self.project.id, self.pro, bid="450")
        self.assertEqual(Application.objects.filter(project=self.project).count(), 1)

    def test_can_reapply_after_withdrawing(self):
        first = applications.submit_application(self.project.id, self.pro)
        applications.withdraw_application(first.id, self.pro)

        second = applications.submit_application(self.project.id, self.pro, bid="550")

        self.assertNotEqual(first.id, second.id)
        self.assertEqual(second.status, Application.STATUS_PENDING)

    def test_project_must_be_open(self):
        cancel_project(self.project.id, self.owner)

        with self.assertRaises(ProjectNotOpen) as ctx:
            applications.submit_application(self.project.id, self.pro)
        self.assertEqual(ctx.exception.current_status, Project.STATUS_CANCELLED)
        self.assertFalse(Application.objects.exists())

    def test_unknown_project(self):
        with self.assertRaises(NotFound):
            applications.submit_application(999999, self.pro)


class AcceptApplicationTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.rival = make_professional("rival")
        self.project = make_project(self.owner)
        self.app = applications.submit_application(self.project.id, self.pro, bid="500")
        self.rival_app = applications.submit_application(self.project.id, self.rival)

    def test_accept_assigns_and_leaves_rivals_pending(self):
        applications.accept_application(self.app.id, self.owner)

        self.project.refresh_from_db()
        self.app.refresh_from_db()
        self.rival_app.refresh_from_db()
        self.assertEqual(self.project.status, Project.STATUS_ASSIGNED)
        self.assertEqual(self.project.assigned_to, self.pro)
        self.assertEqual(self.app.status, Application.STATUS_ACCEPTED)
        self.assertEqual(self.rival_app.status, Application.STATUS_PENDING)

    def test_only_owner_can_accept(self):
        with self.assertRaises(NotProjectOwner):
            applications.accept_application(self.app.id, make_client("stranger"))

        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.STATUS_OPEN)

    def test_second_accept_fails_with_project_not_open(self):
        applications.accept_application(self.app.id, self.owner)

        with self.assertRaises(ProjectNotOpen) as ctx:
            applications.accept_application(self.rival_app.id, self.owner)

        self.assertEqual(ctx.exception.current_status, Project.STATUS_ASSIGNED)
        self.assertEqual(Application.objects.filter(status=Application.STATUS_ACCEPTED).count(), 1)

    def test_accepting_non_pending_application(self):
        applications.withdraw_application(self.app.id, self.pro)

        with self.assertRaises(ApplicationNotPending) as ctx:
            applications.accept_application(self.app.id, self.owner)
        self.assertEqual(ctx.exception.current_status, Application.STATUS_WITHDRAWN)

    def test_racing_accept_from_stale_snapshot_loses(self):
        """Caller that read the project while still open must not overwrite the winner."""
        stale = Project.objects.get(pk=self.project.pk)
        applications.accept_application(self.app.id, self.owner)

        with mock.patch("projects.applications.get_project", return_value=stale):
            with self.assertRaises(ProjectNotOpen):
                applications.accept_application(self.rival_app.id, self.owner)

        self.project.refresh_from_db()
        self.rival_app.refresh_from_db()
        self.assertEqual(self.project.assigned_to, self.pro)
        self.assertEqual(self.rival_app.status, Application.STATUS_PENDING)
        self.assertEqual(Application.objects.filter(status=Application.STATUS_ACCEPTED).count(), 1)

    def test_accept_rolls_back_when_application_changes_underneath(self):
        # Simulate a withdraw landing between the check and the write
        with mock.patch("projects.applications._set_status", return_value=False):
            with self.assertRaises(ApplicationNotPending):
                applications.accept_application(self.app.id, self.owner)

        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.STATUS_OPEN)
        self.assertIsNone(self.project.assigned_to)


class RejectApplicationTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.rival = make_professional("rival")
        self.project = make_project(self.owner)
        self.app = applications.submit_application(self.project.id, self.pro)
        self.rival_app = applications.submit_application(self.project.id, self.rival)

    def test_reject_while_open(self):
        applications.reject_application(self.rival_app.id, self.owner)
        self.rival_app.refresh_from_db()
        self.assertEqual(self.rival_app.status, Application.STATUS_REJECTED)

    def test_reject_twice_is_noop(self):
        applications.reject_application(self.rival_app.id, self.owner)
        result = applications.reject_application(self.rival_app.id, self.owner)
        self.assertEqual(result.status, Application.STATUS_REJECTED)

    def test_reject_after_assignment_is_noop(self):
        applications.accept_application(self.app.id, self.owner)

        result = applications.reject_application(self.rival_app.id, self.owner)

        self.assertEqual(result.status, Application.STATUS_PENDING)

    def test_reject_on_cancelled_project(self):
        cancel_project(self.project.id, self.owner)

        with self.assertRaises(ProjectNotOpen):
            applications.reject_application(self.rival_app.id, self.owner)

    def test_only_owner_can_reject(self):
        with self.assertRaises(NotProjectOwner):
            applications.reject_application(self.rival_app.id, self.pro)


class WithdrawApplicationTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.project = make_project(self.owner)
        self.app = applications.submit_application(self.project.id, self.pro)

    def test_withdraw(self):
        applications.withdraw_application(self.app.id, self.pro)
        self.app.refresh_from_db()
        self.assertEqual(self.app.status, Application.STATUS_WITHDRAWN)

    def test_only_author_can_withdraw(self):
        with self.assertRaises(NotApplicationOwner):
            applications.withdraw_application(self.app.id, make_professional("other"))

    def test_cannot_withdraw_accepted(self):
        applications.accept_application(self.app.id, self.owner)

        with self.assertRaises(ApplicationNotPending):
            applications.withdraw_application(self.app.id, self.pro)

    def test_cannot_withdraw_on_cancelled_project(self):
        cancel_project(self.project.id, self.owner)

        with self.assertRaises(ProjectNotOpen):
            applications.withdraw_application(self.app.id, self.pro)

        self.app.refresh_from_db()
        self.assertEqual(self.app.status, Application.STATUS_PENDING)


class ApplicationsForProjectTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.project = make_project(self.owner)
        self.app = applications.submit_application(self.project.id, self.pro)

    def test_owner_sees_bids(self):
        qs = applications.applications_for_project(self.project.id, self.owner)
        self.assertEqual(list(qs), [self.app])

    def test_admin_sees_bids(self):
        admin = make_client("ops")
        admin.role = "admin"
        admin.save()

        qs = applications.applications_for_project(self.project.id, admin)

        self.assertEqual(qs.count(), 1)

    def test_bidder_and_stranger_do_not(self):
        for user in (self.pro, make_client("stranger")):
            with self.assertRaises(NotProjectOwner):
                applications.applications_for_project(self.project.id, user)


@unittest.skipUnless(connection.vendor == "postgresql", "needs row-level locking")
class ConcurrentAcceptTest(TransactionTestCase):
    """Two clients' worth of accepts fired at once; exactly one may win."""

    def test_exactly_one_accept_wins(self):
        owner = make_client()
        project = make_project(owner)
        apps = [
            applications.submit_application(project.id, make_professional(f"pro{i}"))
            for i in range(2)
        ]

        barrier = threading.Barrier(len(apps))
        outcomes = []

        def accept(application_id):
            try:
                barrier.wait()
                applications.accept_application(application_id, owner)
                outcomes.append("won")
            except ProjectNotOpen:
                outcomes.append("lost")
            finally:
                connections.close_all()

        threads = [threading.Thread(target=accept, args=(a.id,)) for a in apps]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(sorted(outcomes), ["lost", "won"])
        self.assertEqual(
            Application.objects.filter(project=project, status=Application.STATUS_ACCEPTED).count(),
            1,
        )
        project.refresh_from_db()
        self.assertEqual(project.status, Project.STATUS_ASSIGNED)
