# projects/tests/test_settlement.py
from decimal import Decimal

from django.test import TestCase
from rest_framework.exceptions import ValidationError

from projects import lifecycle, settlement
from projects.exceptions import (
    InvalidTransition,
    NotAssignedProfessional,
    NotProjectOwner,
    PaymentNotPending,
    ProjectNotCompleted,
    ProjectNotOpen,
    ReviewAlreadyExists,
)
from projects.models import Application, Payment, Project, Review
from .factories import (
    assigned_project,
    in_progress_project,
    make_client,
    make_professional,
    make_project,
    submitted_project,
)


class MarkCompleteTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()

    def test_submitted_to_completed(self):
        project, _ = submitted_project(self.owner, self.pro)

        lifecycle.mark_complete(project.id, self.pro)

        project.refresh_from_db()
        self.assertEqual(project.status, Project.STATUS_COMPLETED)

    def test_in_progress_to_completed(self):
        project, _ = in_progress_project(self.owner, self.pro)
        result = lifecycle.mark_complete(project.id, self.pro)
        self.assertEqual(result.status, Project.STATUS_COMPLETED)

    def test_repeat_is_noop(self):
        project, _ = submitted_project(self.owner, self.pro)
        lifecycle.mark_complete(project.id, self.pro)

        result = lifecycle.mark_complete(project.id, self.pro)

        self.assertEqual(result.status, Project.STATUS_COMPLETED)

    def test_only_assigned_professional(self):
        project, _ = submitted_project(self.owner, self.pro)

        with self.assertRaises(NotAssignedProfessional):
            lifecycle.mark_complete(project.id, make_professional("other"))
        with self.assertRaises(NotAssignedProfessional):
            lifecycle.mark_complete(project.id, self.owner)

    def test_cannot_complete_before_work_starts(self):
        project, _ = assigned_project(self.owner, self.pro)

        with self.assertRaises(InvalidTransition) as ctx:
            lifecycle.mark_complete(project.id, self.pro)

        self.assertEqual(ctx.exception.current_status, Project.STATUS_ASSIGNED)


class RevisionRequestTest(TestCase):
    def test_client_sends_work_back(self):
        owner, pro = make_client(), make_professional()
        project, _ = submitted_project(owner, pro)

        lifecycle.request_revision(project.id, owner)

        project.refresh_from_db()
        self.assertEqual(project.status, Project.STATUS_REVISION)
        self.assertEqual(project.assigned_to, pro)

    def test_only_from_submitted(self):
        owner, pro = make_client(), make_professional()
        project, _ = in_progress_project(owner, pro)

        with self.assertRaises(InvalidTransition):
            lifecycle.request_revision(project.id, owner)


class CancelProjectTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()

    def test_owner_cancels_in_progress(self):
        project, _ = in_progress_project(self.owner, self.pro)

        lifecycle.cancel_project(project.id, self.owner, reason="changed plans")

        project.refresh_from_db()
        self.assertEqual(project.status, Project.STATUS_CANCELLED)
        self.assertIsNone(project.assigned_to)

    def test_assigned_professional_can_cancel(self):
        project, _ = assigned_project(self.owner, self.pro)
        result = lifecycle.cancel_project(project.id, self.pro)
        self.assertEqual(result.status, Project.STATUS_CANCELLED)

    def test_stranger_cannot_cancel(self):
        project = make_project(self.owner)
        with self.assertRaises(NotProjectOwner):
            lifecycle.cancel_project(project.id, make_client("stranger"))

    def test_cancel_twice_is_noop(self):
        project = make_project(self.owner)
        lifecycle.cancel_project(project.id, self.owner)
        result = lifecycle.cancel_project(project.id, self.owner)
        self.assertEqual(result.status, Project.STATUS_CANCELLED)

    def test_completed_project_can_be_cancelled(self):
        project, _ = submitted_project(self.owner, self.pro)
        lifecycle.mark_complete(project.id, self.pro)
        payment = settlement.create_payment(project.id, self.owner)

        result = lifecycle.cancel_project(project.id, self.owner)

        self.assertEqual(result.status, Project.STATUS_CANCELLED)
        self.assertIsNone(result.assigned_to)
        # the open invoice can no longer be settled
        with self.assertRaises(ProjectNotCompleted):
            settlement.mark_payment_complete(payment.id, self.owner)

    def test_paid_project_cannot_be_cancelled(self):
        project, _ = submitted_project(self.owner, self.pro)
        lifecycle.mark_complete(project.id, self.pro)
        payment = settlement.create_payment(project.id, self.owner)
        settlement.mark_payment_complete(payment.id, self.owner)

        with self.assertRaises(InvalidTransition) as ctx:
            lifecycle.cancel_project(project.id, self.owner)

        self.assertEqual(ctx.exception.current_status, Project.STATUS_PAID)

    def test_stranger_gets_no_answer_on_cancelled_project(self):
        project = make_project(self.owner)
        lifecycle.cancel_project(project.id, self.owner)

        with self.assertRaises(NotProjectOwner):
            lifecycle.cancel_project(project.id, make_client("stranger"))

    def test_former_assignee_can_repeat_cancel(self):
        project, _ = assigned_project(self.owner, self.pro)
        lifecycle.cancel_project(project.id, self.pro)

        result = lifecycle.cancel_project(project.id, self.pro)

        self.assertEqual(result.status, Project.STATUS_CANCELLED)

    def test_pending_applications_left_alone(self):
        project = make_project(self.owner)
        app = Application.objects.create(project=project, professional=self.pro, bid_amount=Decimal("10"))

        lifecycle.cancel_project(project.id, self.owner)

        app.refresh_from_db()
        self.assertEqual(app.status, Application.STATUS_PENDING)


class ProjectManagementTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()

    def test_create_starts_open(self):
        project = lifecycle.create_project(self.owner, title="Paint fence", budget=Decimal("250"), status="paid")
        self.assertEqual(project.status, Project.STATUS_OPEN)
        self.assertIsNone(project.assigned_to)

    def test_update_only_while_open(self):
        project, _ = assigned_project(self.owner, self.pro)

        with self.assertRaises(ProjectNotOpen):
            lifecycle.update_project(project.id, self.owner, title="New title")

    def test_update_ignores_status(self):
        project = make_project(self.owner)

        result = lifecycle.update_project(project.id, self.owner, title="New title", status="completed")

        self.assertEqual(result.title, "New title")
        self.assertEqual(result.status, Project.STATUS_OPEN)

    def test_update_by_non_owner(self):
        project = make_project(self.owner)
        with self.assertRaises(NotProjectOwner):
            lifecycle.update_project(project.id, make_client("stranger"), title="Mine now")

    def test_delete_without_history(self):
        project = make_project(self.owner)
        self.assertIsNone(lifecycle.delete_project(project.id, self.owner))
        self.assertFalse(Project.objects.filter(pk=project.pk).exists())

    def test_delete_with_history_cancels(self):
        project, _ = assigned_project(self.owner, self.pro)

        result = lifecycle.delete_project(project.id, self.owner)

        self.assertEqual(result.status, Project.STATUS_CANCELLED)
        self.assertTrue(Application.objects.filter(project=project).exists())


class ReviewTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.project, _ = submitted_project(self.owner, self.pro)

    def _complete(self):
        lifecycle.mark_complete(self.project.id, self.pro)

    def test_review_archives_project(self):
        self._complete()

        review = settlement.submit_review(self.project.id, self.owner, 5, "Great work")

        self.project.refresh_from_db()
        self.assertEqual(review.professional, self.pro)
        self.assertEqual(self.project.status, Project.STATUS_ARCHIVED)
        self.assertEqual(self.project.assigned_to, self.pro)

    def test_second_review_rejected(self):
        self._complete()
        settlement.submit_review(self.project.id, self.owner, 5)

        with self.assertRaises(ReviewAlreadyExists):
            settlement.submit_review(self.project.id, self.owner, 4)

        self.assertEqual(Review.objects.filter(project=self.project).count(), 1)

    def test_requires_completion(self):
        with self.assertRaises(ProjectNotCompleted) as ctx:
            settlement.submit_review(self.project.id, self.owner, 5)

        self.assertEqual(ctx.exception.current_status, Project.STATUS_SUBMITTED)
        self.assertFalse(Review.objects.exists())

    def test_only_owner_reviews(self):
        self._complete()
        with self.assertRaises(NotProjectOwner):
            settlement.submit_review(self.project.id, self.pro, 5)

    def test_rating_bounds(self):
        self._complete()
        for rating in (0, 6, "abc", 4.5):
            with self.assertRaises(ValidationError):
                settlement.submit_review(self.project.id, self.owner, rating)
        self.assertFalse(Review.objects.exists())


class PaymentTest(TestCase):
    def setUp(self):
        self.owner = make_client()
        self.pro = make_professional()
        self.project, self.application = submitted_project(self.owner, self.pro, bid=Decimal("500"))

    def test_cannot_invoice_before_completion(self):
        with self.assertRaises(ProjectNotCompleted):
            settlement.create_payment(self.project.id, self.owner)

    def test_payment_defaults_to_accepted_bid_and_is_reused(self):
        lifecycle.mark_complete(self.project.id, self.pro)

        payment = settlement.create_payment(self.project.id, self.owner)
        again = settlement.create_payment(self.project.id, self.owner, amount="999")

        self.assertEqual(payment.amount, Decimal("500.00"))
        self.assertEqual(payment.status, Payment.STATUS_PENDING)
        self.assertEqual(payment.professional, self.pro)
        self.assertEqual(payment.id, again.id)

    def test_completing_payment_marks_project_paid(self):
        lifecycle.mark_complete(self.project.id, self.pro)
        payment = settlement.create_payment(self.project.id, self.owner)

        settlement.mark_payment_complete(payment.id, self.owner)

        payment.refresh_from_db()
        self.project.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_COMPLETED)
        self.assertIsNotNone(payment.paid_at)
        self.assertEqual(self.project.status, Project.STATUS_PAID)

        # paid projects can still be reviewed, which archives them
        settlement.submit_review(self.project.id, self.owner, 4)
        self.project.refresh_from_db()
        self.assertEqual(self.project.status, Project.STATUS_ARCHIVED)

    def test_payment_needs_completed_project(self):
        payment = Payment.objects.create(
            project=self.project, client=self.owner, professional=self.pro, amount=Decimal("500"),
        )

        with self.assertRaises(ProjectNotCompleted):
            settlement.mark_payment_complete(payment.id, self.owner)

        payment.refresh_from_db()
        self.assertEqual(payment.status, Payment.STATUS_PENDING)

    def test_completing_twice_is_noop(self):
        lifecycle.mark_complete(self.project.id, self.pro)
        payment = settlement.create_payment(self.project.id, self.owner)
        settlement.mark_payment_complete(payment.id, self.owner)

        result = settlement.mark_payment_complete(payment.id, self.owner)

        self.assertEqual(result.status, Payment.STATUS_COMPLETED)

    def test_failed_payment_cannot_be_completed(self):
        lifecycle.mark_complete(self.project.id, self.pro)
        payment = settlement.create_payment(self.project.id, self.owner)
        settlement.mark_payment_failed(payment.id, self.owner, note="card declined")

        with self.assertRaises(PaymentNotPending):
            settlement.mark_payment_complete(payment.id, self.owner)

        # a fresh invoice can be opened after a failure
        retry = settlement.create_payment(self.project.id, self.owner)
        self.assertNotEqual(retry.id, payment.id)

    def test_professional_cannot_settle(self):
        lifecycle.mark_complete(self.project.id, self.pro)
        payment = settlement.create_payment(self.project.id, self.owner)

        with self.assertRaises(NotProjectOwner):
            settlement.mark_payment_complete(payment.id, self.pro)
