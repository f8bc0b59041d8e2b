"""
Lifecycle errors.

Every error is a terminal precondition violation: it names the rule that was
broken and carries the entity's current status so the caller can re-fetch
and choose a different action. None of them are retried internally; the
only retryable kind is core.exceptions.TransientFailure.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class LifecycleError(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The action is not allowed in the current state."
    default_code = "lifecycle_error"

    def __init__(self, detail=None, current_status=None):
        self.current_status = current_status
        if detail is None:
            detail = self.default_detail
        if current_status is not None:
            detail = f"{detail} (current status: {current_status})"
        super().__init__(detail=detail, code=self.default_code)


class InvalidTransition(LifecycleError):
    default_code = "invalid_transition"

    def __init__(self, from_status, to_status, reason=None):
        self.from_status = from_status
        self.to_status = to_status
        detail = f"Cannot transition project from '{from_status}' to '{to_status}'"
        if reason:
            detail = f"{detail}: {reason}"
        super().__init__(detail, current_status=from_status)


class ProjectNotOpen(LifecycleError):
    default_detail = "Project is not open for applications."
    default_code = "project_not_open"


class ProjectNotActionable(LifecycleError):
    default_detail = "Updates can only be added while the project is assigned, in progress or in revision."
    default_code = "project_not_actionable"


class ProjectNotCompleted(LifecycleError):
    default_detail = "Project has not been completed yet."
    default_code = "project_not_completed"


class DuplicateApplication(LifecycleError):
    default_detail = "You already have an active application for this project."
    default_code = "duplicate_application"


class ApplicationNotPending(LifecycleError):
    default_detail = "Application is no longer pending."
    default_code = "application_not_pending"


class ReviewAlreadyExists(LifecycleError):
    default_detail = "A review has already been submitted for this project."
    default_code = "review_already_exists"


class PaymentNotPending(LifecycleError):
    default_detail = "Payment is no longer pending."
    default_code = "payment_not_pending"


class NotProjectOwner(LifecycleError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the client who posted this project can perform this action."
    default_code = "not_project_owner"


class NotApplicationOwner(LifecycleError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the professional who submitted this application can perform this action."
    default_code = "not_application_owner"


class NotAssignedProfessional(LifecycleError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Only the professional assigned to this project can perform this action."
    default_code = "not_assigned_professional"


class NotFound(LifecycleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found."
    default_code = "not_found"

    def __init__(self, model_name, object_id):
        self.model_name = model_name
        self.object_id = object_id
        super().__init__(f"{model_name} {object_id} does not exist.")
