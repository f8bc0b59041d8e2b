# projects/activity_verbs.py
"""
Change verbs carried by the project_changed signal.

Read-models (notifications, dashboards) switch on these to decide what to
refresh, so every sender must use one of these constants.
"""

# Lifecycle
PROJECT_CREATED = "project.created"
PROJECT_UPDATED = "project.updated"
PROJECT_DELETED = "project.deleted"
PROJECT_STATUS_CHANGED = "project.status_changed"

# Applications
APPLICATION_SUBMITTED = "application.submitted"
APPLICATION_ACCEPTED = "application.accepted"
APPLICATION_REJECTED = "application.rejected"
APPLICATION_WITHDRAWN = "application.withdrawn"

# Ledger
UPDATE_APPENDED = "update.appended"

# Settlement
REVIEW_SUBMITTED = "review.submitted"
PAYMENT_CREATED = "payment.created"
PAYMENT_COMPLETED = "payment.completed"
PAYMENT_FAILED = "payment.failed"
