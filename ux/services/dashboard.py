# ux/services/dashboard.py

from decimal import Decimal

from django.conf import settings
from django.core.cache import cache
from django.db.models import Avg, Count, Sum

from notifications.models import Notification
from projects.models import Application, Payment, Project, Review


def summary_cache_key(user_id):
    return f"ux:dashboard:summary:{user_id}"


def invalidate_dashboard(*user_ids):
    keys = [summary_cache_key(user_id) for user_id in user_ids if user_id]
    if keys:
        cache.delete_many(keys)


def _status_counts(qs):
    counts = {status: 0 for status, _ in Project.STATUS_CHOICES}
    for row in qs.values("status").annotate(n=Count("id")):
        counts[row["status"]] = row["n"]
    return counts


CENTS = Decimal("0.01")


def _money(value):
    # SQLite hands back Sum() of a decimal column without its scale
    return str(Decimal(str(value or 0)).quantize(CENTS))


def _client_summary(user):
    projects_qs = Project.objects.filter(client=user)
    by_status = _status_counts(projects_qs)

    pending_applications = Application.objects.filter(
        project__client=user,
        project__status=Project.STATUS_OPEN,
        status=Application.STATUS_PENDING,
    ).count()

    total_spent = Payment.objects.filter(
        client=user,
        status=Payment.STATUS_COMPLETED,
    ).aggregate(total=Sum("amount"))["total"]

    awaiting_review = projects_qs.filter(
        status__in=Project.REVIEWABLE_STATUSES,
        review__isnull=True,
    ).count()

    return {
        "role": "client",
        "projects_by_status": by_status,
        "open_projects": by_status[Project.STATUS_OPEN],
        "active_projects": sum(by_status[s] for s in Project.ACTIONABLE_STATUSES) + by_status[Project.STATUS_SUBMITTED],
        "pending_applications": pending_applications,
        "awaiting_review": awaiting_review,
        "total_spent": _money(total_spent),
    }


def _professional_summary(user):
    projects_qs = Project.objects.filter(assigned_to=user)
    by_status = _status_counts(projects_qs)

    pending_applications = Application.objects.filter(
        professional=user,
        status=Application.STATUS_PENDING,
    ).count()

    payments = Payment.objects.filter(professional=user)
    total_earned = payments.filter(status=Payment.STATUS_COMPLETED).aggregate(total=Sum("amount"))["total"]
    pending_earnings = payments.filter(status=Payment.STATUS_PENDING).aggregate(total=Sum("amount"))["total"]

    ratings = Review.objects.filter(professional=user).aggregate(avg=Avg("rating"), n=Count("id"))
    average_rating = round(float(ratings["avg"]), 2) if ratings["avg"] is not None else None

    return {
        "role": "professional",
        "projects_by_status": by_status,
        "active_projects": sum(by_status[s] for s in Project.ACTIONABLE_STATUSES) + by_status[Project.STATUS_SUBMITTED],
        "pending_applications": pending_applications,
        "completed_projects": sum(by_status[s] for s in Project.SETTLED_STATUSES),
        "total_earned": _money(total_earned),
        "pending_earnings": _money(pending_earnings),
        "average_rating": average_rating,
        "review_count": ratings["n"],
    }


def get_dashboard_summary(user):
    key = summary_cache_key(user.id)
    stats = cache.get(key)
    if stats is None:
        if user.role == "professional":
            stats = _professional_summary(user)
        else:
            stats = _client_summary(user)
        cache.set(key, stats, getattr(settings, "DASHBOARD_CACHE_TIMEOUT", 300))

    # Read state changes without a project_changed signal; never cached
    stats = dict(stats)
    stats["unread_notifications"] = Notification.objects.filter(
        user=user,
        is_read=False,
    ).count()
    return stats
