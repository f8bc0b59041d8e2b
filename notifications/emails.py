# notifications/emails.py
from django.core.mail import send_mail
from django.conf import settings


def send_status_change_email(project, user, old_status, new_status):
    """
    Tell a participant that a project moved to a new status.
    """
    if not getattr(user, "email", None):
        # No email set, nothing to send
        return

    subject = f"{project.title}: now {project.get_status_display().lower()}"
    message = (
        f"Hi {user.username},\n\n"
        f"The project \"{project.title}\" moved from {old_status} to {new_status}.\n\n"
        f"Log in to see the latest updates.\n\n"
        f"Thank you,\n"
        f"TradeFlow"
    )

    send_mail(
        subject,
        message,
        settings.DEFAULT_FROM_EMAIL,
        [user.email],
        fail_silently=False,
    )
