"""Notification services for in-app messages and emails."""

from __future__ import annotations

import logging

from django.conf import settings  # type: ignore
from django.core.mail import send_mail  # type: ignore

from apps.rentals.application.ports import NotificationService

logger = logging.getLogger(__name__)


def send_email_notification(recipient_email: str, subject: str, message: str) -> bool:
    """
    Send a plain-text email.

    Returns:
        bool: True if the email was handed to the mail backend
    """
    try:
        send_mail(
            subject=subject,
            message=message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient_email],
            fail_silently=False,
        )
        logger.info(f"Email sent successfully to {recipient_email}: {subject}")
        return True

    except Exception as e:
        logger.error(f"Failed to send email to {recipient_email}: {e}", exc_info=True)
        return False


class CeleryNotificationService(NotificationService):
    """Queue a notification task; never waits for delivery."""

    def notify(self, user_id, subject: str, message: str):
        from .tasks import send_rental_notification

        try:
            send_rental_notification.delay(user_id, subject, message)
        except Exception as e:
            # Broker down: the rental is already committed
            logger.error(f"Could not queue notification for user {user_id}: {e}", exc_info=True)
