"""Celery tasks for notifications."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore
from django.contrib.auth import get_user_model  # type: ignore

from .models import Notification
from .services import send_email_notification

logger = logging.getLogger(__name__)


@shared_task(name="notifications.send_rental_notification")
def send_rental_notification(user_id: int, subject: str, message: str) -> int | None:
    """
    Store an in-app notification and email the user.

    Returns:
        The id of the created Notification, or None for an unknown user
    """
    User = get_user_model()
    try:
        user = User.objects.get(pk=user_id)
    except User.DoesNotExist:
        logger.warning(f"Notification for unknown user {user_id} dropped: {subject}")
        return None

    notification = Notification.objects.create(user=user, title=subject, message=message)

    if user.email:
        send_email_notification(user.email, subject, message)

    return notification.pk
