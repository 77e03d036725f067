"""Celery tasks for the rental domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from .bootstrap import get_container

logger = logging.getLogger(__name__)


@shared_task(name="rentals.expire_pending_rentals")
def expire_pending_rentals() -> dict[str, int]:
    """
    Cancel rental requests the owner did not confirm before the hold ran out.

    Runs periodically through Celery Beat.

    Returns:
        dict: {"expired": number of cancelled requests}
    """
    result = get_container().commands.expire_pending_rentals()
    if not result.is_ok:
        logger.error(f"Expiring pending rentals failed: {result.message}")
        return {"expired": 0}
    return {"expired": result.value}
