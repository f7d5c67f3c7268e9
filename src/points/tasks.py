"""Celery tasks for the pending-point escrow."""
from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings

logger = logging.getLogger("xmall")


def _retry_countdown(retries: int) -> int:
    base = getattr(settings, "PENDING_POINT_RELEASE_RETRY_DELAY", 5)
    return base * (2 ** retries)


@shared_task(bind=True, max_retries=None)
def release_pending_points(self):
    """
    Scheduled daily (Celery Beat, 09:00 local time).

    Releases every due pending point in one transaction.  A failed run is
    retried with exponential backoff; once the retries are exhausted the
    rows stay pending for the next scheduled run.
    """
    from points.services import release_pending_points as release

    max_retries = getattr(settings, "PENDING_POINT_RELEASE_MAX_RETRIES", 3)
    try:
        result = release()
    except Exception as exc:
        if self.request.retries >= max_retries:
            logger.error(
                "Pending point release failed after %d retries, rows left pending: %s",
                self.request.retries, exc,
            )
            raise
        countdown = _retry_countdown(self.request.retries)
        logger.warning(
            "Pending point release failed (attempt %d), retrying in %ss: %s",
            self.request.retries + 1, countdown, exc,
        )
        raise self.retry(exc=exc, countdown=countdown)

    return {
        "released_count": result["released_count"],
        "total_amount": str(result["total_amount"]),
    }
