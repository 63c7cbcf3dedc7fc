"""
Marketplace Celery tasks.

Background work for the returns workflow: in-app notification delivery,
notification cleanup and the periodic refund reconciliation sweep.
"""
from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3)
def deliver_notification(self, user_id, notification_type, title, message, data=None, variant='default'):
    """
    Persist an in-app notification.

    Usage:
        from marketplace.tasks import deliver_notification
        deliver_notification.delay(user.id, 'return_approved', 'Return approved', '...')
    """
    from django.db import DatabaseError
    from .models import Notification

    try:
        notification = Notification.objects.create(
            user_id=user_id,
            type=notification_type,
            title=title,
            message=message,
            data=data or {},
            variant=variant,
        )
    except DatabaseError as exc:
        logger.error(f"Notification delivery to user {user_id} failed: {exc}")
        raise self.retry(exc=exc, countdown=30 * (2 ** self.request.retries))

    logger.info(f"Delivered {notification_type} notification {notification.id} to user {user_id}")
    return str(notification.id)


@shared_task
def reconcile_refund_records():
    """
    Repair refund records whose return or order never reached the matching
    refunded state.

    Scheduled via Celery Beat to run hourly.
    """
    from .returns_resolution import reconcile_refund_records as reconcile

    repaired = reconcile()
    if repaired:
        logger.warning(f"Reconciled {len(repaired)} refund records")
    else:
        logger.info("Refund reconciliation found nothing to repair")
    return len(repaired)


@shared_task
def cleanup_old_notifications(days_old: int = 90):
    """
    Delete read notifications older than `days_old` days.

    Scheduled via Celery Beat to run weekly.
    """
    from datetime import timedelta
    from django.utils import timezone
    from .models import Notification

    cutoff_date = timezone.now() - timedelta(days=days_old)
    deleted_count, _ = Notification.objects.filter(
        is_read=True, created_at__lt=cutoff_date
    ).delete()
    logger.info(f"Cleaned up {deleted_count} read notifications older than {days_old} days")
    return deleted_count
