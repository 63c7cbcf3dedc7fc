"""
User-facing notifications for the returns workflow.

Two sinks:
- Toast: the title/description pair returned to the acting user with the API
  response (see Toast.to_dict).
- In-app: a Notification row for the counterparty, written by a Celery task
  once the surrounding transaction commits. Fire-and-forget.
"""

from dataclasses import dataclass, asdict
from django.db import transaction
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Toast:
    title: str
    description: str
    variant: str = 'default'

    @classmethod
    def error(cls, description, title='Error'):
        return cls(title=title, description=description, variant='destructive')

    def to_dict(self):
        return asdict(self)


def notify_user(user_id, notification_type, title, message, data=None, variant='default'):
    """
    Queue an in-app notification for `user_id` after the current transaction
    commits. Nothing is queued if the transaction rolls back.
    """
    from .tasks import deliver_notification

    payload = {
        'user_id': user_id,
        'notification_type': notification_type,
        'title': title,
        'message': message,
        'data': data or {},
        'variant': variant,
    }
    transaction.on_commit(lambda: deliver_notification.delay(**payload))
    logger.debug(f"Queued {notification_type} notification for user {user_id}")
