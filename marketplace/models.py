from django.conf import settings
from django.db import models
import uuid


class Notification(models.Model):
    """
    In-app notification shown to a user (bell menu and toast replay).

    Written by marketplace.tasks.deliver_notification, never inline in a
    request.
    """
    VARIANT_CHOICES = [
        ('default', 'Default'),
        ('destructive', 'Destructive'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=50, db_index=True)
    title = models.CharField(max_length=200)
    message = models.TextField()
    variant = models.CharField(max_length=20, choices=VARIANT_CHOICES, default='default')
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'marketplace_notifications'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read', '-created_at'], name='mkt_notif_user_unread_idx'),
        ]

    def __str__(self):
        return f"{self.type} for {self.user_id}: {self.title}"

    def mark_as_read(self):
        if not self.is_read:
            self.is_read = True
            self.save(update_fields=['is_read'])


# Models split across modules are registered with the app here
from .marketplace_models import Listing, ListingImage, Order, SavedAddress  # noqa: E402,F401
from .returns_refunds_models import (  # noqa: E402,F401
    ReturnStatus, ReturnReason, ReturnRequest, RefundRecord, ReturnAuditLog
)
