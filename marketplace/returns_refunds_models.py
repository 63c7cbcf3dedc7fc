"""
Returns and Refunds Models

Handles buyer return requests and seller refund decisions for marketplace orders.

Business Logic:
1. Buyer files a return request against a paid order
2. Seller approves, rejects, or refunds without requiring the item back
3. If approved, buyer ships the item and submits tracking
4. Seller confirms receipt and the return is completed
5. Refund records and order refund fields are written alongside

ATOMICITY & CONCURRENCY:
- Decisions run inside @transaction.atomic (see returns_resolution)
- Return rows are locked with select_for_update() while deciding
- Every write bumps `version`; stale writes are rejected
- Audit logging provides full traceability
"""

from django.conf import settings
from django.db import models, transaction
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid
import logging

from .returns_safety import CANCELLED, REJECTED, TERMINAL_STATUSES

logger = logging.getLogger(__name__)


class ReturnStatus(models.TextChoices):
    PENDING = 'pending', 'Pending Review'
    APPROVED = 'approved', 'Approved'
    REJECTED = 'rejected', 'Rejected'
    COMPLETED = 'completed', 'Completed'
    REFUNDED_NO_RETURN = 'refunded_no_return', 'Refunded Without Return'
    CANCELLED = 'cancelled', 'Cancelled'


class ReturnReason(models.TextChoices):
    """Reasons offered to the buyer when filing a return"""
    DEFECT = 'defect', 'Defective product'
    WRONG_ITEM = 'wrong_item', 'Wrong item received'
    NOT_AS_DESCRIBED = 'not_as_described', 'Not as described'
    DAMAGED = 'damaged', 'Damaged in transit'
    CHANGED_MIND = 'changed_mind', 'Changed my mind'
    OTHER = 'other', 'Other reason'


class ReturnRequest(models.Model):
    """
    Buyer request to return a purchased item or obtain a refund.

    SECURITY: Scoped to the buyer and seller of the underlying order
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Relationships
    order = models.ForeignKey(
        'marketplace.Order',
        on_delete=models.CASCADE,
        related_name='return_requests'
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='returns_requested'
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='returns_received'
    )

    # Request Details
    status = models.CharField(
        max_length=20,
        choices=ReturnStatus.choices,
        default=ReturnStatus.PENDING
    )
    reason = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    # Return Logistics
    tracking_number = models.CharField(
        max_length=120,
        blank=True,
        help_text='carrier:number, or a bare number when no carrier was chosen'
    )

    # Resolution
    refund_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    seller_notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)

    # Optimistic concurrency token, incremented on every write
    version = models.PositiveIntegerField(default=1)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'return_requests'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', '-created_at'], name='return_buyer_created_idx'),
            models.Index(fields=['seller', '-created_at'], name='return_seller_created_idx'),
            models.Index(fields=['status', '-created_at'], name='return_status_created_idx'),
        ]
        constraints = [
            # One open return per order; rejected and cancelled ones may be refiled
            models.UniqueConstraint(
                fields=['order'],
                condition=~models.Q(status__in=[REJECTED, CANCELLED]),
                name='return_one_open_per_order',
            ),
        ]

    def __str__(self):
        return f"Return {self.id} - Order {self.order_id}"

    @property
    def is_terminal(self):
        return self.status in TERMINAL_STATUSES

    @property
    def has_tracking(self):
        return bool(self.tracking_number)

    def role_of(self, user):
        """'buyer', 'seller' or None for the given user."""
        if user is None or not user.is_authenticated:
            return None
        if self.buyer_id == user.pk:
            return 'buyer'
        if self.seller_id == user.pk:
            return 'seller'
        return None


class RefundRecord(models.Model):
    """
    Money returned to a buyer, independent of whether the item came back.

    Created once per full or partial refund decision and never mutated by
    the returns workflow afterwards.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('completed', 'Completed'),
        ('failed', 'Failed'),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    order = models.ForeignKey(
        'marketplace.Order',
        on_delete=models.PROTECT,
        related_name='refunds'
    )
    return_request = models.OneToOneField(
        ReturnRequest,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='refund_record'
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='refunds_received'
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='refunds_issued'
    )
    requested_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='+'
    )

    # Transaction Details
    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    reason = models.TextField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    # External Reference
    processor_refund_id = models.CharField(max_length=100, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'refund_records'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', '-created_at'], name='refund_buyer_created_idx'),
            models.Index(fields=['seller', '-created_at'], name='refund_seller_created_idx'),
            models.Index(fields=['status', '-created_at'], name='refund_status_created_idx'),
        ]

    def __str__(self):
        return f"Refund {self.amount} - Order {self.order_id}"


class ReturnAuditLog(models.Model):
    """
    Audit log for return/refund operations.

    Provides complete audit trail of all state changes and operations
    for returns and refunds. Essential for:
    - Debugging issues
    - Dispute resolution
    - Reconciling refund records against return and order state
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # What operation was performed
    operation = models.CharField(
        max_length=50,
        db_index=True,
        help_text='e.g., approve, reject, full_refund, add_tracking, reconcile'
    )

    # The return request (central reference)
    return_request = models.ForeignKey(
        ReturnRequest,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )

    # Who performed the action
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # State before operation (JSON)
    previous_state = models.JSONField(default=dict, blank=True)

    # State after operation (JSON)
    new_state = models.JSONField(default=dict, blank=True)

    # Additional details (JSON)
    details = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'return_audit_logs'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['return_request', '-created_at'], name='return_audit_return_idx'),
            models.Index(fields=['operation', '-created_at'], name='return_audit_op_idx'),
        ]

    def __str__(self):
        return f"{self.operation} on {self.return_request_id} at {self.created_at}"

    @classmethod
    def log(
        cls,
        operation: str,
        return_request=None,
        user=None,
        previous_state: dict = None,
        new_state: dict = None,
        details: dict = None,
    ):
        """
        Create an audit log entry.

        Runs in its own savepoint so a failed insert never poisons the
        surrounding transaction.
        """
        try:
            with transaction.atomic():
                return cls.objects.create(
                    operation=operation,
                    return_request=return_request,
                    user=user,
                    previous_state=previous_state or {},
                    new_state=new_state or {},
                    details=details or {},
                )
        except Exception as e:
            # Audit logging should never break operations
            logger.error(f"Failed to create ReturnAuditLog: {e}")
            return None
