"""
Returns data access.

Read side: cached collections of return cards, refunds and orders per user.
Write side: ReturnsGateway, one method per row write. The gateway carries no
workflow rules beyond refusing to touch terminal or stale rows; sequencing of
dependent writes belongs to returns_resolution.

Every successful mutation must be followed by invalidate_collections() for
the users involved.
"""

from django.conf import settings
from django.core.cache import cache
from django.db.models import F, Q
from django.utils import timezone
from django.utils.crypto import get_random_string
import logging

from .marketplace_models import Order, SavedAddress
from .returns_refunds_models import ReturnRequest, RefundRecord
from .returns_presenters import BUYER, SELLER, ROLES, ReturnCardPresenter
from .returns_safety import APPROVED, TERMINAL_STATUSES, ReturnConflictError

logger = logging.getLogger(__name__)


COLLECTIONS = ('returns', 'orders', 'refunds')


def _cache_timeout():
    return getattr(settings, 'RETURNS_CACHE_TIMEOUT', 300)


def _cache_key(collection, user_id, role=None):
    if role:
        return f"{collection}:{role}:{user_id}"
    return f"{collection}:{user_id}"


def _check_role(role):
    if role not in ROLES:
        raise ValueError(f"role must be one of {ROLES}, got {role!r}")


# ==============================================================================
# READS
# ==============================================================================

def fetch_seller_return_address(seller_id):
    """
    Address a buyer ships an approved return to.

    The seller's default saved address, else the most recently saved one.
    """
    addresses = SavedAddress.objects.filter(user_id=seller_id)
    default = addresses.filter(is_default=True).first()
    if default:
        return default
    return addresses.order_by('-created_at').first()


def returns_queryset():
    return ReturnRequest.objects.select_related(
        'order', 'order__listing'
    ).prefetch_related('order__listing__images')


def fetch_returns_for_user(user, role):
    """
    All returns where `user` is the buyer (role='buyer') or the seller
    (role='seller'), newest first, presented as cards.
    """
    _check_role(role)
    key = _cache_key('returns', user.pk, role)
    cards = cache.get(key)
    if cards is not None:
        return cards

    queryset = returns_queryset().filter(**{role: user}).order_by('-created_at')

    addresses = {}
    cards = []
    for return_request in queryset:
        address = None
        if role == BUYER and return_request.status == APPROVED:
            if return_request.seller_id not in addresses:
                addresses[return_request.seller_id] = fetch_seller_return_address(
                    return_request.seller_id
                )
            address = addresses[return_request.seller_id]
        cards.append(ReturnCardPresenter(return_request, role, seller_address=address).present())

    cache.set(key, cards, _cache_timeout())
    logger.debug(f"Cached {len(cards)} {role} returns for user {user.pk}")
    return cards


def fetch_refunds_for_user(user):
    """Refund records where the user is the buyer or the seller."""
    from .returns_refunds_serializers import RefundRecordSerializer

    key = _cache_key('refunds', user.pk)
    refunds = cache.get(key)
    if refunds is not None:
        return refunds

    queryset = RefundRecord.objects.filter(
        Q(buyer=user) | Q(seller=user)
    ).select_related('order', 'order__listing').order_by('-created_at')
    refunds = [dict(item) for item in RefundRecordSerializer(queryset, many=True).data]

    cache.set(key, refunds, _cache_timeout())
    return refunds


def fetch_orders_for_user(user, role):
    """Orders the user bought (role='buyer') or sold (role='seller')."""
    from .marketplace_serializers import OrderSerializer

    _check_role(role)
    key = _cache_key('orders', user.pk, role)
    orders = cache.get(key)
    if orders is not None:
        return orders

    queryset = Order.objects.filter(**{role: user}).select_related(
        'listing'
    ).prefetch_related('listing__images').order_by('-created_at')
    orders = [dict(item) for item in OrderSerializer(queryset, many=True).data]

    cache.set(key, orders, _cache_timeout())
    return orders


def invalidate_collections(*users):
    """
    Mark the cached returns, orders and refunds of the given users stale.

    Accepts user instances or primary keys.
    """
    keys = []
    for user in users:
        if user is None:
            continue
        user_id = getattr(user, 'pk', user)
        for role in (BUYER, SELLER):
            keys.append(_cache_key('returns', user_id, role))
            keys.append(_cache_key('orders', user_id, role))
        keys.append(_cache_key('refunds', user_id))
    if keys:
        cache.delete_many(keys)
        logger.debug(f"Invalidated {len(keys)} cached collections")


# ==============================================================================
# WRITES
# ==============================================================================

class ReturnsGateway:
    """
    Row-level writes for returns, refunds and orders.

    Update methods are conditional: they never touch a return in a terminal
    status and, given `expected_version`, only the exact version the caller
    read. A zero-row update raises ReturnConflictError.
    """

    def lock_return(self, return_id):
        """Load a return for the duration of the current transaction."""
        return (
            ReturnRequest.objects.select_for_update(of=('self',))
            .select_related('order', 'order__listing')
            .get(pk=return_id)
        )

    def lock_order(self, order_id):
        """Serialize return filings on one order for the current transaction."""
        return Order.objects.select_for_update().get(pk=order_id)

    def insert_return(self, *, order, buyer, reason, description=''):
        return ReturnRequest.objects.create(
            order=order,
            buyer=buyer,
            seller=order.seller,
            reason=reason,
            description=description,
        )

    def insert_refund(self, *, return_request, amount, reason, requested_by):
        now = timezone.now()
        return RefundRecord.objects.create(
            order_id=return_request.order_id,
            return_request=return_request,
            buyer_id=return_request.buyer_id,
            seller_id=return_request.seller_id,
            requested_by=requested_by,
            amount=amount,
            reason=reason,
            status='completed',
            processor_refund_id=f"REF-{now:%Y%m%d%H%M%S}-{get_random_string(6).upper()}",
            completed_at=now,
        )

    def update_return_status(self, return_id, status, seller_notes=None, admin_notes=None,
                             refund_amount=None, expected_version=None):
        now = timezone.now()
        fields = {
            'status': status,
            'updated_at': now,
            'version': F('version') + 1,
        }
        if seller_notes:
            fields['seller_notes'] = seller_notes
        if admin_notes:
            fields['admin_notes'] = admin_notes
        if refund_amount is not None:
            fields['refund_amount'] = refund_amount
        if status in TERMINAL_STATUSES:
            fields['resolved_at'] = now

        updated = self._writable(return_id, expected_version).update(**fields)
        if not updated:
            raise ReturnConflictError()
        logger.info(f"Return {return_id} status -> {status}")

    def add_tracking(self, return_id, tracking_number, expected_version=None):
        updated = self._writable(return_id, expected_version).update(
            tracking_number=tracking_number,
            updated_at=timezone.now(),
            version=F('version') + 1,
        )
        if not updated:
            raise ReturnConflictError()
        logger.info(f"Return {return_id} tracking set to {tracking_number}")

    def update_order_refund(self, order_id, status, refund_amount):
        now = timezone.now()
        Order.objects.filter(pk=order_id).update(
            status=status,
            refund_amount=refund_amount,
            refunded_at=now,
            updated_at=now,
        )
        logger.info(f"Order {order_id} status -> {status} (refund {refund_amount})")

    def _writable(self, return_id, expected_version):
        queryset = ReturnRequest.objects.filter(pk=return_id).exclude(
            status__in=TERMINAL_STATUSES
        )
        if expected_version is not None:
            queryset = queryset.filter(version=expected_version)
        return queryset
