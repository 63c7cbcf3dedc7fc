"""
Tests for refund reconciliation and the background tasks.

Run with: pytest tests/integration/test_reconcile_refunds.py -v
"""

import pytest
from datetime import timedelta
from decimal import Decimal
from io import StringIO
from django.core.management import call_command
from django.utils import timezone

from marketplace.models import Notification
from marketplace.returns_refunds_models import RefundRecord, ReturnAuditLog
from marketplace.returns_resolution import reconcile_refund_records
from marketplace.tasks import (
    cleanup_old_notifications, deliver_notification,
    reconcile_refund_records as reconcile_task,
)


@pytest.fixture
def make_orphan_refund(seller):
    """A completed refund whose return and order were never updated."""
    def _make(return_request, amount='100.00'):
        return RefundRecord.objects.create(
            order=return_request.order,
            return_request=return_request,
            buyer=return_request.buyer,
            seller=return_request.seller,
            requested_by=seller,
            amount=Decimal(amount),
            reason=f"Refund for return: {return_request.reason}",
            status='completed',
            completed_at=timezone.now(),
        )
    return _make


@pytest.mark.django_db
class TestReconcileRefundRecords:

    def test_repairs_return_and_order(self, order, pending_return, make_orphan_refund):
        refund = make_orphan_refund(pending_return)

        repaired = reconcile_refund_records()

        assert repaired == [refund.id]
        pending_return.refresh_from_db()
        order.refresh_from_db()
        assert pending_return.status == 'refunded_no_return'
        assert pending_return.refund_amount == Decimal('100.00')
        assert pending_return.version == 2
        assert order.status == 'refunded'
        assert order.refund_amount == Decimal('100.00')
        assert ReturnAuditLog.objects.filter(operation='reconcile').count() == 1

    def test_partial_amount_marks_order_partially_refunded(
        self, order, approved_return, make_orphan_refund
    ):
        make_orphan_refund(approved_return, amount='25.00')

        reconcile_refund_records()

        order.refresh_from_db()
        assert order.status == 'partially_refunded'

    def test_dry_run_changes_nothing(self, order, pending_return, make_orphan_refund):
        refund = make_orphan_refund(pending_return)

        assert reconcile_refund_records(dry_run=True) == [refund.id]

        pending_return.refresh_from_db()
        order.refresh_from_db()
        assert pending_return.status == 'pending'
        assert order.status == 'delivered'

    def test_terminal_return_is_left_for_review(self, order, make_return, make_orphan_refund):
        rejected = make_return(order, status='rejected')
        make_orphan_refund(rejected)

        assert reconcile_refund_records() == []

        rejected.refresh_from_db()
        assert rejected.status == 'rejected'

    def test_consistent_refund_is_skipped(self, seller, pending_return):
        from marketplace.returns_resolution import ReturnResolutionService
        ReturnResolutionService(seller).resolve(pending_return, 'full_refund')

        assert reconcile_refund_records() == []

    def test_management_command(self, pending_return, make_orphan_refund):
        refund = make_orphan_refund(pending_return)
        out = StringIO()

        call_command('reconcile_refunds', '--dry-run', stdout=out)
        assert f"Refund record: {refund.id}" in out.getvalue()
        assert 'Would repair 1 refund records' in out.getvalue()

        out = StringIO()
        call_command('reconcile_refunds', stdout=out)
        assert 'Repaired 1 refund records' in out.getvalue()

        pending_return.refresh_from_db()
        assert pending_return.status == 'refunded_no_return'


@pytest.mark.django_db
class TestTasks:

    def test_reconcile_task_returns_count(self, pending_return, make_orphan_refund):
        make_orphan_refund(pending_return)

        assert reconcile_task() == 1
        assert reconcile_task() == 0

    def test_deliver_notification(self, buyer):
        notification_id = deliver_notification(
            buyer.pk, 'return_approved', 'Return approved', 'Ship it back',
            data={'return_id': 'abc'},
        )

        notification = Notification.objects.get(id=notification_id)
        assert notification.user == buyer
        assert notification.data == {'return_id': 'abc'}
        assert notification.is_read is False

    def test_cleanup_old_notifications(self, buyer):
        old_read = Notification.objects.create(user=buyer, type='x', title='t', message='m', is_read=True)
        old_unread = Notification.objects.create(user=buyer, type='x', title='t', message='m')
        recent_read = Notification.objects.create(user=buyer, type='x', title='t', message='m', is_read=True)
        Notification.objects.filter(pk__in=[old_read.pk, old_unread.pk]).update(
            created_at=timezone.now() - timedelta(days=120)
        )

        assert cleanup_old_notifications(days_old=90) == 1

        remaining = set(Notification.objects.values_list('pk', flat=True))
        assert remaining == {old_unread.pk, recent_read.pk}
