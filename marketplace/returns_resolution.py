"""
Return resolution workflow.

ReturnResolutionService is the single entry point for changing a return:
seller decisions (approve, reject, full refund, partial refund, mark received),
staff decisions (the same plus cancel), buyer tracking submission and filing
a new return.

Every handler returns a ResolutionResult instead of raising. Failures carry
one of three error kinds:
- VALIDATION: bad input, detected before any write
- CONFLICT: the return is not in a state that allows the action, or another
  actor changed it first (version mismatch)
- TRANSPORT: the database failed

Refund decisions write three rows in a fixed order (refund record, return,
order) inside one transaction, so a failure at any step leaves nothing behind.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Dict, Optional
import logging

from django.db import DatabaseError, IntegrityError, models, transaction
from django.db.models import F
from django.utils import timezone

from .notifications import Toast, notify_user
from .returns_queries import ReturnsGateway, invalidate_collections, returns_queryset
from .returns_refunds_models import ReturnRequest, ReturnReason, RefundRecord, ReturnAuditLog
from .returns_safety import (
    APPROVED, REJECTED, COMPLETED, REFUNDED_NO_RETURN, CANCELLED, TERMINAL_STATUSES,
    ReturnConflictError, ReturnStatusTransitionError,
    check_refund_idempotency, mark_refund_issued, validate_return_status_transition,
)
from .returns_tracking import CARRIER_LABELS, SEPARATOR, encode_tracking

logger = logging.getLogger(__name__)


CENT = Decimal('0.01')

REFUND_REASON_TEMPLATE = "Refund for return: {reason}"
PARTIAL_REFUND_REASON_TEMPLATE = "Partial refund for return: {reason}"

INVALID_AMOUNT = 'Invalid amount'


class ReturnDecision(models.TextChoices):
    APPROVE = 'approve', 'Approve'
    REJECT = 'reject', 'Reject'
    FULL_REFUND = 'full_refund', 'Full refund'
    PARTIAL_REFUND = 'partial_refund', 'Partial refund'
    MARK_RECEIVED = 'mark_received', 'Mark received and refund'
    CANCEL = 'cancel', 'Cancel'


SELLER_DECISIONS = frozenset(ReturnDecision) - {ReturnDecision.CANCEL}
STAFF_DECISIONS = frozenset(ReturnDecision)

DECISION_TARGET_STATUS = {
    ReturnDecision.APPROVE: APPROVED,
    ReturnDecision.REJECT: REJECTED,
    ReturnDecision.FULL_REFUND: REFUNDED_NO_RETURN,
    ReturnDecision.PARTIAL_REFUND: REFUNDED_NO_RETURN,
    ReturnDecision.MARK_RECEIVED: COMPLETED,
    ReturnDecision.CANCEL: CANCELLED,
}


class ResolutionErrorKind(Enum):
    VALIDATION = 'validation'
    CONFLICT = 'conflict'
    TRANSPORT = 'transport'


@dataclass
class ResolutionResult:
    """Outcome of one workflow action."""
    ok: bool
    toast: Toast
    return_request: Optional[ReturnRequest] = None
    refund: Optional[RefundRecord] = None
    error_kind: Optional[ResolutionErrorKind] = None
    field_errors: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def success(cls, toast, return_request, refund=None):
        return cls(ok=True, toast=toast, return_request=return_request, refund=refund)

    @classmethod
    def failure(cls, kind, message, field_errors=None):
        return cls(
            ok=False,
            toast=Toast.error(message),
            error_kind=kind,
            field_errors=field_errors or {},
        )

    @property
    def message(self):
        return self.toast.description


class InvalidRefundAmount(ValueError):
    pass


def parse_refund_amount(raw, order_amount) -> Decimal:
    """
    Parse a seller-entered partial refund amount.

    Accepts anything Decimal can read. The entered value must be positive and
    not exceed the order amount; the result is rounded to cents.
    """
    if raw is None:
        raise InvalidRefundAmount(INVALID_AMOUNT)
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise InvalidRefundAmount(INVALID_AMOUNT)
    if not amount.is_finite():
        raise InvalidRefundAmount(INVALID_AMOUNT)

    if amount <= 0 or amount > order_amount:
        raise InvalidRefundAmount(INVALID_AMOUNT)

    amount = amount.quantize(CENT, rounding=ROUND_HALF_UP)
    if amount <= 0:
        raise InvalidRefundAmount(INVALID_AMOUNT)
    return amount


class ReturnResolutionService:
    """
    Runs workflow actions on behalf of `actor`.

    Permission to act on a given return (participant or staff) is checked by
    the caller; `as_staff` only widens the decision set and routes notes to
    admin_notes.
    """

    def __init__(self, actor, gateway=None, as_staff=False):
        self.actor = actor
        self.gateway = gateway or ReturnsGateway()
        self.as_staff = as_staff

    @property
    def allowed_decisions(self):
        return STAFF_DECISIONS if self.as_staff else SELLER_DECISIONS

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def resolve(self, return_request, decision, note='', amount=None, expected_version=None):
        """
        Apply one decision to `return_request`.

        `expected_version` defaults to the version of the instance passed in,
        so a concurrent change since it was loaded is reported as a conflict.
        """
        try:
            decision = ReturnDecision(decision)
        except ValueError:
            return ResolutionResult.failure(
                ResolutionErrorKind.VALIDATION,
                f"Unknown decision: {decision}",
                {'decision': 'Invalid choice'},
            )
        if decision not in self.allowed_decisions:
            return ResolutionResult.failure(
                ResolutionErrorKind.VALIDATION,
                f"{decision.label} is not available to sellers",
                {'decision': 'Not allowed'},
            )

        # Input validation happens before any gateway call
        refund_amount = None
        if decision == ReturnDecision.PARTIAL_REFUND:
            try:
                refund_amount = parse_refund_amount(amount, return_request.order.amount)
            except InvalidRefundAmount as e:
                return ResolutionResult.failure(
                    ResolutionErrorKind.VALIDATION, str(e), {'amount': str(e)}
                )
        elif decision in (ReturnDecision.FULL_REFUND, ReturnDecision.MARK_RECEIVED):
            refund_amount = return_request.order.amount

        if expected_version is None:
            expected_version = return_request.version

        if decision in (ReturnDecision.FULL_REFUND, ReturnDecision.PARTIAL_REFUND):
            if check_refund_idempotency(str(return_request.id)):
                return ResolutionResult.failure(
                    ResolutionErrorKind.CONFLICT, 'A refund was already issued for this return'
                )

        refund = None
        try:
            with transaction.atomic():
                locked = self._lock(return_request.id, expected_version)
                target = DECISION_TARGET_STATUS[decision]
                validate_return_status_transition(locked.status, target)
                previous_status = locked.status

                if decision in (ReturnDecision.FULL_REFUND, ReturnDecision.PARTIAL_REFUND):
                    refund = self._refund(locked, decision, refund_amount, note, expected_version)
                else:
                    if (decision == ReturnDecision.MARK_RECEIVED
                            and not locked.tracking_number and not self.as_staff):
                        raise ReturnConflictError('Awaiting return tracking from the buyer')
                    self.gateway.update_return_status(
                        locked.id,
                        target,
                        refund_amount=refund_amount,
                        expected_version=expected_version,
                        **self._notes(note),
                    )

                ReturnAuditLog.log(
                    operation=decision.value,
                    return_request=locked,
                    user=self.actor,
                    previous_state={'status': previous_status, 'version': expected_version},
                    new_state={
                        'status': target,
                        'refund_amount': str(refund_amount) if refund_amount is not None else None,
                    },
                    details={'refund_record_id': str(refund.id)} if refund else {},
                )
                self._notify_decision(locked, decision, refund_amount)
        except (ReturnStatusTransitionError, ReturnConflictError) as e:
            logger.info(f"Return {return_request.id} {decision.value} rejected: {e}")
            return ResolutionResult.failure(ResolutionErrorKind.CONFLICT, str(e))
        except DatabaseError as e:
            logger.exception(f"Return {return_request.id} {decision.value} failed")
            return ResolutionResult.failure(ResolutionErrorKind.TRANSPORT, str(e))

        invalidate_collections(return_request.buyer_id, return_request.seller_id)
        return_request = returns_queryset().get(pk=return_request.pk)
        logger.info(
            f"Return {return_request.id} {decision.value} by {self.actor.pk}: "
            f"now {return_request.status}"
        )
        return ResolutionResult.success(
            self._decision_toast(decision, refund_amount), return_request, refund
        )

    def _refund(self, locked, decision, amount, note, expected_version):
        """Refund record, then return status, then order status."""
        template = (
            PARTIAL_REFUND_REASON_TEMPLATE if decision == ReturnDecision.PARTIAL_REFUND
            else REFUND_REASON_TEMPLATE
        )
        refund = self.gateway.insert_refund(
            return_request=locked,
            amount=amount,
            reason=template.format(reason=locked.reason),
            requested_by=self.actor,
        )
        self.gateway.update_return_status(
            locked.id,
            REFUNDED_NO_RETURN,
            refund_amount=amount,
            expected_version=expected_version,
            **self._notes(note),
        )
        order_status = 'partially_refunded' if decision == ReturnDecision.PARTIAL_REFUND else 'refunded'
        self.gateway.update_order_refund(locked.order_id, order_status, amount)

        refund_id, return_id = str(refund.id), str(locked.id)
        transaction.on_commit(lambda: mark_refund_issued(return_id, refund_id, str(amount)))
        return refund

    # ------------------------------------------------------------------
    # Buyer actions
    # ------------------------------------------------------------------

    def submit_tracking(self, return_request, tracking_number, carrier='', expected_version=None):
        """Store the buyer's return shipment tracking on an approved return."""
        number = (tracking_number or '').strip()
        carrier = (carrier or '').strip()
        errors = {}
        if not number:
            errors['tracking_number'] = 'Tracking number is required'
        elif SEPARATOR in number:
            errors['tracking_number'] = f"Tracking number cannot contain '{SEPARATOR}'"
        if carrier and carrier not in CARRIER_LABELS:
            errors['carrier'] = 'Unknown carrier'
        if errors:
            return ResolutionResult.failure(
                ResolutionErrorKind.VALIDATION, next(iter(errors.values())), errors
            )

        if expected_version is None:
            expected_version = return_request.version
        stored = encode_tracking(number, carrier or None)

        try:
            with transaction.atomic():
                locked = self._lock(return_request.id, expected_version)
                if locked.status != APPROVED:
                    raise ReturnStatusTransitionError(
                        'Tracking can only be added once the return is approved'
                    )
                self.gateway.add_tracking(locked.id, stored, expected_version=expected_version)

                ReturnAuditLog.log(
                    operation='add_tracking',
                    return_request=locked,
                    user=self.actor,
                    previous_state={'tracking_number': locked.tracking_number},
                    new_state={'tracking_number': stored},
                )
                notify_user(
                    locked.seller_id,
                    'return_tracking_added',
                    'Return shipped',
                    f"The buyer sent the item back. Tracking: {stored}",
                    data={'return_id': str(locked.id), 'tracking_number': stored},
                )
        except (ReturnStatusTransitionError, ReturnConflictError) as e:
            return ResolutionResult.failure(ResolutionErrorKind.CONFLICT, str(e))
        except DatabaseError as e:
            logger.exception(f"Adding tracking to return {return_request.id} failed")
            return ResolutionResult.failure(ResolutionErrorKind.TRANSPORT, str(e))

        invalidate_collections(return_request.buyer_id, return_request.seller_id)
        return_request = returns_queryset().get(pk=return_request.pk)
        return ResolutionResult.success(
            Toast('Tracking added', 'The tracking number was saved. The seller will be notified.'),
            return_request,
        )

    def file_return(self, order, reason, description=''):
        """Open a return on `order` for its buyer."""
        if not order.is_returnable:
            return ResolutionResult.failure(
                ResolutionErrorKind.VALIDATION,
                f"Orders in status '{order.status}' cannot be returned",
                {'order_id': 'Order is not eligible for return'},
            )
        try:
            label = ReturnReason(reason).label
        except ValueError:
            return ResolutionResult.failure(
                ResolutionErrorKind.VALIDATION, 'Select a return reason', {'reason': 'Invalid choice'}
            )

        try:
            with transaction.atomic():
                self.gateway.lock_order(order.id)
                open_returns = ReturnRequest.objects.filter(
                    order_id=order.id
                ).exclude(status__in=[REJECTED, CANCELLED])
                if open_returns.exists():
                    raise ReturnConflictError('A return already exists for this order')

                return_request = self.gateway.insert_return(
                    order=order, buyer=self.actor, reason=label, description=description or ''
                )
                ReturnAuditLog.log(
                    operation='file_return',
                    return_request=return_request,
                    user=self.actor,
                    new_state={'status': return_request.status, 'reason': label},
                )
                notify_user(
                    order.seller_id,
                    'return_requested',
                    'New return request',
                    f"A buyer requested a return: {label}",
                    data={'return_id': str(return_request.id), 'order_id': str(order.id)},
                )
        except ReturnConflictError as e:
            return ResolutionResult.failure(ResolutionErrorKind.CONFLICT, str(e))
        except IntegrityError:
            logger.info(f"Concurrent return filing on order {order.id} lost the race")
            return ResolutionResult.failure(
                ResolutionErrorKind.CONFLICT, 'A return already exists for this order'
            )
        except DatabaseError as e:
            logger.exception(f"Filing a return on order {order.id} failed")
            return ResolutionResult.failure(ResolutionErrorKind.TRANSPORT, str(e))

        invalidate_collections(order.buyer_id, order.seller_id)
        return ResolutionResult.success(
            Toast('Return request sent', 'The seller will be notified and will process your request.'),
            return_request,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lock(self, return_id, expected_version):
        locked = self.gateway.lock_return(return_id)
        if locked.status in TERMINAL_STATUSES:
            raise ReturnStatusTransitionError(
                f"This return is already {locked.status} and cannot be changed"
            )
        if locked.version != expected_version:
            raise ReturnConflictError()
        return locked

    def _notes(self, note):
        if not note:
            return {}
        return {'admin_notes': note} if self.as_staff else {'seller_notes': note}

    def _notify_decision(self, return_request, decision, refund_amount):
        title, message = {
            ReturnDecision.APPROVE: (
                'Return approved', 'Your return was approved. Ship the item to the seller.'
            ),
            ReturnDecision.REJECT: ('Return rejected', 'Your return request was rejected.'),
            ReturnDecision.FULL_REFUND: (
                'Refund issued', f"You were refunded {refund_amount}. No need to send the item back."
            ),
            ReturnDecision.PARTIAL_REFUND: (
                'Partial refund issued', f"You were refunded {refund_amount}."
            ),
            ReturnDecision.MARK_RECEIVED: (
                'Return completed', f"The seller received the item. Refund: {refund_amount}."
            ),
            ReturnDecision.CANCEL: ('Return cancelled', 'Your return request was cancelled.'),
        }[decision]
        data = {'return_id': str(return_request.id), 'decision': decision.value}
        notify_user(return_request.buyer_id, f"return_{decision.value}", title, message, data=data)
        if self.as_staff and self.actor.pk != return_request.seller_id:
            notify_user(return_request.seller_id, f"return_{decision.value}", title, message, data=data)

    @staticmethod
    def _decision_toast(decision, refund_amount):
        if decision == ReturnDecision.APPROVE:
            return Toast('Return approved', 'The buyer can now ship the item back.')
        if decision == ReturnDecision.REJECT:
            return Toast('Return rejected', 'The buyer has been notified.')
        if decision == ReturnDecision.FULL_REFUND:
            return Toast('Refund issued', f"{refund_amount} refunded to the buyer.")
        if decision == ReturnDecision.PARTIAL_REFUND:
            return Toast('Partial refund issued', f"{refund_amount} refunded to the buyer.")
        if decision == ReturnDecision.MARK_RECEIVED:
            return Toast('Return completed', f"Refund of {refund_amount} recorded.")
        return Toast('Return cancelled', 'The return was cancelled.')


# ==============================================================================
# RECONCILIATION
# ==============================================================================

def reconcile_refund_records(dry_run=False, gateway=None):
    """
    Find completed refund records whose return or order was never moved to
    the matching refunded state, and repair them.

    Returns still pending or approved are moved to refunded_no_return; returns
    that ended some other way are reported and left alone.

    Returns the list of repaired refund record ids.
    """
    gateway = gateway or ReturnsGateway()
    refunds = RefundRecord.objects.filter(
        status='completed', return_request__isnull=False
    ).select_related('return_request', 'order')

    repaired = []
    for refund in refunds:
        return_request = refund.return_request
        order = refund.order
        return_ok = return_request.status in (REFUNDED_NO_RETURN, COMPLETED)
        order_ok = order.status in ('refunded', 'partially_refunded')
        if return_ok and order_ok:
            continue

        if not return_ok and return_request.status in TERMINAL_STATUSES:
            logger.warning(
                f"Refund {refund.id} exists but return {return_request.id} is "
                f"{return_request.status}; needs manual review"
            )
            continue

        repaired.append(refund.id)
        if dry_run:
            continue

        order_status = 'refunded' if refund.amount >= order.amount else 'partially_refunded'
        with transaction.atomic():
            if not return_ok:
                now = timezone.now()
                ReturnRequest.objects.filter(pk=return_request.pk).update(
                    status=REFUNDED_NO_RETURN,
                    refund_amount=refund.amount,
                    resolved_at=now,
                    updated_at=now,
                    version=F('version') + 1,
                )
            if not order_ok:
                gateway.update_order_refund(order.id, order_status, refund.amount)
            ReturnAuditLog.log(
                operation='reconcile',
                return_request=return_request,
                previous_state={'status': return_request.status, 'order_status': order.status},
                new_state={
                    'status': REFUNDED_NO_RETURN if not return_ok else return_request.status,
                    'order_status': order_status if not order_ok else order.status,
                },
                details={'refund_record_id': str(refund.id)},
            )
        invalidate_collections(return_request.buyer_id, return_request.seller_id)
        logger.warning(f"Reconciled refund {refund.id} for return {return_request.id}")

    return repaired
