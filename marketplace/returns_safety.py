"""
Returns/Refunds Safety Utilities

Provides the consistency rules shared by the returns workflow:
1. State machine validation for status transitions
2. Conflict errors for stale or concurrent writes
3. Refund idempotency markers

Status writes themselves live in returns_queries.ReturnsGateway; callers
validate the transition here first.
"""

from django.core.cache import cache
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


# ==============================================================================
# ERRORS
# ==============================================================================

class ReturnStatusTransitionError(Exception):
    """Raised when an invalid return status transition is attempted."""
    pass


class ReturnConflictError(Exception):
    """
    Raised when a write targets a return that changed underneath the caller:
    its version moved on, or it already reached a terminal status.
    """

    def __init__(self, message='This return was already resolved'):
        super().__init__(message)


# ==============================================================================
# STATE MACHINE FOR STATUS TRANSITIONS
# ==============================================================================

PENDING = 'pending'
APPROVED = 'approved'
REJECTED = 'rejected'
COMPLETED = 'completed'
REFUNDED_NO_RETURN = 'refunded_no_return'
CANCELLED = 'cancelled'

# Valid status transitions for ReturnRequest
RETURN_STATUS_TRANSITIONS = {
    PENDING: [APPROVED, REJECTED, REFUNDED_NO_RETURN, CANCELLED],
    APPROVED: [COMPLETED, CANCELLED],
    REJECTED: [],  # Terminal state
    COMPLETED: [],  # Terminal state
    REFUNDED_NO_RETURN: [],  # Terminal state
    CANCELLED: [],  # Terminal state
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in RETURN_STATUS_TRANSITIONS.items() if not targets
)


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def validate_return_status_transition(current_status: str, new_status: str) -> bool:
    """
    Validate that a return status transition is allowed.

    Args:
        current_status: Current status of the return
        new_status: Proposed new status

    Returns:
        True if transition is valid

    Raises:
        ReturnStatusTransitionError if transition is invalid
    """
    valid_transitions = RETURN_STATUS_TRANSITIONS.get(current_status, [])

    if new_status not in valid_transitions:
        if is_terminal(current_status):
            raise ReturnStatusTransitionError(
                f"This return is already {current_status} and cannot be changed"
            )
        raise ReturnStatusTransitionError(
            f"Invalid return status transition: {current_status} -> {new_status}. "
            f"Valid transitions from '{current_status}': {valid_transitions}"
        )

    return True


# ==============================================================================
# IDEMPOTENCY HELPERS
# ==============================================================================

def check_refund_idempotency(return_request_id: str) -> dict:
    """
    Check if a refund has already been issued for this return request.

    Returns:
        Dict with existing refund info if found, None otherwise
    """
    cache_key = f"refund_issued:{return_request_id}"
    return cache.get(cache_key)


def mark_refund_issued(return_request_id: str, refund_record_id: str, amount: str):
    """
    Mark that a refund has been issued (for idempotency).
    """
    cache_key = f"refund_issued:{return_request_id}"
    cache.set(cache_key, {
        'refund_record_id': refund_record_id,
        'amount': amount,
        'issued_at': timezone.now().isoformat()
    }, timeout=86400 * 7)  # 7 days TTL
    logger.debug(f"Marked refund {refund_record_id} issued for return {return_request_id}")
