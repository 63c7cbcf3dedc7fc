"""
Return card presentation.

Turns one ReturnRequest (with its order and listing joined) into the card the
buyer or seller dashboard renders, including which actions the viewer may
take. The card only ever offers actions the resolution service would accept.
"""

from .returns_safety import (
    PENDING, APPROVED, REJECTED, COMPLETED, REFUNDED_NO_RETURN, CANCELLED,
    is_terminal,
)
from .returns_tracking import CARRIERS, decode_tracking


BUYER = 'buyer'
SELLER = 'seller'
ROLES = (BUYER, SELLER)

# Decisions a seller may take on a pending return
SELLER_PENDING_ACTIONS = ['approve', 'reject', 'full_refund', 'partial_refund']

STATUS_DISPLAY = {
    PENDING: ('Pending', 'warning'),
    APPROVED: ('Approved - awaiting return', 'info'),
    REJECTED: ('Rejected', 'destructive'),
    COMPLETED: ('Completed', 'success'),
    REFUNDED_NO_RETURN: ('Refunded (no return)', 'success'),
    CANCELLED: ('Cancelled', 'muted'),
}


def _money(value):
    return None if value is None else str(value)


def present_address(address):
    if address is None:
        return None
    return {
        'name': f"{address.first_name} {address.last_name}".strip(),
        'address': address.address,
        'city': address.city,
        'postal_code': address.postal_code,
        'phone': address.phone or None,
    }


class ReturnCardPresenter:
    """
    View-model for a single return as seen by its buyer or its seller.

    seller_address is only shown to the buyer of an approved return; pass it
    in already fetched (see returns_queries.fetch_seller_return_address).
    """

    def __init__(self, return_request, role, seller_address=None):
        if role not in ROLES:
            raise ValueError(f"Unknown viewer role: {role}")
        self.return_request = return_request
        self.role = role
        self.seller_address = seller_address

    @property
    def shows_seller_address(self):
        return self.role == BUYER and self.return_request.status == APPROVED

    @property
    def awaiting_tracking(self):
        r = self.return_request
        return self.role == SELLER and r.status == APPROVED and not r.tracking_number

    def available_actions(self):
        r = self.return_request
        if is_terminal(r.status):
            return []
        if self.role == SELLER:
            if r.status == PENDING:
                return list(SELLER_PENDING_ACTIONS)
            if r.status == APPROVED and r.tracking_number:
                return ['mark_received']
            return []
        if r.status == APPROVED and not r.tracking_number:
            return ['add_tracking']
        return []

    def present(self):
        r = self.return_request
        order = r.order
        listing = order.listing
        label, tone = STATUS_DISPLAY.get(r.status, STATUS_DISPLAY[PENDING])
        tracking = decode_tracking(r.tracking_number)
        actions = self.available_actions()

        return {
            'id': str(r.id),
            'version': r.version,
            'role': self.role,
            'status': r.status,
            'status_label': label,
            'status_tone': tone,
            'reason': r.reason,
            'description': r.description,
            'created_at': r.created_at.isoformat() if r.created_at else None,
            'resolved_at': r.resolved_at.isoformat() if r.resolved_at else None,
            'order': {
                'id': str(order.id),
                'amount': _money(order.amount),
                'status': order.status,
            },
            'listing': {
                'id': str(listing.id),
                'title': listing.title,
                'primary_image': listing.primary_image_url,
            },
            'refund_amount': _money(r.refund_amount),
            'seller_notes': r.seller_notes,
            'tracking': tracking.to_dict() if tracking else None,
            'seller_address': (
                present_address(self.seller_address) if self.shows_seller_address else None
            ),
            'awaiting_tracking': self.awaiting_tracking,
            'actions': actions,
            'carriers': (
                [{'value': code, 'label': name} for code, name in CARRIERS]
                if 'add_tracking' in actions else []
            ),
        }
