"""
Tests for the return card shown to buyers and sellers.

Run with: pytest tests/integration/test_returns_presenters.py -v
"""

import pytest

from marketplace.returns_presenters import ReturnCardPresenter
from marketplace.returns_resolution import ReturnResolutionService
from marketplace.returns_tracking import CARRIERS


@pytest.mark.django_db
class TestAvailableActions:

    @pytest.mark.parametrize('role,status,tracking,expected', [
        ('seller', 'pending', '', ['approve', 'reject', 'full_refund', 'partial_refund']),
        ('buyer', 'pending', '', []),
        ('seller', 'approved', '', []),
        ('seller', 'approved', 'dhl:1', ['mark_received']),
        ('buyer', 'approved', '', ['add_tracking']),
        ('buyer', 'approved', 'dhl:1', []),
        ('seller', 'completed', 'dhl:1', []),
        ('seller', 'refunded_no_return', '', []),
        ('buyer', 'rejected', '', []),
        ('seller', 'cancelled', '', []),
    ])
    def test_actions(self, make_return, order, role, status, tracking, expected):
        return_request = make_return(order, status=status, tracking_number=tracking)

        assert ReturnCardPresenter(return_request, role).available_actions() == expected

    def test_offered_seller_actions_are_accepted(self, seller, make_order, make_return):
        """Every action on a pending seller card succeeds when taken."""
        pending = make_return(make_order())
        for action in ReturnCardPresenter(pending, 'seller').available_actions():
            return_request = make_return(make_order())
            amount = '10' if action == 'partial_refund' else None

            result = ReturnResolutionService(seller).resolve(return_request, action, amount=amount)

            assert result.ok, (action, result.message)

    def test_unknown_role(self, pending_return):
        with pytest.raises(ValueError):
            ReturnCardPresenter(pending_return, 'staff')


@pytest.mark.django_db
class TestCardContent:

    def test_status_label(self, approved_return):
        card = ReturnCardPresenter(approved_return, 'seller').present()

        assert card['status_label'] == 'Approved - awaiting return'
        assert card['status_tone'] == 'info'

    def test_tracking_is_decoded(self, make_return, order):
        return_request = make_return(order, status='approved', tracking_number='sameday:SD-99-B')

        card = ReturnCardPresenter(return_request, 'seller').present()

        assert card['tracking'] == {
            'carrier': 'sameday', 'carrier_label': 'Sameday', 'number': 'SD-99-B',
        }
        assert card['awaiting_tracking'] is False

    def test_no_tracking(self, pending_return):
        assert ReturnCardPresenter(pending_return, 'buyer').present()['tracking'] is None

    def test_carriers_listed_only_with_add_tracking(self, approved_return):
        buyer_card = ReturnCardPresenter(approved_return, 'buyer').present()
        seller_card = ReturnCardPresenter(approved_return, 'seller').present()

        assert len(buyer_card['carriers']) == len(CARRIERS)
        assert buyer_card['carriers'][0] == {'value': 'fan_courier', 'label': 'FAN Courier'}
        assert seller_card['carriers'] == []

    def test_address_only_for_buyer_of_approved_return(
        self, approved_return, seller_address, make_order, make_return
    ):
        pending_return = make_return(make_order())
        buyer_card = ReturnCardPresenter(approved_return, 'buyer', seller_address).present()
        seller_card = ReturnCardPresenter(approved_return, 'seller', seller_address).present()
        pending_card = ReturnCardPresenter(pending_return, 'buyer', seller_address).present()

        assert buyer_card['seller_address'] == {
            'name': 'Mihai Seller',
            'address': 'Strada Lunga 12',
            'city': 'Cluj-Napoca',
            'postal_code': '400000',
            'phone': '+40700000000',
        }
        assert seller_card['seller_address'] is None
        assert pending_card['seller_address'] is None

    def test_amounts_are_strings(self, make_order, make_return):
        card = ReturnCardPresenter(make_return(make_order(amount='49.90')), 'buyer').present()

        assert card['order']['amount'] == '49.90'
        assert card['refund_amount'] is None
