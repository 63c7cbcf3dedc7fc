"""
API tests for the returns and refunds endpoints.

Tests cover:
- Listing cards per role and filing returns
- Seller decisions and error status codes (400 / 403 / 404 / 409 / 503)
- Buyer tracking submission and the seller return address
- Refund listing, staff back office and statistics
- Orders of the current user

Run with: pytest tests/integration/test_returns_api.py -v
"""

import pytest
import uuid
from decimal import Decimal
from unittest.mock import patch
from django.db import DatabaseError
from rest_framework import status

from marketplace.returns_refunds_models import RefundRecord, ReturnRequest


def returns_url(suffix=''):
    return f'/api/returns/{suffix}'


# =============================================================================
# PARTICIPANT ENDPOINTS
# =============================================================================

@pytest.mark.django_db
class TestReturnList:

    def test_requires_authentication(self, api_client):
        response = api_client.get(returns_url())

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_buyer_cards(self, api_client, buyer, pending_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(), {'role': 'buyer'})

        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 1
        assert response.data[0]['id'] == str(pending_return.id)
        assert response.data[0]['actions'] == []

    def test_seller_cards(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)

        response = api_client.get(returns_url(), {'role': 'seller'})

        assert response.data[0]['actions'] == ['approve', 'reject', 'full_refund', 'partial_refund']

    def test_invalid_role(self, api_client, buyer):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(), {'role': 'admin'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST


@pytest.mark.django_db
class TestFileReturn:

    def test_buyer_files_return(self, api_client, buyer, order):
        api_client.force_authenticate(user=buyer)

        response = api_client.post(returns_url(), {
            'order_id': str(order.id),
            'reason': 'not_as_described',
            'description': 'Colour is different',
        }, format='json')

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data['notification']['title'] == 'Return request sent'
        assert response.data['return_request']['reason'] == 'Not as described'
        assert response.data['return_request']['status'] == 'pending'

    def test_cannot_return_someone_elses_order(self, api_client, other_user, order):
        api_client.force_authenticate(user=other_user)

        response = api_client.post(returns_url(), {
            'order_id': str(order.id), 'reason': 'defect',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'order_id' in response.data

    def test_duplicate_return_conflicts(self, api_client, buyer, order, pending_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.post(returns_url(), {
            'order_id': str(order.id), 'reason': 'defect',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data['error_kind'] == 'conflict'
        assert response.data['notification']['variant'] == 'destructive'


@pytest.mark.django_db
class TestReturnDetail:

    def test_participant_gets_card(self, api_client, buyer, pending_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(f'{pending_return.id}/'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['role'] == 'buyer'

    def test_stranger_is_forbidden(self, api_client, other_user, pending_return):
        api_client.force_authenticate(user=other_user)

        response = api_client.get(returns_url(f'{pending_return.id}/'))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_staff_get_admin_row(self, api_client, staff_user, pending_return):
        api_client.force_authenticate(user=staff_user)

        response = api_client.get(returns_url(f'{pending_return.id}/'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['buyer_username'] == 'buyer_test'

    def test_missing_return(self, api_client, buyer):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(f'{uuid.uuid4()}/'))

        assert response.status_code == status.HTTP_404_NOT_FOUND


@pytest.mark.django_db
class TestResolveEndpoint:

    def test_seller_approves(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)

        response = api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
            'decision': 'approve', 'note': 'Ship it back', 'version': 1,
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['notification'] == {
            'title': 'Return approved',
            'description': 'The buyer can now ship the item back.',
            'variant': 'default',
        }
        assert response.data['return_request']['status'] == 'approved'
        assert response.data['return_request']['version'] == 2
        assert response.data['return_request']['awaiting_tracking'] is True

    def test_buyer_cannot_decide(self, api_client, buyer, pending_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
            'decision': 'full_refund',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert RefundRecord.objects.count() == 0

    def test_full_refund_response_carries_refund(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)

        response = api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
            'decision': 'full_refund',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['refund']['amount'] == '100.00'
        assert response.data['refund']['status'] == 'completed'
        assert response.data['return_request']['status'] == 'refunded_no_return'
        assert response.data['return_request']['actions'] == []

    @pytest.mark.parametrize('amount', ['75', '1e30', '50.004'])
    def test_partial_refund_over_order_amount(self, api_client, seller, make_order, make_return, amount):
        return_request = make_return(make_order(amount='50.00'))
        api_client.force_authenticate(user=seller)

        response = api_client.post(returns_url(f'{return_request.id}/resolve/'), {
            'decision': 'partial_refund', 'amount': amount,
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['error_kind'] == 'validation'
        assert response.data['errors'] == {'amount': 'Invalid amount'}
        assert RefundRecord.objects.count() == 0

    def test_stale_version_conflicts(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)
        url = returns_url(f'{pending_return.id}/resolve/')

        api_client.post(url, {'decision': 'approve', 'version': 1}, format='json')
        response = api_client.post(url, {'decision': 'reject', 'version': 1}, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT
        pending_return.refresh_from_db()
        assert pending_return.status == 'approved'

    def test_unknown_decision_is_rejected_by_serializer(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)

        response = api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
            'decision': 'escalate',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert 'decision' in response.data

    def test_database_failure_is_503(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)

        with patch(
            'marketplace.returns_queries.ReturnsGateway.update_order_refund',
            side_effect=DatabaseError('connection lost'),
        ):
            response = api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
                'decision': 'full_refund',
            }, format='json')

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data['error_kind'] == 'transport'
        assert RefundRecord.objects.count() == 0


@pytest.mark.django_db
class TestTrackingEndpoint:

    def test_buyer_adds_tracking(self, api_client, buyer, approved_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.post(returns_url(f'{approved_return.id}/tracking/'), {
            'carrier': 'fan_courier', 'tracking_number': 'AWB123456',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['return_request']['tracking'] == {
            'carrier': 'fan_courier',
            'carrier_label': 'FAN Courier',
            'number': 'AWB123456',
        }
        assert response.data['return_request']['actions'] == []

    def test_seller_cannot_add_tracking(self, api_client, seller, approved_return):
        api_client.force_authenticate(user=seller)

        response = api_client.post(returns_url(f'{approved_return.id}/tracking/'), {
            'tracking_number': 'X1',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_unknown_carrier(self, api_client, buyer, approved_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.post(returns_url(f'{approved_return.id}/tracking/'), {
            'carrier': 'pigeon', 'tracking_number': 'X1',
        }, format='json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_pending_return_conflicts(self, api_client, buyer, pending_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.post(returns_url(f'{pending_return.id}/tracking/'), {
            'tracking_number': 'X1',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT


@pytest.mark.django_db
class TestSellerAddressEndpoint:

    def test_buyer_sees_address_of_approved_return(
        self, api_client, buyer, approved_return, seller_address
    ):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(f'{approved_return.id}/seller-address/'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['name'] == 'Mihai Seller'
        assert response.data['postal_code'] == '400000'

    def test_pending_return_hides_address(self, api_client, buyer, pending_return, seller_address):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(f'{pending_return.id}/seller-address/'))

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_only_buyer(self, api_client, other_user, approved_return, seller_address):
        api_client.force_authenticate(user=other_user)

        response = api_client.get(returns_url(f'{approved_return.id}/seller-address/'))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_missing_address(self, api_client, buyer, approved_return):
        api_client.force_authenticate(user=buyer)

        response = api_client.get(returns_url(f'{approved_return.id}/seller-address/'))

        assert response.status_code == status.HTTP_404_NOT_FOUND


# =============================================================================
# REFUNDS, STAFF AND STATISTICS
# =============================================================================

@pytest.mark.django_db
class TestRefundList:

    def test_participants_see_their_refunds(self, api_client, buyer, seller, other_user, pending_return):
        api_client.force_authenticate(user=seller)
        api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
            'decision': 'partial_refund', 'amount': '30',
        }, format='json')

        api_client.force_authenticate(user=buyer)
        response = api_client.get(returns_url('refunds/'))
        assert response.status_code == status.HTTP_200_OK
        assert [r['amount'] for r in response.data] == ['30.00']

        api_client.force_authenticate(user=other_user)
        assert api_client.get(returns_url('refunds/')).data == []

    def test_staff_see_all_refunds(self, api_client, staff_user, seller, pending_return):
        api_client.force_authenticate(user=seller)
        api_client.post(returns_url(f'{pending_return.id}/resolve/'), {
            'decision': 'full_refund',
        }, format='json')

        api_client.force_authenticate(user=staff_user)
        response = api_client.get(returns_url('refunds/'))

        assert len(response.data) == 1


@pytest.mark.django_db
class TestAdminEndpoints:

    def test_non_staff_forbidden(self, api_client, seller):
        api_client.force_authenticate(user=seller)

        response = api_client.get(returns_url('admin/'))

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_list_with_status_filter(self, api_client, staff_user, make_order, make_return):
        make_return(make_order(), status='pending')
        approved = make_return(make_order(), status='approved')
        api_client.force_authenticate(user=staff_user)

        response = api_client.get(returns_url('admin/'), {'status': 'approved'})

        assert response.status_code == status.HTTP_200_OK
        assert [r['id'] for r in response.data['results']] == [str(approved.id)]

    def test_search_by_reason(self, api_client, staff_user, make_order, make_return):
        make_return(make_order(), reason='Defective product')
        damaged = make_return(make_order(), reason='Damaged in transit')
        api_client.force_authenticate(user=staff_user)

        response = api_client.get(returns_url('admin/'), {'search': 'transit'})

        assert [r['id'] for r in response.data['results']] == [str(damaged.id)]

    def test_staff_cancel(self, api_client, staff_user, pending_return):
        api_client.force_authenticate(user=staff_user)

        response = api_client.post(returns_url(f'admin/{pending_return.id}/update/'), {
            'decision': 'cancel', 'admin_notes': 'Buyer asked by phone',
        }, format='json')

        assert response.status_code == status.HTTP_200_OK
        assert response.data['return_request']['status'] == 'cancelled'
        assert response.data['return_request']['admin_notes'] == 'Buyer asked by phone'

    def test_staff_cancel_of_terminal_return(self, api_client, staff_user, make_return, order):
        completed = make_return(order, status='completed')
        api_client.force_authenticate(user=staff_user)

        response = api_client.post(returns_url(f'admin/{completed.id}/update/'), {
            'decision': 'cancel',
        }, format='json')

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_seller_cannot_use_admin_update(self, api_client, seller, pending_return):
        api_client.force_authenticate(user=seller)

        response = api_client.post(returns_url(f'admin/{pending_return.id}/update/'), {
            'decision': 'cancel',
        }, format='json')

        assert response.status_code == status.HTTP_403_FORBIDDEN


@pytest.mark.django_db
class TestStatistics:

    def test_counts_for_participant(self, api_client, seller, other_user, make_order, make_return):
        make_return(make_order(), status='pending')
        make_return(make_order(), status='approved')
        refunded = make_return(make_order(), status='refunded_no_return')
        ReturnRequest.objects.filter(pk=refunded.pk).update(refund_amount=Decimal('40.00'))

        api_client.force_authenticate(user=seller)
        response = api_client.get(returns_url('statistics/'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['total_returns'] == 3
        assert response.data['pending_count'] == 1
        assert response.data['approved_count'] == 1
        assert response.data['refunded_count'] == 1
        assert response.data['by_status'] == {'pending': 1, 'approved': 1, 'refunded_no_return': 1}
        assert response.data['total_refund_amount'] == Decimal('40.00')

        api_client.force_authenticate(user=other_user)
        assert api_client.get(returns_url('statistics/')).data['total_returns'] == 0


@pytest.mark.django_db
class TestMyOrders:

    def test_orders_by_role(self, api_client, buyer, seller, order):
        api_client.force_authenticate(user=buyer)
        bought = api_client.get('/api/marketplace/orders/', {'role': 'buyer'})
        assert [o['id'] for o in bought.data] == [str(order.id)]
        assert bought.data[0]['is_returnable'] is True
        assert bought.data[0]['listing']['primary_image'] == 'https://cdn.test/jacket-front.jpg'

        api_client.force_authenticate(user=seller)
        sold = api_client.get('/api/marketplace/orders/', {'role': 'seller'})
        assert [o['id'] for o in sold.data] == [str(order.id)]
        assert api_client.get('/api/marketplace/orders/', {'role': 'buyer'}).data == []
