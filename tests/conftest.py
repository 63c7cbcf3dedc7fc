"""
Shared pytest fixtures for the returns workflow tests.
"""
import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model
from django.core.cache import cache
from rest_framework.test import APIClient

from marketplace.marketplace_models import Listing, ListingImage, Order, SavedAddress
from marketplace.returns_refunds_models import ReturnRequest

User = get_user_model()


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before and after each test to prevent pollution."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def buyer(db):
    return User.objects.create_user(
        username='buyer_test',
        email='buyer@test.com',
        password='testpass123',
        first_name='Ana',
        last_name='Buyer',
    )


@pytest.fixture
def seller(db):
    return User.objects.create_user(
        username='seller_test',
        email='seller@test.com',
        password='testpass123',
        first_name='Mihai',
        last_name='Seller',
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        username='stranger_test',
        email='stranger@test.com',
        password='testpass123',
    )


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(
        username='staff_test',
        email='staff@test.com',
        password='testpass123',
        is_staff=True,
    )


@pytest.fixture
def listing(seller):
    listing = Listing.objects.create(
        seller=seller,
        title='Vintage leather jacket',
        price=Decimal('100.00'),
    )
    ListingImage.objects.create(listing=listing, image_url='https://cdn.test/jacket-side.jpg')
    ListingImage.objects.create(
        listing=listing, image_url='https://cdn.test/jacket-front.jpg', is_primary=True
    )
    return listing


@pytest.fixture
def make_order(buyer, seller, listing):
    """Factory for orders of `listing` between `buyer` and `seller`."""
    def _make(amount='100.00', status='delivered'):
        return Order.objects.create(
            listing=listing,
            buyer=buyer,
            seller=seller,
            amount=Decimal(amount),
            status=status,
        )
    return _make


@pytest.fixture
def order(make_order):
    return make_order()


@pytest.fixture
def make_return(buyer, seller):
    """Factory for return requests, created directly in the given state."""
    def _make(order, status='pending', tracking_number='', reason='Defective product'):
        return ReturnRequest.objects.create(
            order=order,
            buyer=buyer,
            seller=seller,
            status=status,
            reason=reason,
            description='Zipper broken on arrival',
            tracking_number=tracking_number,
        )
    return _make


@pytest.fixture
def pending_return(make_return, order):
    return make_return(order)


@pytest.fixture
def approved_return(make_return, order):
    return make_return(order, status='approved')


@pytest.fixture
def seller_address(seller):
    return SavedAddress.objects.create(
        user=seller,
        first_name='Mihai',
        last_name='Seller',
        address='Strada Lunga 12',
        city='Cluj-Napoca',
        postal_code='400000',
        phone='+40700000000',
        is_default=True,
    )
