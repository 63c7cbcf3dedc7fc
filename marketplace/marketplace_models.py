"""
Marketplace Models

Listings, orders and saved addresses of the consumer-to-consumer marketplace.

Ownership Model:
- Listings and orders reference the selling user directly (seller)
- Orders also reference the buying user (buyer)
- Views filter querysets by request.user so a participant only sees
  orders and returns they take part in
"""

from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator
from decimal import Decimal
import uuid


class Listing(models.Model):
    """
    A product listed for sale by a seller.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='listings'
    )
    title = models.CharField(max_length=200)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    is_active = models.BooleanField(default=True)
    is_sold = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'marketplace_listings'
        ordering = ['-created_at']

    def __str__(self):
        return self.title

    @property
    def primary_image_url(self):
        """URL of the primary image, falling back to the first uploaded one."""
        images = list(self.images.all())
        for image in images:
            if image.is_primary:
                return image.image_url
        return images[0].image_url if images else None


class ListingImage(models.Model):
    listing = models.ForeignKey(
        Listing,
        on_delete=models.CASCADE,
        related_name='images'
    )
    image_url = models.URLField(max_length=500)
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'marketplace_listing_images'
        ordering = ['created_at']

    def __str__(self):
        return f"Image for {self.listing_id}"


class Order(models.Model):
    """
    A purchase of one listing by a buyer.

    Refund fields are written by the returns workflow only.
    """
    STATUS_CHOICES = [
        ('pending', 'Pending Payment'),
        ('paid', 'Paid'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('refunded', 'Refunded'),
        ('partially_refunded', 'Partially Refunded'),
    ]

    # Orders a buyer may file a return against
    RETURNABLE_STATUSES = ['paid', 'shipped', 'delivered', 'completed']

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    listing = models.ForeignKey(
        Listing,
        on_delete=models.PROTECT,
        related_name='orders'
    )
    buyer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='purchases'
    )
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='sales'
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))]
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending')

    # Refund
    refund_amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        null=True,
        blank=True
    )
    refunded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'marketplace_orders'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['buyer', '-created_at'], name='mkt_order_buyer_idx'),
            models.Index(fields=['seller', '-created_at'], name='mkt_order_seller_idx'),
            models.Index(fields=['status', '-created_at'], name='mkt_order_status_idx'),
        ]

    def __str__(self):
        return f"Order {self.id} - {self.amount}"

    @property
    def is_returnable(self):
        return self.status in self.RETURNABLE_STATUSES


class SavedAddress(models.Model):
    """
    Shipping address saved on a user profile.

    A seller's default address doubles as the return address shown to buyers.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='saved_addresses'
    )
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    address = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=20)
    phone = models.CharField(max_length=30, blank=True)
    is_default = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'marketplace_saved_addresses'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.first_name} {self.last_name}, {self.city}"
