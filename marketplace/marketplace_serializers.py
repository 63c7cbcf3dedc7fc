"""
Marketplace Serializers

Serializers for listings and orders as seen by their buyer or seller, and
for the in-app notifications of the current user.
"""

from rest_framework import serializers
from .marketplace_models import Listing, Order
from .models import Notification


class ListingSummarySerializer(serializers.ModelSerializer):
    """Lightweight listing embedded in order rows."""

    primary_image = serializers.CharField(source='primary_image_url', read_only=True)

    class Meta:
        model = Listing
        fields = ['id', 'title', 'price', 'primary_image', 'is_active', 'is_sold']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """
    Order row for the buyer's purchases and the seller's sales.

    `is_returnable` tells the buyer whether a return can be filed.
    """
    listing = ListingSummarySerializer(read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    is_returnable = serializers.BooleanField(read_only=True)

    class Meta:
        model = Order
        fields = [
            'id', 'listing', 'buyer', 'seller', 'amount',
            'status', 'status_display', 'is_returnable',
            'refund_amount', 'refunded_at', 'created_at', 'updated_at'
        ]
        read_only_fields = fields


class NotificationSerializer(serializers.ModelSerializer):
    """In-app notification for the bell menu."""

    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'variant', 'data', 'is_read', 'created_at']
        read_only_fields = fields
