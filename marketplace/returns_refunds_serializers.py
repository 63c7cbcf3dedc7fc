"""
Serializers for Returns and Refunds functionality.
Input validation for return actions and output for refund records and addresses.
Return cards themselves are built by returns_presenters.ReturnCardPresenter.
"""

from rest_framework import serializers

from .marketplace_models import Order, SavedAddress
from .returns_refunds_models import RefundRecord, ReturnReason, ReturnRequest
from .returns_resolution import ReturnDecision
from .returns_tracking import CARRIERS


class RefundRecordSerializer(serializers.ModelSerializer):
    """Serializer for refund records."""

    listing_title = serializers.CharField(source='order.listing.title', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = RefundRecord
        fields = [
            'id', 'order', 'return_request', 'listing_title', 'buyer', 'seller',
            'requested_by', 'amount', 'reason', 'status', 'status_display',
            'processor_refund_id', 'completed_at', 'created_at'
        ]
        read_only_fields = fields


class AdminReturnRequestSerializer(serializers.ModelSerializer):
    """Flat return row for the staff back office."""

    order_amount = serializers.DecimalField(
        source='order.amount', max_digits=12, decimal_places=2, read_only=True
    )
    order_status = serializers.CharField(source='order.status', read_only=True)
    listing_title = serializers.CharField(source='order.listing.title', read_only=True)
    buyer_username = serializers.CharField(source='buyer.username', read_only=True)
    seller_username = serializers.CharField(source='seller.username', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = ReturnRequest
        fields = [
            'id', 'version', 'order', 'order_amount', 'order_status', 'listing_title',
            'buyer', 'buyer_username', 'seller', 'seller_username',
            'status', 'status_display', 'reason', 'description', 'tracking_number',
            'refund_amount', 'seller_notes', 'admin_notes',
            'created_at', 'updated_at', 'resolved_at'
        ]
        read_only_fields = fields


class SavedAddressSerializer(serializers.ModelSerializer):
    """Seller return address as shown to the buyer."""

    name = serializers.SerializerMethodField()

    class Meta:
        model = SavedAddress
        fields = ['id', 'name', 'first_name', 'last_name', 'address', 'city', 'postal_code', 'phone']
        read_only_fields = fields

    def get_name(self, obj):
        return f"{obj.first_name} {obj.last_name}".strip()


class ReturnRequestCreateSerializer(serializers.Serializer):
    """Serializer for filing a new return request."""

    order_id = serializers.UUIDField()
    reason = serializers.ChoiceField(choices=ReturnReason.choices)
    description = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_order_id(self, value):
        """Ensure the order exists and belongs to the requesting buyer."""
        request = self.context.get('request')
        if not request:
            raise serializers.ValidationError("Request context required.")

        try:
            order = Order.objects.get(id=value)
        except Order.DoesNotExist:
            raise serializers.ValidationError("Order not found.")

        if order.buyer_id != request.user.pk:
            raise serializers.ValidationError("You can only request returns for your own orders.")

        return value


class ResolveReturnSerializer(serializers.Serializer):
    """
    Serializer for a seller decision.

    `amount` is kept as text; parsing and bounds checks belong to the
    resolution service so the error shape matches every other caller.
    """

    decision = serializers.ChoiceField(choices=ReturnDecision.choices)
    note = serializers.CharField(required=False, allow_blank=True, default='')
    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    version = serializers.IntegerField(required=False, min_value=1)


class AdminUpdateSerializer(serializers.Serializer):
    """Serializer for a staff decision."""

    decision = serializers.ChoiceField(choices=ReturnDecision.choices)
    admin_notes = serializers.CharField(required=False, allow_blank=True, default='')
    amount = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)
    version = serializers.IntegerField(required=False, min_value=1)


class AddTrackingSerializer(serializers.Serializer):
    """Serializer for the buyer's return shipment tracking."""

    carrier = serializers.ChoiceField(choices=CARRIERS, required=False, allow_blank=True, default='')
    tracking_number = serializers.CharField(max_length=100)
    version = serializers.IntegerField(required=False, min_value=1)

    def validate_tracking_number(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Tracking number is required.")
        return value


