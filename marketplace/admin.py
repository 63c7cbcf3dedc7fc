from django.contrib import admin

from .marketplace_models import Listing, ListingImage, Order, SavedAddress
from .models import Notification
from .returns_refunds_models import RefundRecord, ReturnAuditLog, ReturnRequest


class ListingImageInline(admin.TabularInline):
    model = ListingImage
    extra = 0


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ['title', 'seller', 'price', 'is_active', 'is_sold', 'created_at']
    list_filter = ['is_active', 'is_sold', 'created_at']
    search_fields = ['title', 'seller__username']
    inlines = [ListingImageInline]


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'listing', 'buyer', 'seller', 'amount', 'status', 'refund_amount', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'listing__title', 'buyer__username', 'seller__username']
    readonly_fields = ['refund_amount', 'refunded_at', 'created_at', 'updated_at']


@admin.register(SavedAddress)
class SavedAddressAdmin(admin.ModelAdmin):
    list_display = ['user', 'first_name', 'last_name', 'city', 'postal_code', 'is_default']
    list_filter = ['is_default']
    search_fields = ['user__username', 'last_name', 'city', 'postal_code']


@admin.register(ReturnRequest)
class ReturnRequestAdmin(admin.ModelAdmin):
    """
    Read-mostly view of returns. Status changes go through the returns API so
    refund records, orders and versions stay consistent.
    """
    list_display = [
        'id',
        'order',
        'buyer',
        'seller',
        'status',
        'refund_amount',
        'tracking_number',
        'created_at',
        'resolved_at'
    ]
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'reason', 'buyer__username', 'seller__username', 'tracking_number']
    readonly_fields = [
        'order',
        'buyer',
        'seller',
        'status',
        'refund_amount',
        'version',
        'created_at',
        'updated_at',
        'resolved_at'
    ]
    date_hierarchy = 'created_at'

    fieldsets = (
        ('Request', {
            'fields': ('order', 'buyer', 'seller', 'reason', 'description')
        }),
        ('Resolution', {
            'fields': ('status', 'refund_amount', 'tracking_number', 'seller_notes', 'admin_notes')
        }),
        ('Tracking Information', {
            'fields': ('version', 'created_at', 'updated_at', 'resolved_at'),
            'classes': ('collapse',)
        }),
    )


@admin.register(RefundRecord)
class RefundRecordAdmin(admin.ModelAdmin):
    list_display = ['processor_refund_id', 'order', 'buyer', 'seller', 'amount', 'status', 'completed_at']
    list_filter = ['status', 'created_at']
    search_fields = ['processor_refund_id', 'reason', 'buyer__username', 'seller__username']
    readonly_fields = [f.name for f in RefundRecord._meta.fields]


@admin.register(ReturnAuditLog)
class ReturnAuditLogAdmin(admin.ModelAdmin):
    list_display = ['operation', 'return_request', 'user', 'created_at']
    list_filter = ['operation', 'created_at']
    search_fields = ['return_request__id', 'user__username']
    readonly_fields = [f.name for f in ReturnAuditLog._meta.fields]


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ['user', 'type', 'title', 'variant', 'is_read', 'created_at']
    list_filter = ['type', 'variant', 'is_read']
    search_fields = ['user__username', 'title', 'message']
