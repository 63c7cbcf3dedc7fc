"""
Marketplace URL Configuration

Endpoint Structure:
- /api/marketplace/orders/                          - Orders of the current user (?role=buyer|seller)
- /api/marketplace/notifications/                   - Notifications of the current user
- /api/marketplace/notifications/unread-count/      - Unread badge count
- /api/marketplace/notifications/read-all/          - Mark every notification read
- /api/marketplace/notifications/<uuid>/read/       - Mark one notification read
"""

from django.urls import path
from .marketplace_views import (
    MyOrdersView, NotificationListView, mark_all_notifications_read,
    mark_notification_read, unread_notification_count,
)

app_name = 'marketplace'

urlpatterns = [
    path('orders/', MyOrdersView.as_view(), name='my-orders'),
    path('notifications/', NotificationListView.as_view(), name='notification-list'),
    path('notifications/unread-count/', unread_notification_count, name='notification-unread-count'),
    path('notifications/read-all/', mark_all_notifications_read, name='notification-read-all'),
    path('notifications/<uuid:notification_id>/read/', mark_notification_read, name='notification-read'),
]
