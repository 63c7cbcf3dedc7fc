"""
Marketplace Views

Order listings and in-app notifications for the current user. Orders are read
through the cached collections in returns_queries so a refund decision shows
up immediately.
"""

from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response
from rest_framework.views import APIView
import logging

from .marketplace_serializers import NotificationSerializer
from .models import Notification
from .returns_presenters import BUYER, ROLES
from .returns_queries import fetch_orders_for_user

logger = logging.getLogger(__name__)


class MyOrdersView(APIView):
    """
    Orders the current user bought or sold.

    GET /api/marketplace/orders/?role=buyer|seller
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        role = request.query_params.get('role', BUYER)
        if role not in ROLES:
            raise ValidationError({'role': f"Must be one of: {', '.join(ROLES)}"})

        orders = fetch_orders_for_user(request.user, role)

        status_param = request.query_params.get('status')
        if status_param:
            orders = [order for order in orders if order['status'] == status_param]

        return Response(orders)


# ==============================================================================
# NOTIFICATIONS
# ==============================================================================

class NotificationListView(generics.ListAPIView):
    """
    The current user's notifications, newest first.

    GET /api/marketplace/notifications/

    Query Parameters:
    - is_read: true / false
    - type: e.g. return_approved
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = NotificationSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['is_read', 'type']

    def get_queryset(self):
        return Notification.objects.filter(user=self.request.user).order_by('-created_at')


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def unread_notification_count(request):
    count = Notification.objects.filter(user=request.user, is_read=False).count()
    return Response({'unread_count': count})


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def mark_notification_read(request, notification_id):
    """Only the recipient can mark a notification read; anyone else gets 404."""
    notification = get_object_or_404(Notification, id=notification_id, user=request.user)
    notification.mark_as_read()
    return Response(NotificationSerializer(notification).data)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def mark_all_notifications_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    logger.debug(f"Marked {updated} notifications read for user {request.user.pk}")
    return Response({'updated': updated}, status=status.HTTP_200_OK)
