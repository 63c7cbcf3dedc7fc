"""
API views for Returns and Refunds functionality.
Provides endpoints for buyers to file and ship returns, for sellers to decide
on them, and for staff to oversee everything.

Every mutating endpoint answers with a `notification` payload ({title,
description, variant}) for the acting user. Workflow failures map to
400 (validation), 409 (conflict) and 503 (transport).
"""

from django.db.models import Count, Q, Sum
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, permissions, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError
from rest_framework.response import Response
import logging

from .marketplace_models import Order
from .returns_presenters import BUYER, SELLER, ROLES, ReturnCardPresenter
from .returns_queries import (
    fetch_refunds_for_user, fetch_returns_for_user, fetch_seller_return_address,
    returns_queryset,
)
from .returns_refunds_models import RefundRecord, ReturnRequest
from .returns_refunds_serializers import (
    AddTrackingSerializer, AdminReturnRequestSerializer, AdminUpdateSerializer,
    RefundRecordSerializer, ResolveReturnSerializer, ReturnRequestCreateSerializer,
    SavedAddressSerializer,
)
from .returns_resolution import ResolutionErrorKind, ReturnResolutionService
from .returns_safety import (
    PENDING, APPROVED, REJECTED, COMPLETED, REFUNDED_NO_RETURN, CANCELLED,
)

logger = logging.getLogger(__name__)


ERROR_STATUS = {
    ResolutionErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ResolutionErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ResolutionErrorKind.TRANSPORT: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def is_authorized_staff(user):
    return bool(user and user.is_authenticated and (user.is_staff or user.is_superuser))


def present_card(return_request, role):
    """Card for `role`, with the seller address attached where the buyer needs it."""
    address = None
    if role == BUYER and return_request.status == APPROVED:
        address = fetch_seller_return_address(return_request.seller_id)
    return ReturnCardPresenter(return_request, role, seller_address=address).present()


def result_response(result, render, success_status=status.HTTP_200_OK):
    """
    Turn a ResolutionResult into a Response.

    `render` builds the `return_request` payload from the updated instance.
    """
    if not result.ok:
        body = {
            'error': result.message,
            'error_kind': result.error_kind.value,
            'notification': result.toast.to_dict(),
        }
        if result.field_errors:
            body['errors'] = result.field_errors
        return Response(body, status=ERROR_STATUS[result.error_kind])

    body = {
        'message': result.toast.title,
        'notification': result.toast.to_dict(),
        'return_request': render(result.return_request),
    }
    if result.refund is not None:
        body['refund'] = RefundRecordSerializer(result.refund).data
    return Response(body, status=success_status)


def _get_return(return_id):
    return get_object_or_404(returns_queryset(), id=return_id)


# ==============================================================================
# PARTICIPANT ENDPOINTS
# ==============================================================================

class ReturnRequestListCreateView(generics.GenericAPIView):
    """
    List the current user's returns as cards or file a new return.

    GET /api/returns/?role=buyer|seller
    POST /api/returns/ {order_id, reason, description}
    """
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = ReturnRequestCreateSerializer

    def get(self, request):
        role = request.query_params.get('role', BUYER)
        if role not in ROLES:
            raise ValidationError({'role': f"Must be one of: {', '.join(ROLES)}"})
        return Response(fetch_returns_for_user(request.user, role))

    def post(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = Order.objects.get(id=serializer.validated_data['order_id'])
        result = ReturnResolutionService(request.user).file_return(
            order,
            serializer.validated_data['reason'],
            serializer.validated_data.get('description', ''),
        )
        return result_response(
            result, lambda r: present_card(r, BUYER), success_status=status.HTTP_201_CREATED
        )


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def return_detail(request, return_id):
    """
    One return as seen by its buyer or seller. Staff get the flat admin row.
    """
    return_request = _get_return(return_id)
    role = return_request.role_of(request.user)

    if role is None:
        if is_authorized_staff(request.user):
            return Response(AdminReturnRequestSerializer(return_request).data)
        raise PermissionDenied("You do not have permission to view this return request.")

    return Response(present_card(return_request, role))


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def seller_return_address(request, return_id):
    """
    Where the buyer ships an approved return.

    Only the buyer of the return may see it, and only once it is approved.
    """
    return_request = _get_return(return_id)

    if return_request.buyer_id != request.user.pk:
        raise PermissionDenied("Only the buyer can view the return address.")

    if return_request.status != APPROVED:
        return Response(
            {'error': 'The return address is available once the seller approves the return.'},
            status=status.HTTP_409_CONFLICT
        )

    address = fetch_seller_return_address(return_request.seller_id)
    if address is None:
        raise NotFound("The seller has not saved a return address yet.")

    return Response(SavedAddressSerializer(address).data)


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def resolve_return(request, return_id):
    """
    Apply a seller decision: approve, reject, full_refund, partial_refund or
    mark_received.

    Only the seller of the order can decide; staff use the admin endpoint.
    """
    return_request = _get_return(return_id)

    if return_request.seller_id != request.user.pk:
        raise PermissionDenied("You do not have permission to process this return request.")

    serializer = ResolveReturnSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = ReturnResolutionService(request.user).resolve(
        return_request,
        data['decision'],
        note=data.get('note', ''),
        amount=data.get('amount'),
        expected_version=data.get('version'),
    )
    return result_response(result, lambda r: present_card(r, SELLER))


@api_view(['POST'])
@permission_classes([permissions.IsAuthenticated])
def add_return_tracking(request, return_id):
    """
    Buyer submits the tracking number of the return shipment.
    """
    return_request = _get_return(return_id)

    if return_request.buyer_id != request.user.pk:
        raise PermissionDenied("Only the buyer can add return tracking.")

    serializer = AddTrackingSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = ReturnResolutionService(request.user).submit_tracking(
        return_request,
        data['tracking_number'],
        carrier=data.get('carrier', ''),
        expected_version=data.get('version'),
    )
    return result_response(result, lambda r: present_card(r, BUYER))


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def refund_list(request):
    """
    Refund records where the current user is buyer or seller.

    Staff see every refund record.
    """
    if is_authorized_staff(request.user):
        queryset = RefundRecord.objects.select_related(
            'order', 'order__listing'
        ).order_by('-created_at')
        return Response(RefundRecordSerializer(queryset, many=True).data)

    return Response(fetch_refunds_for_user(request.user))


# ==============================================================================
# STAFF ENDPOINTS
# ==============================================================================

class AdminReturnListView(generics.ListAPIView):
    """
    All return requests, for staff.

    GET /api/returns/admin/

    Query Parameters:
    - status: Filter by status
    - search: Search in id, reason, listing title, buyer or seller username
    """
    permission_classes = [permissions.IsAdminUser]
    serializer_class = AdminReturnRequestSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status']
    search_fields = [
        'id', 'reason', 'order__listing__title', 'buyer__username', 'seller__username'
    ]
    ordering_fields = ['created_at', 'updated_at', 'status']
    ordering = ['-created_at']

    def get_queryset(self):
        return ReturnRequest.objects.select_related(
            'order', 'order__listing', 'buyer', 'seller'
        )


@api_view(['POST'])
@permission_classes([permissions.IsAdminUser])
def admin_update_return(request, return_id):
    """
    Staff decision on any return, including cancel. Notes go to admin_notes.
    """
    return_request = _get_return(return_id)

    serializer = AdminUpdateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = ReturnResolutionService(request.user, as_staff=True).resolve(
        return_request,
        data['decision'],
        note=data.get('admin_notes', ''),
        amount=data.get('amount'),
        expected_version=data.get('version'),
    )
    if result.ok:
        logger.info(
            f"Staff {request.user.pk} applied {data['decision']} to return {return_id}"
        )
    return result_response(result, lambda r: AdminReturnRequestSerializer(r).data)


@api_view(['GET'])
@permission_classes([permissions.IsAuthenticated])
def return_statistics(request):
    """
    Get statistics about returns for the current user's context.

    Returns counts by status and the total refunded amount. Staff see the
    whole platform.
    """
    user = request.user

    queryset = ReturnRequest.objects.all()
    if not is_authorized_staff(user):
        queryset = queryset.filter(Q(buyer=user) | Q(seller=user))

    stats = {
        'total_returns': queryset.count(),
        'by_status': {},
        'total_refund_amount': queryset.filter(
            status__in=[COMPLETED, REFUNDED_NO_RETURN]
        ).aggregate(total=Sum('refund_amount'))['total'] or 0,
        'pending_count': queryset.filter(status=PENDING).count(),
        'approved_count': queryset.filter(status=APPROVED).count(),
        'completed_count': queryset.filter(status=COMPLETED).count(),
        'refunded_count': queryset.filter(status=REFUNDED_NO_RETURN).count(),
        'rejected_count': queryset.filter(status=REJECTED).count(),
        'cancelled_count': queryset.filter(status=CANCELLED).count(),
    }

    status_counts = queryset.values('status').annotate(count=Count('id'))
    for item in status_counts:
        stats['by_status'][item['status']] = item['count']

    return Response(stats, status=status.HTTP_200_OK)
