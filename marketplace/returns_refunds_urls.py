"""
URL configuration for Returns and Refunds API endpoints.
"""

from django.urls import path
from .returns_refunds_views import (
    ReturnRequestListCreateView,
    AdminReturnListView,
    return_detail,
    seller_return_address,
    resolve_return,
    add_return_tracking,
    refund_list,
    admin_update_return,
    return_statistics,
)

app_name = 'returns_refunds'

urlpatterns = [
    # Return request management
    path('', ReturnRequestListCreateView.as_view(), name='return-list-create'),
    path('<uuid:return_id>/', return_detail, name='return-detail'),
    path('<uuid:return_id>/seller-address/', seller_return_address, name='return-seller-address'),
    path('<uuid:return_id>/resolve/', resolve_return, name='return-resolve'),
    path('<uuid:return_id>/tracking/', add_return_tracking, name='return-tracking'),

    # Refunds
    path('refunds/', refund_list, name='refund-list'),

    # Staff back office
    path('admin/', AdminReturnListView.as_view(), name='admin-return-list'),
    path('admin/<uuid:return_id>/update/', admin_update_return, name='admin-return-update'),

    # Statistics
    path('statistics/', return_statistics, name='return-statistics'),
]
