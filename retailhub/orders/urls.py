from django.urls import path
from .views import (
    order_list_create, order_detail, order_confirm, order_dispatch, order_verify_payment,
    order_status_update, order_stats,
)

urlpatterns = [
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/stats/', order_stats, name='order-stats'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/confirm/', order_confirm, name='order-confirm'),
    path('orders/<int:pk>/dispatch/', order_dispatch, name='order-dispatch'),
    path('orders/<int:pk>/verify-payment/', order_verify_payment, name='order-verify-payment'),
    path('orders/<int:pk>/status/', order_status_update, name='order-status-update'),
]
