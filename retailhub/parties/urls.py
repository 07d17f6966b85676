from django.urls import path
from .views import (
    supplier_list_create, supplier_detail, supplier_search, supplier_balance, supplier_balance_by_name,
    customer_list_create, customer_detail,
)

urlpatterns = [
    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/search/<str:query>/', supplier_search, name='supplier-search'),
    path('suppliers/by-name/<str:name>/balance/', supplier_balance_by_name, name='supplier-balance-by-name'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),
    path('suppliers/<int:pk>/balance/', supplier_balance, name='supplier-balance'),

    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
]
