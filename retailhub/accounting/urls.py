from django.urls import path
from .views import (
    account_list_create, payment_account_list, payment_list_create,
    supplier_balances, customer_balances, balance_summary,
)

urlpatterns = [
    path('accounting/accounts/', account_list_create, name='account-list-create'),
    path('accounting/accounts/payment-accounts/', payment_account_list, name='payment-account-list'),
    path('accounting/payments/', payment_list_create, name='payment-list-create'),
    path('accounting/balances/suppliers/', supplier_balances, name='supplier-balances'),
    path('accounting/balances/customers/', customer_balances, name='customer-balances'),
    path('accounting/balances/summary/', balance_summary, name='balance-summary'),
]
