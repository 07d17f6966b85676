from django.urls import path
from .views import product_list_create, product_detail, product_search, product_variants

urlpatterns = [
    path('products/', product_list_create, name='product-list-create'),
    path('products/search/<str:query>/', product_search, name='product-search'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
    path('products/<int:pk>/variants/', product_variants, name='product-variants'),
]
