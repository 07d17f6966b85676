"""
URL configuration for the retailhub project.

Every app mounts its function views under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "RetailHub Admin Panel"
admin.site.site_title = "RetailHub Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('retailhub.core.urls')),
    path('api/v1/', include('retailhub.catalog.urls')),
    path('api/v1/', include('retailhub.parties.urls')),
    path('api/v1/', include('retailhub.accounting.urls')),
    path('api/v1/', include('retailhub.purchasing.urls')),
    path('api/v1/', include('retailhub.orders.urls')),
]
