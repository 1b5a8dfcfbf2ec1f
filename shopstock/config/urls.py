"""
URL configuration for the shopstock project.

Every app exposes its endpoints under /api/v1/.
"""
from django.contrib import admin
from django.urls import path, include

admin.site.site_header = "Shopstock Admin Panel"
admin.site.site_title = "Shopstock Admin Portal"
admin.site.index_title = "Inventory, purchasing and TPOS sync"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('shopstock.core.urls')),
    path('api/v1/', include('shopstock.catalog.urls')),
    path('api/v1/', include('shopstock.purchasing.urls')),
    path('api/v1/', include('shopstock.receiving.urls')),
    path('api/v1/', include('shopstock.tpos.urls')),
]
