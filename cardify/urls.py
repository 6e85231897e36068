"""
URL configuration for the cardify project.

Every app exposes JSON endpoints under /api/; the Django admin stays at
/admin/ for staff housekeeping (products, orders, payments).
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

urlpatterns = [
    path('admin/', admin.site.urls),

    path('api/', include('userprofile.urls', namespace='userprofile')),
    path('api/', include('shop.urls', namespace='shop')),
    path('api/', include('cart.urls', namespace='cart')),
    path('api/', include('marketplace.urls', namespace='marketplace')),
    path('api/', include('credits.urls', namespace='credits')),
    path('api/', include('generation.urls', namespace='generation')),
    path('api/admin/', include('backoffice.urls', namespace='backoffice')),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
