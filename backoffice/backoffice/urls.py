"""
URL configuration for the back-office API.

Each app exposes its JSON endpoints under its own prefix; see the app's urls.py.
"""
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),
    path('', include('core.urls')),
    path('auth/', include('accounts.urls')),
    path('passwords/', include('vault.urls')),
    path('agent-passwords/', include('vault.agent_urls')),
    path('noc/', include('noc.urls')),
    path('upload/', include('uploads.urls')),
    path('watermarks/', include('watermarks.urls')),
    path('activity-logs/', include('activity.urls')),
    path('properties/drafts/', include('properties.urls')),
    path('', include('django_prometheus.urls')),  # /metrics endpoint
]
