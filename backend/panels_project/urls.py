from django.contrib import admin
from django.urls import include, path

API_PREFIX = 'api/observability/operational_panels/'

urlpatterns = [
    path('admin/', admin.site.urls),
    path(API_PREFIX, include('panels.urls')),
]
