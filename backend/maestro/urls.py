"""
URL configuration for the maestro project.

Every app mounts its router under ``/api/``; the API schema is served at
``/swagger/`` and ``/redoc/``.
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions

schema_view = get_schema_view(
    openapi.Info(
        title="Maestro Back Office API",
        default_version='v1',
        description="Client intake, verification, commission and settlement",
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
    authentication_classes=[],
)

api_urlpatterns = [
    path('auth/', include('authentication.urls')),
    path('', include('clients.urls')),
    path('', include('todos.urls')),
    path('', include('commission.urls')),
    path('', include('partners.urls')),
    path('', include('funds.urls')),
    path('', include('notifications.urls')),
    path('', include('backoffice.urls')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # Main API endpoints
    path('api/', include(api_urlpatterns)),

    # API documentation
    path('swagger<format>/', schema_view.without_ui(cache_timeout=0), name='schema-json'),
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0), name='schema-swagger-ui'),
    path('redoc/', schema_view.with_ui('redoc', cache_timeout=0), name='schema-redoc'),
]

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
