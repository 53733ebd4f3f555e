from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    ApplicationDraftViewSet,
    ClientViewSet,
    EventLogViewSet,
    ExtensionRequestViewSet,
    PhoneAssignmentViewSet,
)

router = DefaultRouter()
router.register(r'clients', ClientViewSet, basename='client')
router.register(r'drafts', ApplicationDraftViewSet, basename='draft')
router.register(r'extension-requests', ExtensionRequestViewSet, basename='extension-request')
router.register(r'phone-assignments', PhoneAssignmentViewSet, basename='phone-assignment')
router.register(r'events', EventLogViewSet, basename='event')

urlpatterns = [
    path('', include(router.urls)),
]
