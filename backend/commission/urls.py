from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import BonusAllocationViewSet, BonusPoolViewSet

router = DefaultRouter()
router.register(r'bonus-pools', BonusPoolViewSet, basename='bonus-pool')
router.register(r'allocations', BonusAllocationViewSet, basename='allocation')

urlpatterns = [
    path('', include(router.urls)),
]
