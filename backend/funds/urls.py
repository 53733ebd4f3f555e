from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import FundMovementViewSet, TransactionViewSet

router = DefaultRouter()
router.register(r'fund-movements', FundMovementViewSet, basename='fund-movement')
router.register(r'transactions', TransactionViewSet, basename='transaction')

urlpatterns = [
    path('', include(router.urls)),
]
