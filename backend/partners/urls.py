from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import PartnerViewSet, ProfitShareDetailViewSet, ProfitShareRuleViewSet

router = DefaultRouter()
router.register(r'partners', PartnerViewSet, basename='partner')
router.register(r'profit-share-rules', ProfitShareRuleViewSet, basename='profit-share-rule')
router.register(r'profit-shares', ProfitShareDetailViewSet, basename='profit-share')

urlpatterns = [
    path('', include(router.urls)),
]
