from django.urls import path, include, re_path
from rest_framework.routers import DefaultRouter
from . import views
from .views import UserViewSet, health_check

router = DefaultRouter()
router.register(r'users', UserViewSet, basename='user')

urlpatterns = [
    # ==================== USER MANAGEMENT ====================
    path('profile/', views.profile_view, name='profile'),
    path('', include(router.urls)),

    # ==================== AUTHENTICATION ENDPOINTS ====================
    re_path(r'^login/?$', views.login_view, name='login'),
    re_path(r'^logout/?$', views.logout_view, name='logout'),

    # ==================== HEALTH CHECK ====================
    path('health-check/', health_check, name='health_check'),
]
