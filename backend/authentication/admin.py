from django.contrib import admin
from .models import User


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('email', 'first_name', 'last_name', 'role', 'tier', 'star_level', 'supervisor', 'is_active')
    list_filter = ('role', 'tier', 'is_active', 'is_staff')
    search_fields = ('first_name', 'last_name', 'email', 'phone')
    ordering = ('first_name', 'last_name')
    raw_id_fields = ('supervisor',)
