from django.contrib import admin

from apps.storeconfig.models import AdminSettings, DashboardContent, Setting


@admin.register(Setting)
class SettingAdmin(admin.ModelAdmin):
    list_display = ("key", "value", "description", "updated_at")
    search_fields = ("key", "description")


@admin.register(AdminSettings)
class AdminSettingsAdmin(admin.ModelAdmin):
    list_display = ("business_name", "admin_name", "admin_phone", "updated_at")


@admin.register(DashboardContent)
class DashboardContentAdmin(admin.ModelAdmin):
    list_display = ("key", "type", "updated_at")
    search_fields = ("key", "value")
