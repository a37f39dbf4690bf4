from django.urls import path
from rest_framework.routers import DefaultRouter

from apps.storeconfig.views import AdminSettingsView, DashboardContentViewSet, SettingViewSet

router = DefaultRouter()
router.register("settings", SettingViewSet, basename="setting")
router.register("dashboard-content", DashboardContentViewSet, basename="dashboard-content")

urlpatterns = [
    path("admin-settings/", AdminSettingsView.as_view(), name="admin-settings"),
]
urlpatterns += router.urls
