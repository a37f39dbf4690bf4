from rest_framework import mixins, status, viewsets
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.audit.services import record_audit
from apps.common.permissions import IsAdminOrReadOnly, RolePermission, has_capability
from apps.storeconfig.models import AdminSettings, DashboardContent, Setting
from apps.storeconfig.serializers import AdminSettingsSerializer, DashboardContentSerializer, SettingSerializer
from apps.storeconfig.services import upsert_setting


class SettingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    serializer_class = SettingSerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = None
    lookup_field = "key"
    lookup_value_regex = "[^/]+"

    def get_queryset(self):
        queryset = Setting.objects.all()
        if not has_capability(self.request.user, "settings.manage"):
            queryset = queryset.exclude(key__endswith="Cost")
        return queryset

    def create(self, request, *args, **kwargs):
        many = isinstance(request.data, list)
        serializer = self.get_serializer(data=request.data, many=many)
        serializer.is_valid(raise_exception=True)
        rows = serializer.validated_data if many else [serializer.validated_data]

        saved = []
        any_created = False
        for row in rows:
            setting, created = upsert_setting(row["key"], row.get("value", ""), row.get("description"))
            any_created = any_created or created
            saved.append(setting)

        record_audit(
            actor=request.user,
            action="settings.upsert",
            entity_type="setting",
            entity_id="bulk" if many else saved[0].key,
            payload={setting.key: setting.value for setting in saved},
        )
        data = SettingSerializer(saved, many=True).data if many else SettingSerializer(saved[0]).data
        return Response(data, status=status.HTTP_201_CREATED if any_created else status.HTTP_200_OK)


class AdminSettingsView(APIView):
    permission_classes = [RolePermission]
    capability_map = {
        "get": ["settings.manage"],
        "post": ["settings.manage"],
    }

    def get(self, request):
        return Response(AdminSettingsSerializer(AdminSettings.load()).data)

    def post(self, request):
        instance = AdminSettings.load()
        serializer = AdminSettingsSerializer(instance, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        instance = serializer.save()
        record_audit(
            actor=request.user,
            action="settings.admin.update",
            entity_type="admin_settings",
            entity_id=instance.pk,
            payload=serializer.validated_data,
        )
        return Response(AdminSettingsSerializer(instance).data)


class DashboardContentViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    queryset = DashboardContent.objects.all()
    serializer_class = DashboardContentSerializer
    permission_classes = [IsAdminOrReadOnly]
    pagination_class = None
    lookup_field = "key"
    lookup_value_regex = "[^/]+"

    def partial_update(self, request, key=None):
        content = DashboardContent.objects.filter(key=key).first()
        created = content is None
        if created:
            content = DashboardContent(key=key)
        serializer = self.get_serializer(content, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        content = serializer.save()
        record_audit(
            actor=request.user,
            action="settings.dashboard_content.update",
            entity_type="dashboard_content",
            entity_id=content.key,
            payload={"value": content.value, "type": content.type, "created": created},
        )
        return Response(self.get_serializer(content).data)
