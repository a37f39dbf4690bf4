from rest_framework import serializers

from apps.storeconfig.models import AdminSettings, DashboardContent, Setting


class SettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = Setting
        fields = ["key", "value", "description", "updated_at"]
        read_only_fields = ["updated_at"]
        # Upserts go through the view, so the unique validator must not reject existing keys.
        extra_kwargs = {"key": {"validators": []}}

    def validate_key(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("설정 키를 입력해주세요.")
        return value

    def validate_value(self, value):
        return value.strip()


class AdminSettingsSerializer(serializers.ModelSerializer):
    class Meta:
        model = AdminSettings
        fields = [
            "admin_name",
            "admin_phone",
            "business_name",
            "business_address",
            "business_phone",
            "bank_account",
            "updated_at",
        ]
        read_only_fields = ["updated_at"]


class DashboardContentSerializer(serializers.ModelSerializer):
    class Meta:
        model = DashboardContent
        fields = ["key", "value", "type", "created_at", "updated_at"]
        read_only_fields = ["key", "created_at", "updated_at"]
