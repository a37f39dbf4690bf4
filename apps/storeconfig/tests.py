from django.contrib.auth import get_user_model
from django.core.management import call_command
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.pricing.price_table import ShippingMode
from apps.storeconfig.models import AdminSettings, DashboardContent, Setting
from apps.storeconfig.services import load_pricing_config

User = get_user_model()


class StoreConfigApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.manager = User.objects.create_user(username="manager", password="manager123", role="MANAGER")
        call_command("seed_settings", verbosity=0)

    def auth_as(self, username, password):
        response = self.client.post("/api/auth/token/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def test_seed_creates_defaults_once(self):
        self.assertEqual(Setting.objects.get(key="smallBoxPrice").value, "19000")
        self.assertTrue(DashboardContent.objects.filter(key="mainTitle").exists())
        count = Setting.objects.count()
        call_command("seed_settings", verbosity=0)
        self.assertEqual(Setting.objects.count(), count)
        self.assertEqual(AdminSettings.objects.count(), 1)

    def test_public_read_hides_costs(self):
        response = self.client.get("/api/settings/")
        self.assertEqual(response.status_code, 200)
        keys = {row["key"] for row in response.data}
        self.assertIn("smallBoxPrice", keys)
        self.assertNotIn("smallBoxCost", keys)

        missing = self.client.get("/api/settings/smallBoxCost/")
        self.assertEqual(missing.status_code, 404)

        self.auth_as("admin", "admin123")
        keys = {row["key"] for row in self.client.get("/api/settings/").data}
        self.assertIn("smallBoxCost", keys)

    def test_admin_upsert_is_last_write_wins(self):
        self.auth_as("admin", "admin123")
        updated = self.client.post("/api/settings/", {"key": "shippingFee", "value": "3500"}, format="json")
        self.assertEqual(updated.status_code, 200)
        created = self.client.post(
            "/api/settings/", {"key": "largeBoxExcludeFromShipping", "value": "true"}, format="json"
        )
        self.assertEqual(created.status_code, 201)

        bulk = self.client.post(
            "/api/settings/",
            [{"key": "freeShippingType", "value": "amount"}, {"key": "freeShippingMinAmount", "value": "100000"}],
            format="json",
        )
        self.assertEqual(bulk.status_code, 200)

        config = load_pricing_config()
        self.assertEqual(config.shipping_fee, 3500)
        self.assertEqual(config.free_shipping_mode, ShippingMode.AMOUNT)
        self.assertEqual(config.free_shipping_min_amount, 100000)
        self.assertIn("largeBox", config.excluded_from_shipping)
        self.assertTrue(AuditLog.objects.filter(action="settings.upsert").exists())

    def test_settings_write_requires_admin(self):
        anonymous = self.client.post("/api/settings/", {"key": "shippingFee", "value": "0"}, format="json")
        self.assertEqual(anonymous.status_code, 401)
        self.assertEqual(anonymous.data["code"], "not_authenticated")

        self.auth_as("manager", "manager123")
        forbidden = self.client.post("/api/settings/", {"key": "shippingFee", "value": "0"}, format="json")
        self.assertEqual(forbidden.status_code, 403)
        self.assertEqual(Setting.objects.get(key="shippingFee").value, "4000")

    def test_admin_settings_singleton(self):
        self.auth_as("admin", "admin123")
        response = self.client.post(
            "/api/admin-settings/",
            {"admin_name": "김에덴", "admin_phone": "010-1234-5678", "bank_account": "농협 123-4567"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.client.post("/api/admin-settings/", {"business_name": "에덴한과"}, format="json")

        data = self.client.get("/api/admin-settings/").data
        self.assertEqual(data["admin_name"], "김에덴")
        self.assertEqual(data["business_name"], "에덴한과")
        self.assertEqual(AdminSettings.objects.count(), 1)

        self.auth_as("manager", "manager123")
        self.assertEqual(self.client.get("/api/admin-settings/").status_code, 403)

    def test_dashboard_content_upsert(self):
        public = self.client.get("/api/dashboard-content/")
        self.assertEqual(public.status_code, 200)

        self.auth_as("admin", "admin123")
        response = self.client.patch(
            "/api/dashboard-content/heroImageUrl/",
            {"value": "https://example.com/hero.jpg", "type": "image"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(DashboardContent.objects.get(key="heroImageUrl").type, "image")

        created = self.client.patch("/api/dashboard-content/noticeText/", {"value": "설 연휴 배송 안내"}, format="json")
        self.assertEqual(created.status_code, 200)
        self.assertEqual(DashboardContent.objects.get(key="noticeText").value, "설 연휴 배송 안내")

    def test_rejected_dashboard_content_leaves_no_row(self):
        self.auth_as("admin", "admin123")
        response = self.client.patch("/api/dashboard-content/newKey/", {"type": "video"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(DashboardContent.objects.filter(key="newKey").exists())
