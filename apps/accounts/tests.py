from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management import CommandError, call_command
from rest_framework.test import APITestCase

from apps.accounts.models import UserRole

User = get_user_model()


class AccountsApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.manager = User.objects.create_user(username="manager", password="manager123", role="MANAGER")

    def auth(self, username, password):
        return self.client.post("/api/auth/token/", {"username": username, "password": password}, format="json")

    def test_jwt_login_valid_and_invalid(self):
        ok = self.auth("admin", "admin123")
        self.assertEqual(ok.status_code, 200)
        self.assertIn("access", ok.data)

        bad = self.auth("admin", "wrong")
        self.assertEqual(bad.status_code, 401)
        self.assertIn("code", bad.data)

    def test_me_reports_role_capabilities(self):
        self.assertEqual(self.client.get("/api/auth/me/").status_code, 401)

        token = self.auth("manager", "manager123").data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        response = self.client.get("/api/auth/me/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["role"], UserRole.MANAGER)
        self.assertIn("orders.deliver", response.data["capabilities"])
        self.assertNotIn("orders.payment", response.data["capabilities"])

    def test_group_membership_overrides_role_field(self):
        group, _ = Group.objects.get_or_create(name=UserRole.ADMIN)
        self.manager.groups.add(group)
        token = self.auth("manager", "manager123").data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(self.client.get("/api/auth/me/").data["role"], UserRole.ADMIN)

    def test_seed_roles_creates_groups_and_users(self):
        call_command("seed_roles", "--admin", "owner", "owner-pass-1", "--manager", "courier", "courier-pass-1", verbosity=0)
        self.assertTrue(Group.objects.filter(name=UserRole.MANAGER).exists())
        courier = User.objects.get(username="courier")
        self.assertEqual(courier.role, UserRole.MANAGER)
        self.assertTrue(courier.groups.filter(name=UserRole.MANAGER).exists())
        self.assertTrue(User.objects.get(username="owner").is_staff)

        with self.assertRaises(CommandError):
            call_command("seed_roles", "--admin", "courier", "x", verbosity=0)
