import datetime
from unittest import mock
from urllib.parse import unquote

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.accounts.models import UserRole
from apps.audit.models import AuditLog
from apps.common.permissions import ROLE_CAPABILITIES
from apps.orders.lifecycle import OrderTransitionError, allowed_transitions, check_transition
from apps.orders.models import Order, OrderStatus, PaymentStatus, SmsNotification
from apps.orders.payments import PaymentOutcome, ShortfallReason, reconcile_payment
from apps.orders.services import build_shortcut_url, run_batch
from apps.storeconfig.models import Setting

User = get_user_model()

ORDER_PAYLOAD = {
    "customer_name": "홍길동",
    "customer_phone": "010-1234-5678",
    "address1": "서울특별시 강남구 테헤란로 152",
    "address2": "101호",
    "small_box_quantity": 4,
    "large_box_quantity": 0,
    "wrapping_quantity": 2,
}


class ReconciliationTests(SimpleTestCase):
    def test_partial_shortfall(self):
        result = reconcile_payment(82000, 70000, ShortfallReason.PARTIAL)
        self.assertEqual(result.outcome, PaymentOutcome.PARTIAL)
        self.assertEqual(result.payment_status, PaymentStatus.CONFIRMED)
        self.assertEqual(result.unpaid_amount, 12000)
        self.assertEqual(result.discount_amount, 0)
        self.assertEqual(result.discount_reason, "부분미입금 (미입금: 12,000원)")

    def test_discount_shortfall(self):
        result = reconcile_payment(82000, 70000, ShortfallReason.DISCOUNT)
        self.assertEqual(result.outcome, PaymentOutcome.DISCOUNT)
        self.assertEqual(result.payment_status, PaymentStatus.CONFIRMED)
        self.assertEqual(result.discount_amount, 12000)
        self.assertEqual(result.discount_reason, "할인 (할인금액: 12,000원)")

    def test_overpaid_and_exact(self):
        overpaid = reconcile_payment(82000, 94000)
        self.assertEqual(overpaid.outcome, PaymentOutcome.OVERPAID)
        self.assertEqual(overpaid.difference, -12000)
        self.assertEqual(overpaid.discount_reason, "과납입 (12,000원 추가 입금)")

        exact = reconcile_payment(82000, 82000)
        self.assertEqual(exact.outcome, PaymentOutcome.PAID_IN_FULL)
        self.assertEqual(exact.discount_reason, "")

    def test_shortfall_defaults_to_partial(self):
        self.assertEqual(reconcile_payment(10000, 5000, None).outcome, PaymentOutcome.PARTIAL)

    def test_negative_amount_rejected(self):
        with self.assertRaises(ValueError):
            reconcile_payment(10000, -1)


class LifecycleRuleTests(SimpleTestCase):
    def test_allowed_targets_by_role(self):
        self.assertEqual(
            allowed_transitions(OrderStatus.SELLER_SHIPPED, UserRole.ADMIN),
            {OrderStatus.PENDING, OrderStatus.SCHEDULED},
        )
        self.assertIn(OrderStatus.DELIVERED, allowed_transitions(OrderStatus.SELLER_SHIPPED, UserRole.MANAGER))
        self.assertEqual(allowed_transitions(OrderStatus.DELIVERED, UserRole.MANAGER), set())

    def test_delivery_follows_deliver_capability(self):
        with self.assertRaises(OrderTransitionError):
            check_transition(OrderStatus.SELLER_SHIPPED, OrderStatus.DELIVERED, UserRole.ADMIN)
        check_transition(OrderStatus.SELLER_SHIPPED, OrderStatus.DELIVERED, UserRole.MANAGER)

        granted = {**ROLE_CAPABILITIES, UserRole.ADMIN: ROLE_CAPABILITIES[UserRole.ADMIN] | {"orders.deliver"}}
        with mock.patch.dict(ROLE_CAPABILITIES, granted):
            check_transition(OrderStatus.SELLER_SHIPPED, OrderStatus.DELIVERED, UserRole.ADMIN)

    def test_delivered_is_terminal(self):
        with self.assertRaises(OrderTransitionError):
            check_transition(OrderStatus.DELIVERED, OrderStatus.PENDING, UserRole.MANAGER)

    def test_pending_cannot_jump_to_delivered(self):
        with self.assertRaises(OrderTransitionError):
            check_transition(OrderStatus.PENDING, OrderStatus.DELIVERED, UserRole.MANAGER)

    def test_scheduling_needs_a_date(self):
        with self.assertRaises(OrderTransitionError):
            check_transition(OrderStatus.PENDING, OrderStatus.SCHEDULED, UserRole.ADMIN)
        check_transition(OrderStatus.PENDING, OrderStatus.SCHEDULED, UserRole.ADMIN, datetime.date(2026, 1, 2))


class ShortcutUrlTests(SimpleTestCase):
    def test_ascii_payload(self):
        url = build_shortcut_url("01012345678", "hi there", "eden")
        self.assertEqual(url, "shortcuts://run-shortcut?name=eden&input=01012345678%2Fhi%20there")

    def test_korean_payload_round_trips(self):
        url = build_shortcut_url("010-1234-5678", "[에덴한과] 입금 확인", "eden")
        self.assertTrue(url.startswith("shortcuts://run-shortcut?name=eden&input="))
        self.assertEqual(unquote(url.split("input=", 1)[1]), "010-1234-5678/[에덴한과] 입금 확인")


class OrderApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.manager = User.objects.create_user(username="manager", password="manager123", role="MANAGER")

    def auth_as(self, username, password):
        response = self.client.post("/api/auth/token/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def place_order(self, **overrides):
        self.client.credentials()
        response = self.client.post("/api/orders/", {**ORDER_PAYLOAD, **overrides}, format="json")
        self.assertEqual(response.status_code, 201, response.data)
        return Order.objects.get(pk=response.data["id"])

    def test_public_order_is_priced_by_server(self):
        response = self.client.post("/api/orders/", {**ORDER_PAYLOAD, "total_amount": 1}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.data["total_amount"], 82000)
        self.assertEqual(response.data["shipping_fee"], 4000)
        self.assertFalse(response.data["is_remote_area"])
        self.assertNotIn("small_box_cost", response.data)

        order = Order.objects.get(pk=response.data["id"])
        self.assertEqual(order.order_number, f"ED{timezone.localdate():%Y%m%d}01")
        self.assertEqual((order.small_box_price, order.small_box_cost, order.wrapping_cost), (19000, 15000, 500))
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)
        self.assertTrue(AuditLog.objects.filter(action="order.create", entity_id=str(order.id)).exists())

    def test_order_numbers_follow_daily_sequence(self):
        first = self.place_order()
        second = self.place_order()
        self.assertEqual(first.order_number[-2:], "01")
        self.assertEqual(second.order_number[-2:], "02")

    def test_quantity_rule(self):
        wrapping_only = self.client.post(
            "/api/orders/", {**ORDER_PAYLOAD, "small_box_quantity": 0, "wrapping_quantity": 1}, format="json"
        )
        self.assertEqual(wrapping_only.status_code, 400)
        self.assertEqual(wrapping_only.data["code"], "invalid")
        self.assertIn("small_box_quantity", wrapping_only.data["fields"])

        too_much_wrapping = self.client.post(
            "/api/orders/", {**ORDER_PAYLOAD, "small_box_quantity": 1, "wrapping_quantity": 2}, format="json"
        )
        self.assertEqual(too_much_wrapping.status_code, 400)
        self.assertIn("wrapping_quantity", too_much_wrapping.data["fields"])

    def test_remote_recipient_address_is_flagged(self):
        order = self.place_order(recipient_name="김제주", recipient_address1="제주특별자치도 제주시 첨단로 242")
        self.assertTrue(order.is_remote_area)
        self.assertEqual(order.delivery_address, "제주특별자치도 제주시 첨단로 242")

    def test_quote_uses_current_settings(self):
        Setting.objects.create(key="freeShippingType", value="amount")
        Setting.objects.create(key="freeShippingMinAmount", value="50000")
        response = self.client.post(
            "/api/orders/quote/",
            {"small_box_quantity": 3, "address1": "제주특별자치도 서귀포시"},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["subtotal"], 57000)
        self.assertEqual(response.data["shipping_fee"], 0)
        self.assertEqual(response.data["total_amount"], 57000)
        self.assertTrue(response.data["is_remote_area"])

    def test_snapshot_is_immutable(self):
        order = self.place_order()
        Setting.objects.create(key="smallBoxPrice", value="25000")
        order.refresh_from_db()
        self.assertEqual(order.small_box_price, 19000)

        order = Order.objects.get(pk=order.pk)
        order.total_amount = 1
        with self.assertRaises(ValidationError):
            order.save()

        self.auth_as("admin", "admin123")
        response = self.client.patch(f"/api/orders/{order.id}/", {"total_amount": 1, "depositor_name": "홍아빠"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_amount"], 82000)
        self.assertEqual(response.data["depositor_name"], "홍아빠")

    def test_contact_edit_refreshes_remote_flag(self):
        order = self.place_order()
        self.auth_as("admin", "admin123")
        response = self.client.patch(f"/api/orders/{order.id}/", {"address1": "인천광역시 옹진군 연평면"}, format="json")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.data["is_remote_area"])

        self.auth_as("manager", "manager123")
        forbidden = self.client.patch(f"/api/orders/{order.id}/", {"address1": "서울"}, format="json")
        self.assertEqual(forbidden.status_code, 403)

    def test_list_requires_staff_and_filters(self):
        jeju = self.place_order(customer_name="제주손님", address1="제주특별자치도 제주시")
        seoul = self.place_order()

        anonymous = self.client.get("/api/orders/")
        self.assertEqual(anonymous.status_code, 401)

        self.auth_as("manager", "manager123")
        response = self.client.get("/api/orders/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["X-Poll-Interval"], "5")
        self.assertEqual(response.data["count"], 2)

        remote = self.client.get("/api/orders/", {"remote": "true"})
        self.assertEqual([row["id"] for row in remote.data["results"]], [jeju.id])

        searched = self.client.get("/api/orders/", {"q": seoul.order_number})
        self.assertEqual([row["id"] for row in searched.data["results"]], [seoul.id])

        ordered = self.client.get("/api/orders/", {"ordering": "created_at"})
        self.assertEqual(ordered.data["results"][0]["id"], jeju.id)

        bad = self.client.get("/api/orders/", {"status": "shipping"})
        self.assertEqual(bad.status_code, 400)

    def test_status_lifecycle(self):
        order = self.place_order()
        url = f"/api/orders/{order.id}/status/"
        self.auth_as("admin", "admin123")

        missing_date = self.client.patch(url, {"status": "scheduled"}, format="json")
        self.assertEqual(missing_date.status_code, 400)
        self.assertEqual(missing_date.data["code"], "invalid_transition")

        scheduled = self.client.patch(url, {"status": "scheduled", "scheduled_date": "2026-02-10"}, format="json")
        self.assertEqual(scheduled.status_code, 200)
        self.assertEqual(scheduled.data["scheduled_date"], "2026-02-10")

        shipped = self.client.patch(url, {"status": "seller_shipped"}, format="json")
        self.assertEqual(shipped.status_code, 200)
        self.assertIsNotNone(shipped.data["seller_shipped_date"])

        admin_delivered = self.client.patch(url, {"status": "delivered"}, format="json")
        self.assertEqual(admin_delivered.status_code, 403)
        self.assertEqual(admin_delivered.data["code"], "forbidden_transition")

        self.auth_as("manager", "manager123")
        delivered = self.client.patch(url, {"status": "delivered"}, format="json")
        self.assertEqual(delivered.status_code, 200)
        self.assertIsNotNone(delivered.data["delivered_date"])

        back = self.client.patch(url, {"status": "pending"}, format="json")
        self.assertEqual(back.status_code, 400)
        order.refresh_from_db()
        self.assertEqual(order.status, OrderStatus.DELIVERED)
        self.assertEqual(order.payment_status, PaymentStatus.PENDING)

    def test_reschedule_replaces_date(self):
        order = self.place_order()
        url = f"/api/orders/{order.id}/status/"
        self.auth_as("admin", "admin123")
        self.client.patch(url, {"status": "scheduled", "scheduled_date": "2026-02-10"}, format="json")
        moved = self.client.patch(url, {"status": "scheduled", "scheduled_date": "2026-02-12"}, format="json")
        self.assertEqual(moved.status_code, 200)
        self.assertEqual(moved.data["scheduled_date"], "2026-02-12")

    def test_customer_requested_ship_date(self):
        requested = timezone.localdate() + datetime.timedelta(days=3)
        order = self.place_order(scheduled_date=requested.isoformat())
        self.assertEqual(order.scheduled_date, requested)
        self.assertEqual(order.status, OrderStatus.PENDING)

        self.client.credentials()
        past = timezone.localdate() - datetime.timedelta(days=1)
        rejected = self.client.post("/api/orders/", {**ORDER_PAYLOAD, "scheduled_date": past.isoformat()}, format="json")
        self.assertEqual(rejected.status_code, 400)
        self.assertIn("scheduled_date", rejected.data["fields"])

        url = f"/api/orders/{order.id}/status/"
        self.auth_as("admin", "admin123")
        scheduled = self.client.patch(url, {"status": "scheduled"}, format="json")
        self.assertEqual(scheduled.status_code, 200)
        self.assertEqual(scheduled.data["scheduled_date"], requested.isoformat())

        back = self.client.patch(url, {"status": "pending"}, format="json")
        self.assertEqual(back.data["scheduled_date"], requested.isoformat())

    def test_undo_shipping(self):
        order = self.place_order()
        url = f"/api/orders/{order.id}/status/"
        self.auth_as("manager", "manager123")
        self.client.patch(url, {"status": "seller_shipped"}, format="json")
        undone = self.client.patch(url, {"status": "pending"}, format="json")
        self.assertEqual(undone.status_code, 200)
        self.assertIsNone(undone.data["seller_shipped_date"])

    def test_payment_reconciliation(self):
        order = self.place_order()
        url = f"/api/orders/{order.id}/payment/"

        self.auth_as("manager", "manager123")
        self.assertEqual(self.client.patch(url, {"payment_status": "confirmed"}, format="json").status_code, 403)

        self.auth_as("admin", "admin123")
        partial = self.client.patch(
            url, {"payment_status": "confirmed", "actual_paid_amount": 70000, "shortfall_reason": "partial"}, format="json"
        )
        self.assertEqual(partial.status_code, 200)
        self.assertEqual(partial.data["payment_status"], "confirmed")
        self.assertEqual(partial.data["total_amount"], 82000)
        self.assertEqual(partial.data["unpaid_amount"], 12000)
        self.assertEqual(partial.data["discount_reason"], "부분미입금 (미입금: 12,000원)")
        self.assertEqual(partial.data["net_profit"], 5000)

        discount = self.client.patch(
            url, {"payment_status": "confirmed", "actual_paid_amount": 70000, "shortfall_reason": "discount"}, format="json"
        )
        self.assertEqual(discount.data["payment_status"], "confirmed")
        self.assertEqual(discount.data["discount_amount"], 12000)
        self.assertEqual(discount.data["unpaid_amount"], 0)
        self.assertIsNotNone(discount.data["payment_confirmed_at"])

        full = self.client.patch(url, {"payment_status": "confirmed"}, format="json")
        self.assertEqual(full.data["actual_paid_amount"], 82000)
        self.assertIsNone(full.data["discount_amount"])
        self.assertEqual(full.data["net_profit"], 17000)

        reset = self.client.patch(url, {"payment_status": "pending"}, format="json")
        self.assertEqual(reset.data["payment_status"], "pending")
        self.assertIsNone(reset.data["actual_paid_amount"])
        self.assertIsNone(reset.data["payment_confirmed_at"])

        partial_without_amount = self.client.patch(url, {"payment_status": "partial"}, format="json")
        self.assertEqual(partial_without_amount.status_code, 400)
        self.assertEqual(partial_without_amount.data["code"], "invalid_payment")

        labelled = self.client.patch(url, {"payment_status": "partial", "actual_paid_amount": 80000}, format="json")
        self.assertEqual(labelled.data["payment_status"], "partial")
        self.assertEqual(labelled.data["unpaid_amount"], 2000)
        self.assertEqual(Order.objects.payment_confirmed().filter(pk=order.pk).count(), 1)

    def test_soft_delete_and_restore_round_trip(self):
        order = self.place_order()
        before = {f.attname: getattr(order, f.attname) for f in Order._meta.concrete_fields}
        self.auth_as("admin", "admin123")

        self.assertEqual(self.client.delete(f"/api/orders/{order.id}/").status_code, 204)
        self.assertEqual(self.client.get("/api/orders/").data["count"], 0)
        trash = self.client.get("/api/orders/trash/")
        self.assertEqual([row["id"] for row in trash.data["results"]], [order.id])

        restored = self.client.post(f"/api/orders/{order.id}/restore/")
        self.assertEqual(restored.status_code, 200)
        order.refresh_from_db()
        after = {f.attname: getattr(order, f.attname) for f in Order._meta.concrete_fields}
        for name in ("deleted_at", "updated_at"):
            before.pop(name)
            after.pop(name)
        self.assertEqual(before, after)
        self.assertIsNone(order.deleted_at)

    def test_permanent_delete_guards(self):
        order = self.place_order()
        self.auth_as("admin", "admin123")
        url = f"/api/orders/{order.id}/permanent/"

        unconfirmed = self.client.delete(url)
        self.assertEqual(unconfirmed.status_code, 400)
        self.assertEqual(unconfirmed.data["code"], "confirmation_required")

        active = self.client.delete(f"{url}?confirm=true")
        self.assertEqual(active.status_code, 400)
        self.assertEqual(active.data["code"], "not_in_trash")

        self.client.delete(f"/api/orders/{order.id}/")
        purged = self.client.delete(f"{url}?confirm=true")
        self.assertEqual(purged.status_code, 204)
        self.assertFalse(Order.objects.filter(pk=order.pk).exists())

    def test_bulk_operations_report_per_item(self):
        first = self.place_order()
        second = self.place_order()
        self.auth_as("manager", "manager123")

        shipped = self.client.patch("/api/orders/seller-shipped/", {"ids": [first.id, second.id, 9999]}, format="json")
        self.assertEqual(shipped.status_code, 200)
        self.assertEqual(shipped.data["succeeded"], [first.id, second.id])
        self.assertEqual(shipped.data["failed"][0]["id"], 9999)
        self.assertEqual(shipped.data["failed"][0]["code"], "not_found")
        self.assertEqual(Order.objects.filter(status=OrderStatus.SELLER_SHIPPED).count(), 2)

        self.assertEqual(self.client.post("/api/orders/bulk-delete/", {"ids": [first.id]}, format="json").status_code, 403)

        self.auth_as("admin", "admin123")
        deleted = self.client.post("/api/orders/bulk-delete/", {"ids": [first.id]}, format="json")
        self.assertEqual(deleted.data["succeeded_count"], 1)

        unconfirmed = self.client.post("/api/orders/bulk-permanent-delete/", {"ids": [first.id]}, format="json")
        self.assertEqual(unconfirmed.status_code, 400)
        self.assertEqual(unconfirmed.data["code"], "confirmation_required")

        purged = self.client.post(
            "/api/orders/bulk-permanent-delete/", {"ids": [first.id, second.id], "confirm": True}, format="json"
        )
        self.assertEqual(purged.data["succeeded"], [first.id])
        self.assertEqual(purged.data["failed"][0]["code"], "not_in_trash")
        self.assertTrue(Order.objects.filter(pk=second.pk).exists())

    def test_batch_records_model_errors_per_item(self):
        first = self.place_order()
        second = self.place_order()
        third = self.place_order()

        def reprice_second(order):
            if order.pk == second.pk:
                order.total_amount = 1
            order.special_requests = "일괄 처리"
            order.save()

        result = run_batch([first.id, second.id, third.id], reprice_second)
        self.assertEqual(result.succeeded, [first.id, third.id])
        self.assertEqual(result.failed[0]["id"], second.id)
        self.assertEqual(result.failed[0]["code"], "error")
        second.refresh_from_db()
        self.assertEqual((second.total_amount, second.special_requests), (82000, ""))

    def test_sms_builds_shortcut_and_records_history(self):
        order = self.place_order()
        self.auth_as("manager", "manager123")
        url = f"/api/orders/{order.id}/sms/"

        response = self.client.post(url, {"kind": "shipping"}, format="json")
        self.assertEqual(response.status_code, 201)
        self.assertTrue(response.data["shortcut_url"].startswith("shortcuts://run-shortcut?name=eden&input=010-1234-5678%2F"))
        self.assertIn("상품이 발송되었습니다", response.data["notification"]["message"])

        custom = self.client.post(url, {"message": "내일 발송 예정입니다.", "phone_number": "010-9999-0000"}, format="json")
        self.assertEqual(custom.data["notification"]["phone_number"], "010-9999-0000")

        history = self.client.get(url)
        self.assertEqual(len(history.data), 2)
        self.assertEqual(SmsNotification.objects.filter(order=order).count(), 2)

    def test_public_lookup(self):
        order = self.place_order()
        found = self.client.get("/api/orders/lookup/", {"phone": "01012345678", "name": "홍길동"})
        self.assertEqual(found.status_code, 200)
        self.assertEqual([row["order_number"] for row in found.data], [order.order_number])
        self.assertNotIn("customer_phone", found.data[0])

        wrong_name = self.client.get("/api/orders/lookup/", {"phone": "01012345678", "name": "임꺽정"})
        self.assertEqual(wrong_name.data, [])

        missing = self.client.get("/api/orders/lookup/", {"phone": "01012345678"})
        self.assertEqual(missing.status_code, 400)

    def test_excel_export(self):
        self.place_order()
        self.auth_as("admin", "admin123")
        response = self.client.get("/api/orders/export/excel/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("spreadsheetml", response["Content-Type"])
        self.assertTrue(response.content.startswith(b"PK"))

        self.auth_as("manager", "manager123")
        self.assertEqual(self.client.get("/api/orders/export/excel/").status_code, 403)
