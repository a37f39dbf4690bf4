from dataclasses import fields
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase
from rest_framework.test import APITestCase

from apps.orders.models import Order, PaymentStatus
from apps.orders.services import apply_payment, create_order, soft_delete
from apps.reports.revenue import RevenueSummary, order_figures, summarize_orders
from apps.storeconfig.models import Setting

User = get_user_model()


def snapshot_order(**overrides):
    values = {
        "small_box_quantity": 4,
        "large_box_quantity": 0,
        "wrapping_quantity": 2,
        "small_box_price": 19000,
        "large_box_price": 21000,
        "wrapping_price": 1000,
        "small_box_cost": 15000,
        "large_box_cost": 17000,
        "wrapping_cost": 500,
        "shipping_fee": 4000,
        "total_amount": 82000,
        "actual_paid_amount": None,
        "discount_amount": None,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class RevenueFiguresTests(SimpleTestCase):
    def test_fully_paid_order(self):
        figures = order_figures(snapshot_order())
        self.assertEqual(figures.small_box_amount, 76000)
        self.assertEqual(figures.wrapping_amount, 2000)
        self.assertEqual(figures.product_cost, 61000)
        self.assertEqual(figures.total_cost, 65000)
        self.assertEqual(figures.actual_revenue, 82000)
        self.assertEqual(figures.shipping_orders, 1)
        self.assertEqual(figures.net_profit, 17000)

    def test_unpaid_and_discount(self):
        partial = order_figures(snapshot_order(actual_paid_amount=70000))
        self.assertEqual(partial.total_unpaid, 12000)
        self.assertEqual(partial.net_profit, 5000)

        discounted = order_figures(snapshot_order(actual_paid_amount=70000, discount_amount=12000))
        self.assertEqual(discounted.total_unpaid, 0)
        self.assertEqual(discounted.total_discounts, 12000)
        self.assertEqual(discounted.net_profit, 5000)

    def test_free_shipping_order_not_counted_as_shipping(self):
        figures = order_figures(snapshot_order(small_box_quantity=6, wrapping_quantity=0, shipping_fee=0, total_amount=114000))
        self.assertEqual(figures.shipping_orders, 0)
        self.assertEqual(figures.net_profit, 114000 - 90000)

    def test_summary_is_additive(self):
        orders = [
            snapshot_order(),
            snapshot_order(actual_paid_amount=70000),
            snapshot_order(actual_paid_amount=70000, discount_amount=12000),
            snapshot_order(large_box_quantity=3, small_box_quantity=0, total_amount=67000, actual_paid_amount=90000),
        ]
        whole = summarize_orders(orders)
        for split in range(len(orders) + 1):
            left = summarize_orders(orders[:split])
            right = summarize_orders(orders[split:])
            self.assertEqual(left + right, whole)
            self.assertEqual(right + left, whole)
        self.assertEqual(whole.count, 4)
        self.assertEqual(summarize_orders([]), RevenueSummary())
        self.assertEqual(set(whole.as_dict()), {f.name for f in fields(RevenueSummary)})


class RevenueApiTests(APITestCase):
    def setUp(self):
        self.admin = User.objects.create_user(username="admin", password="admin123", role="ADMIN")
        self.manager = User.objects.create_user(username="manager", password="manager123", role="MANAGER")

    def auth_as(self, username, password):
        response = self.client.post("/api/auth/token/", {"username": username, "password": password}, format="json")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")

    def order(self, name="홍길동", phone="010-1234-5678", **quantities):
        data = {
            "customer_name": name,
            "customer_phone": phone,
            "address1": "서울특별시 강남구",
            "small_box_quantity": 4,
            "wrapping_quantity": 2,
        }
        data.update(quantities)
        return create_order(data, actor=self.admin)

    def test_revenue_counts_paid_orders_with_their_snapshot(self):
        paid = self.order()
        short = self.order()
        labelled = self.order()
        refunded = self.order()
        trashed = self.order()
        self.order()

        Setting.objects.create(key="smallBoxCost", value="1")
        apply_payment(paid, payment_status=PaymentStatus.CONFIRMED, actor=self.admin)
        apply_payment(short, payment_status=PaymentStatus.CONFIRMED, actual_paid_amount=70000, actor=self.admin)
        apply_payment(labelled, payment_status=PaymentStatus.PARTIAL, actual_paid_amount=80000, actor=self.admin)
        apply_payment(refunded, payment_status=PaymentStatus.CONFIRMED, actor=self.admin)
        apply_payment(refunded, payment_status=PaymentStatus.REFUNDED, actor=self.admin)
        apply_payment(trashed, payment_status=PaymentStatus.CONFIRMED, actor=self.admin)
        soft_delete(trashed, actor=self.admin)

        self.auth_as("admin", "admin123")
        response = self.client.get("/api/reports/revenue/", {"period": "today"})
        self.assertEqual(response.status_code, 200)
        summary = response.data["summary"]
        self.assertEqual(summary["count"], 3)
        self.assertEqual(summary["total_amount"], 246000)
        self.assertEqual(summary["actual_revenue"], 232000)
        self.assertEqual(summary["total_unpaid"], 14000)
        self.assertEqual(summary["product_cost"], 183000)
        self.assertEqual(summary["net_profit"], 17000 + 5000 + 15000)
        self.assertEqual(response.data["refunded_count"], 1)
        self.assertEqual(response.data["payment_counts"][PaymentStatus.CONFIRMED], 2)
        self.assertEqual(response.data["payment_counts"][PaymentStatus.PARTIAL], 1)
        self.assertEqual(response.data["status_counts"]["pending"], 5)
        self.assertEqual(response.data["products"][0]["quantity"], 12)

    def test_revenue_requires_admin(self):
        self.auth_as("manager", "manager123")
        self.assertEqual(self.client.get("/api/reports/revenue/").status_code, 403)
        self.assertEqual(self.client.get("/api/customers/").status_code, 403)

    def test_invalid_date_range(self):
        self.auth_as("admin", "admin123")
        response = self.client.get("/api/reports/revenue/", {"date_from": "2026-03-02", "date_to": "2026-03-01"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("date_from", response.data["fields"])

    def test_revenue_export(self):
        order = self.order()
        apply_payment(order, payment_status=PaymentStatus.CONFIRMED, actor=self.admin)
        self.auth_as("admin", "admin123")
        response = self.client.get("/api/export/revenue/")
        self.assertEqual(response.status_code, 200)
        self.assertIn("attachment; filename=eden-revenue-", response["Content-Disposition"])
        self.assertTrue(response.content.startswith(b"PK"))

    def test_customers_are_aggregated_from_orders(self):
        self.order()
        self.order(large_box_quantity=1)
        self.order(name="김철수", phone="010-2222-3333")
        self.auth_as("admin", "admin123")

        response = self.client.get("/api/customers/")
        self.assertEqual(response.status_code, 200)
        by_name = {row["customer_name"]: row for row in response.data}
        self.assertEqual(by_name["홍길동"]["order_count"], 2)
        self.assertEqual(by_name["홍길동"]["box_count"], 9)
        self.assertEqual(by_name["김철수"]["order_count"], 1)

        searched = self.client.get("/api/customers/", {"q": "2222"})
        self.assertEqual([row["customer_name"] for row in searched.data], ["김철수"])
        self.assertEqual(Order.objects.count(), 3)
