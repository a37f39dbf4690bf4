from datetime import timedelta

from django.db.models import Count, Max, Q, Sum
from django.utils import timezone
from rest_framework import serializers
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.common.excel import xlsx_response
from apps.common.permissions import RolePermission
from apps.orders.models import Order, OrderStatus, PaymentStatus
from apps.orders.querysets import created_between
from apps.pricing.price_table import PRODUCTS
from apps.reports.revenue import order_figures, summarize_orders

PERIOD_DAYS = {"today": 0, "week": 7, "month": 30}
SUMMARY_LABELS = [
    ("count", "주문 수"),
    ("small_box_quantity", "한과1호 수량"),
    ("large_box_quantity", "한과2호 수량"),
    ("wrapping_quantity", "보자기 수량"),
    ("small_box_amount", "한과1호 매출"),
    ("large_box_amount", "한과2호 매출"),
    ("wrapping_amount", "보자기 매출"),
    ("shipping_orders", "배송비 부과 주문"),
    ("shipping_amount", "배송비 합계"),
    ("total_amount", "주문 금액 합계"),
    ("actual_revenue", "실입금 합계"),
    ("total_discounts", "할인 합계"),
    ("total_unpaid", "미입금 합계"),
    ("product_cost", "상품 원가"),
    ("total_cost", "총 원가(배송비 포함)"),
    ("net_profit", "순이익"),
]


class RevenueQuerySerializer(serializers.Serializer):
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    period = serializers.ChoiceField(choices=list(PERIOD_DAYS), required=False)

    def validate(self, attrs):
        period = attrs.get("period")
        if period:
            today = timezone.localdate()
            attrs["date_from"] = today - timedelta(days=PERIOD_DAYS[period])
            attrs["date_to"] = today
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_from": "시작일은 종료일보다 늦을 수 없습니다."})
        return attrs


class RevenueReportMixin:
    permission_classes = [RolePermission]
    capability_map = {"get": ["reports.view"]}

    def report_orders(self):
        query = RevenueQuerySerializer(data=self.request.query_params.dict())
        query.is_valid(raise_exception=True)
        filters = query.validated_data
        orders = created_between(Order.objects.active(), filters.get("date_from"), filters.get("date_to"))
        return orders, filters


class RevenueReportView(RevenueReportMixin, APIView):
    def get(self, request):
        orders, filters = self.report_orders()
        summary = summarize_orders(orders.payment_confirmed().order_by("created_at").iterator())
        status_counts = dict(orders.values_list("status").annotate(total=Count("id")).order_by())
        payment_counts = dict(orders.values_list("payment_status").annotate(total=Count("id")).order_by())

        return Response(
            {
                "filters": {
                    "date_from": filters.get("date_from"),
                    "date_to": filters.get("date_to"),
                    "period": filters.get("period"),
                },
                "summary": summary.as_dict(),
                "products": [
                    {
                        "product": product.key,
                        "label": product.label,
                        "quantity": getattr(summary, f"{field}_quantity"),
                        "amount": getattr(summary, f"{field}_amount"),
                    }
                    for product, field in zip(PRODUCTS, ("small_box", "large_box", "wrapping"))
                ],
                "refunded_count": payment_counts.get(PaymentStatus.REFUNDED, 0),
                "status_counts": {value: status_counts.get(value, 0) for value in OrderStatus.values},
                "payment_counts": {value: payment_counts.get(value, 0) for value in PaymentStatus.values},
            }
        )


class RevenueExportView(RevenueReportMixin, APIView):
    def get(self, request):
        orders, _ = self.report_orders()
        confirmed = list(orders.payment_confirmed().order_by("created_at"))
        summary = summarize_orders(confirmed)
        rows = []
        for order in confirmed:
            figures = order_figures(order)
            rows.append(
                [
                    order.order_number,
                    timezone.localtime(order.created_at).strftime("%Y-%m-%d"),
                    order.customer_name,
                    order.small_box_quantity,
                    order.large_box_quantity,
                    order.wrapping_quantity,
                    order.total_amount,
                    figures.actual_revenue,
                    figures.shipping_amount,
                    figures.total_discounts,
                    figures.total_unpaid,
                    figures.total_cost,
                    figures.net_profit,
                ]
            )

        filename = f"eden-revenue-{timezone.localdate():%Y%m%d}.xlsx"
        return xlsx_response(
            filename,
            [
                ("매출요약", ["항목", "값"], [[label, getattr(summary, key)] for key, label in SUMMARY_LABELS]),
                (
                    "주문별",
                    [
                        "주문번호",
                        "주문일",
                        "고객명",
                        "한과1호",
                        "한과2호",
                        "보자기",
                        "주문금액",
                        "실입금",
                        "배송비",
                        "할인",
                        "미입금",
                        "원가",
                        "순이익",
                    ],
                    rows,
                ),
            ],
        )


class CustomerListView(APIView):
    permission_classes = [RolePermission]
    capability_map = {"get": ["customers.view"]}

    def get(self, request):
        orders = Order.objects.active()
        query = (request.query_params.get("q") or "").strip()
        if query:
            orders = orders.filter(Q(customer_name__icontains=query) | Q(customer_phone__icontains=query))

        customers = (
            orders.values("customer_name", "customer_phone")
            .annotate(
                order_count=Count("id"),
                total_amount=Sum("total_amount"),
                box_count=Sum("small_box_quantity") + Sum("large_box_quantity"),
                last_order_at=Max("created_at"),
            )
            .order_by("-last_order_at")
        )
        return Response(list(customers))
