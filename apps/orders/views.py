from django.conf import settings
from django.utils import timezone
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps.audit.services import record_audit
from apps.common.excel import xlsx_response
from apps.common.permissions import RolePermission, resolve_role
from apps.orders import services
from apps.orders.models import Order
from apps.orders.querysets import filter_orders
from apps.orders.serializers import (
    CONTACT_FIELDS,
    OrderCreateSerializer,
    OrderIdsSerializer,
    OrderListQuerySerializer,
    OrderPaymentSerializer,
    OrderSerializer,
    OrderStatusSerializer,
    PublicOrderSerializer,
    QuoteSerializer,
    SmsNotificationSerializer,
    SmsRequestSerializer,
)
from apps.orders.throttles import PublicOrderAnonThrottle
from apps.pricing.remote_area import is_remote_area

PUBLIC_ACTIONS = {"create", "quote", "lookup"}
TRUTHY_VALUES = {"1", "true", "yes"}

EXPORT_HEADERS = [
    "주문번호",
    "주문일시",
    "고객명",
    "연락처",
    "입금자명",
    "받는분",
    "받는분 연락처",
    "우편번호",
    "배송지",
    "한과1호",
    "한과2호",
    "보자기",
    "배송비",
    "총금액",
    "주문상태",
    "발송예약일",
    "입금상태",
    "실입금액",
    "할인/미입금 사유",
    "제주/도서산간",
    "요청사항",
]


def export_row(order):
    return [
        order.order_number,
        timezone.localtime(order.created_at).strftime("%Y-%m-%d %H:%M"),
        order.customer_name,
        order.customer_phone,
        order.depositor_name,
        order.delivery_name,
        order.delivery_phone,
        order.recipient_zip_code if order.has_recipient else order.zip_code,
        order.delivery_address,
        order.small_box_quantity,
        order.large_box_quantity,
        order.wrapping_quantity,
        order.shipping_fee,
        order.total_amount,
        order.get_status_display(),
        order.scheduled_date.isoformat() if order.scheduled_date else "",
        order.get_payment_status_display(),
        order.actual_paid_amount if order.actual_paid_amount is not None else "",
        order.discount_reason,
        "Y" if order.is_remote_area else "",
        order.special_requests,
    ]


class OrderViewSet(viewsets.ModelViewSet):
    serializer_class = OrderSerializer
    permission_classes = [RolePermission]
    http_method_names = ["get", "post", "patch", "delete", "head", "options"]
    capability_map = {
        "list": ["orders.view"],
        "retrieve": ["orders.view"],
        "partial_update": ["orders.edit"],
        "destroy": ["orders.delete"],
        "change_status": ["orders.ship"],
        "payment": ["orders.payment"],
        "trash": ["orders.delete"],
        "restore": ["orders.delete"],
        "permanent": ["orders.purge"],
        "seller_shipped": ["orders.ship"],
        "bulk_delete": ["orders.delete"],
        "bulk_permanent_delete": ["orders.purge"],
        "sms": ["sms.send"],
        "export_excel": ["orders.export"],
    }

    def get_permissions(self):
        if self.action in PUBLIC_ACTIONS:
            return [AllowAny()]
        return super().get_permissions()

    def get_throttles(self):
        if self.action in PUBLIC_ACTIONS:
            return [PublicOrderAnonThrottle()]
        return super().get_throttles()

    def get_serializer_class(self):
        if self.action == "create":
            return OrderCreateSerializer
        return OrderSerializer

    def get_queryset(self):
        if self.action in {"restore", "permanent"}:
            return Order.objects.all()
        if self.action == "trash":
            return Order.objects.trashed().order_by("-deleted_at", "-id")
        return Order.objects.active()

    def filtered_queryset(self):
        query = OrderListQuerySerializer(data=self.request.query_params.dict())
        query.is_valid(raise_exception=True)
        return filter_orders(Order.objects.active(), query.validated_data)

    def list(self, request, *args, **kwargs):
        queryset = self.filtered_queryset()
        page = self.paginate_queryset(queryset)
        if page is not None:
            response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        else:
            response = Response(self.get_serializer(queryset, many=True).data)
        response["X-Poll-Interval"] = str(settings.ORDER_POLL_INTERVAL_SECONDS)
        return response

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = services.create_order(serializer.validated_data, actor=request.user)
        return Response(PublicOrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        old_order = self.get_object()
        old_snapshot = {name: getattr(old_order, name) for name in CONTACT_FIELDS}
        order = serializer.save()
        remote = is_remote_area(order.delivery_address)
        if remote != order.is_remote_area:
            order.is_remote_area = remote
            order.save(update_fields=["is_remote_area", "updated_at"])
        record_audit(
            actor=self.request.user,
            action="order.update",
            entity_type="order",
            entity_id=order.id,
            payload={
                "before": old_snapshot,
                "after": {name: getattr(order, name) for name in CONTACT_FIELDS},
            },
        )

    def perform_destroy(self, instance):
        services.soft_delete(instance, actor=self.request.user)

    @action(detail=False, methods=["post"])
    def quote(self, request):
        serializer = QuoteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(services.quote_for(serializer.validated_data).as_dict())

    @action(detail=False, methods=["get"])
    def lookup(self, request):
        orders = services.lookup_orders(request.query_params.get("phone"), request.query_params.get("name"))
        return Response(PublicOrderSerializer(orders, many=True).data)

    @action(detail=True, methods=["patch"], url_path="status")
    def change_status(self, request, pk=None):
        order = self.get_object()
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        services.change_status(
            order,
            data["status"],
            actor=request.user,
            role=resolve_role(request.user),
            scheduled_date=data.get("scheduled_date"),
            seller_shipped_date=data.get("seller_shipped_date"),
            delivered_date=data.get("delivered_date"),
        )
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["patch"])
    def payment(self, request, pk=None):
        order = self.get_object()
        serializer = OrderPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        services.apply_payment(
            order,
            payment_status=data["payment_status"],
            actor=request.user,
            actual_paid_amount=data.get("actual_paid_amount"),
            shortfall_reason=data.get("shortfall_reason"),
        )
        return Response(self.get_serializer(order).data)

    @action(detail=False, methods=["get"])
    def trash(self, request):
        queryset = self.get_queryset()
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return Response(self.get_serializer(queryset, many=True).data)

    @action(detail=True, methods=["post"])
    def restore(self, request, pk=None):
        order = services.restore(self.get_object(), actor=request.user)
        return Response(self.get_serializer(order).data)

    @action(detail=True, methods=["delete"])
    def permanent(self, request, pk=None):
        confirm = str(request.query_params.get("confirm", "")).strip().lower() in TRUTHY_VALUES
        services.purge(self.get_object(), actor=request.user, confirm=confirm)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["patch"], url_path="seller-shipped")
    def seller_shipped(self, request):
        serializer = OrderIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.mark_seller_shipped(
            serializer.validated_data["ids"],
            actor=request.user,
            role=resolve_role(request.user),
            seller_shipped_date=serializer.validated_data.get("seller_shipped_date"),
        )
        return Response(result.as_dict())

    @action(detail=False, methods=["post"], url_path="bulk-delete")
    def bulk_delete(self, request):
        serializer = OrderIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.bulk_soft_delete(serializer.validated_data["ids"], actor=request.user)
        return Response(result.as_dict())

    @action(detail=False, methods=["post"], url_path="bulk-permanent-delete")
    def bulk_permanent_delete(self, request):
        serializer = OrderIdsSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = services.bulk_purge(
            serializer.validated_data["ids"],
            actor=request.user,
            confirm=serializer.validated_data["confirm"],
        )
        return Response(result.as_dict())

    @action(detail=True, methods=["get", "post"])
    def sms(self, request, pk=None):
        order = self.get_object()
        if request.method == "GET":
            return Response(SmsNotificationSerializer(order.sms_notifications.all(), many=True).data)

        serializer = SmsRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        message = (data.get("message") or "").strip() or services.default_sms_message(order, data["kind"])
        notification, shortcut_url = services.record_sms(
            order,
            message=message,
            actor=request.user,
            phone_number=(data.get("phone_number") or "").strip() or None,
        )
        return Response(
            {"notification": SmsNotificationSerializer(notification).data, "shortcut_url": shortcut_url},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=False, methods=["get"], url_path="export/excel")
    def export_excel(self, request):
        orders = self.filtered_queryset()
        filename = f"eden-orders-{timezone.localdate():%Y%m%d}.xlsx"
        record_audit(
            actor=request.user,
            action="order.export",
            entity_type="order",
            entity_id="export",
            payload={"filters": request.query_params.dict()},
        )
        return xlsx_response(filename, [("주문목록", EXPORT_HEADERS, [export_row(order) for order in orders])])
