from django.utils import timezone
from rest_framework import serializers

from apps.orders.models import Order, OrderStatus, PaymentStatus, SmsNotification
from apps.orders.payments import ShortfallReason
from apps.orders.querysets import ORDERING_FIELDS
from apps.pricing.totals import item_rule_errors
from apps.reports.revenue import unpaid_amount

CONTACT_FIELDS = [
    "customer_name",
    "customer_phone",
    "depositor_name",
    "zip_code",
    "address1",
    "address2",
    "special_requests",
    "recipient_name",
    "recipient_phone",
    "recipient_zip_code",
    "recipient_address1",
    "recipient_address2",
]
QUANTITY_FIELDS = ["small_box_quantity", "large_box_quantity", "wrapping_quantity"]
SMS_KINDS = ["status", "payment", "shipping", "custom"]


class CommaSeparatedChoiceField(serializers.Field):
    def __init__(self, choices, **kwargs):
        self.choices = set(choices)
        super().__init__(**kwargs)

    def to_internal_value(self, data):
        values = [value.strip() for value in str(data).split(",") if value.strip()]
        invalid = [value for value in values if value not in self.choices]
        if invalid:
            raise serializers.ValidationError(f"허용되지 않는 값입니다: {', '.join(invalid)}")
        return values

    def to_representation(self, value):
        return ",".join(value)


class OrderListQuerySerializer(serializers.Serializer):
    status = CommaSeparatedChoiceField(OrderStatus.values, required=False)
    payment_status = CommaSeparatedChoiceField(PaymentStatus.values, required=False)
    date_from = serializers.DateField(required=False)
    date_to = serializers.DateField(required=False)
    q = serializers.CharField(required=False, allow_blank=True)
    remote = serializers.BooleanField(allow_null=True, default=None)
    ordering = serializers.CharField(required=False)

    def validate_ordering(self, value):
        if value.lstrip("-") not in ORDERING_FIELDS:
            raise serializers.ValidationError(f"정렬할 수 없는 항목입니다: {value}")
        return value

    def validate(self, attrs):
        date_from = attrs.get("date_from")
        date_to = attrs.get("date_to")
        if date_from and date_to and date_from > date_to:
            raise serializers.ValidationError({"date_from": "시작일은 종료일보다 늦을 수 없습니다."})
        return attrs


class OrderCreateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Order
        fields = [*CONTACT_FIELDS, *QUANTITY_FIELDS, "scheduled_date"]

    def validate_scheduled_date(self, value):
        if value and value < timezone.localdate():
            raise serializers.ValidationError("발송희망일은 오늘 이후로 선택해주세요.")
        return value

    def validate(self, attrs):
        errors = item_rule_errors(
            attrs.get("small_box_quantity", 0),
            attrs.get("large_box_quantity", 0),
            attrs.get("wrapping_quantity", 0),
        )
        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class QuoteSerializer(serializers.Serializer):
    small_box_quantity = serializers.IntegerField(min_value=0, default=0)
    large_box_quantity = serializers.IntegerField(min_value=0, default=0)
    wrapping_quantity = serializers.IntegerField(min_value=0, default=0)
    address1 = serializers.CharField(allow_blank=True, default="")
    address2 = serializers.CharField(allow_blank=True, default="")
    recipient_address1 = serializers.CharField(allow_blank=True, default="")
    recipient_address2 = serializers.CharField(allow_blank=True, default="")


class PublicOrderSerializer(serializers.ModelSerializer):
    status_label = serializers.CharField(source="get_status_display", read_only=True)
    payment_status_label = serializers.CharField(source="get_payment_status_display", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "address1",
            "address2",
            "recipient_name",
            "recipient_address1",
            "recipient_address2",
            *QUANTITY_FIELDS,
            "shipping_fee",
            "total_amount",
            "is_remote_area",
            "status",
            "status_label",
            "payment_status",
            "payment_status_label",
            "scheduled_date",
            "seller_shipped_date",
            "delivered_date",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    status_label = serializers.CharField(source="get_status_display", read_only=True)
    payment_status_label = serializers.CharField(source="get_payment_status_display", read_only=True)
    delivery_address = serializers.CharField(read_only=True)
    unpaid_amount = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            *CONTACT_FIELDS,
            *QUANTITY_FIELDS,
            "small_box_price",
            "large_box_price",
            "wrapping_price",
            "small_box_cost",
            "large_box_cost",
            "wrapping_cost",
            "shipping_fee",
            "total_amount",
            "is_remote_area",
            "delivery_address",
            "status",
            "status_label",
            "scheduled_date",
            "seller_shipped_date",
            "delivered_date",
            "payment_status",
            "payment_status_label",
            "payment_confirmed_at",
            "actual_paid_amount",
            "discount_amount",
            "discount_reason",
            "unpaid_amount",
            "net_profit",
            "created_at",
            "updated_at",
            "deleted_at",
        ]
        read_only_fields = [name for name in fields if name not in CONTACT_FIELDS]

    def get_unpaid_amount(self, obj):
        return unpaid_amount(obj)


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    scheduled_date = serializers.DateField(required=False, allow_null=True)
    seller_shipped_date = serializers.DateTimeField(required=False, allow_null=True)
    delivered_date = serializers.DateTimeField(required=False, allow_null=True)


class OrderPaymentSerializer(serializers.Serializer):
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices)
    actual_paid_amount = serializers.IntegerField(min_value=0, required=False, allow_null=True)
    shortfall_reason = serializers.ChoiceField(choices=ShortfallReason.choices, required=False, allow_null=True)


class OrderIdsSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    confirm = serializers.BooleanField(default=False)
    seller_shipped_date = serializers.DateTimeField(required=False, allow_null=True)


class SmsRequestSerializer(serializers.Serializer):
    kind = serializers.ChoiceField(choices=SMS_KINDS, default="status")
    message = serializers.CharField(required=False, allow_blank=True, max_length=200)
    phone_number = serializers.CharField(required=False, allow_blank=True, max_length=30)


class SmsNotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = SmsNotification
        fields = ["id", "order", "phone_number", "message", "sent_by", "sent_at"]
        read_only_fields = fields
