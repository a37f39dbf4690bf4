import re

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models.base import DEFERRED
from django.utils import timezone

ORDER_NUMBER_PREFIX = "ED"

# Priced at creation; later edits would desynchronise total_amount from its lines.
SNAPSHOT_FIELDS = (
    "small_box_quantity",
    "large_box_quantity",
    "wrapping_quantity",
    "small_box_price",
    "large_box_price",
    "wrapping_price",
    "small_box_cost",
    "large_box_cost",
    "wrapping_cost",
    "shipping_fee",
    "total_amount",
)


class OrderStatus(models.TextChoices):
    PENDING = "pending", "주문접수"
    SCHEDULED = "scheduled", "발송예약"
    SELLER_SHIPPED = "seller_shipped", "발송완료"
    DELIVERED = "delivered", "배송완료"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "입금대기"
    CONFIRMED = "confirmed", "입금완료"
    PARTIAL = "partial", "부분결제"
    REFUNDED = "refunded", "환불"


def next_order_number(today=None):
    today = today or timezone.localdate()
    prefix = f"{ORDER_NUMBER_PREFIX}{today:%Y%m%d}"
    pattern = re.compile(rf"^{prefix}(\d+)$")
    existing = Order.objects.filter(order_number__startswith=prefix).values_list("order_number", flat=True)
    sequences = [int(match.group(1)) for match in map(pattern.match, existing) if match]
    return f"{prefix}{max(sequences, default=0) + 1:02d}"


class OrderQuerySet(models.QuerySet):
    def active(self):
        return self.filter(deleted_at__isnull=True)

    def trashed(self):
        return self.filter(deleted_at__isnull=False)

    def payment_confirmed(self):
        return self.filter(payment_status__in=[PaymentStatus.CONFIRMED, PaymentStatus.PARTIAL])


class Order(models.Model):
    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer_name = models.CharField(max_length=100)
    customer_phone = models.CharField(max_length=30)
    depositor_name = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=10, blank=True)
    address1 = models.CharField(max_length=255)
    address2 = models.CharField(max_length=255, blank=True)
    special_requests = models.TextField(blank=True)

    recipient_name = models.CharField(max_length=100, blank=True)
    recipient_phone = models.CharField(max_length=30, blank=True)
    recipient_zip_code = models.CharField(max_length=10, blank=True)
    recipient_address1 = models.CharField(max_length=255, blank=True)
    recipient_address2 = models.CharField(max_length=255, blank=True)

    small_box_quantity = models.PositiveIntegerField(default=0)
    large_box_quantity = models.PositiveIntegerField(default=0)
    wrapping_quantity = models.PositiveIntegerField(default=0)

    small_box_price = models.PositiveIntegerField(default=0)
    large_box_price = models.PositiveIntegerField(default=0)
    wrapping_price = models.PositiveIntegerField(default=0)
    small_box_cost = models.PositiveIntegerField(default=0)
    large_box_cost = models.PositiveIntegerField(default=0)
    wrapping_cost = models.PositiveIntegerField(default=0)
    shipping_fee = models.PositiveIntegerField(default=0)
    total_amount = models.PositiveIntegerField()
    is_remote_area = models.BooleanField(default=False)

    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING)
    scheduled_date = models.DateField(null=True, blank=True)
    seller_shipped_date = models.DateTimeField(null=True, blank=True)
    delivered_date = models.DateTimeField(null=True, blank=True)

    payment_status = models.CharField(max_length=20, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_confirmed_at = models.DateTimeField(null=True, blank=True)
    actual_paid_amount = models.PositiveIntegerField(null=True, blank=True)
    discount_amount = models.PositiveIntegerField(null=True, blank=True)
    discount_reason = models.CharField(max_length=255, blank=True)
    net_profit = models.IntegerField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["deleted_at", "created_at"], name="order_deleted_created_idx"),
            models.Index(fields=["status"], name="order_status_idx"),
            models.Index(fields=["payment_status"], name="order_payment_status_idx"),
            models.Index(fields=["customer_phone"], name="order_customer_phone_idx"),
        ]

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_snapshot = {
            name: value
            for name, value in zip(field_names, values)
            if name in SNAPSHOT_FIELDS and value is not DEFERRED
        }
        return instance

    def changed_snapshot_fields(self):
        loaded = getattr(self, "_loaded_snapshot", {})
        return [name for name, value in loaded.items() if getattr(self, name) != value]

    def save(self, *args, **kwargs):
        changed = self.changed_snapshot_fields()
        if changed:
            raise ValidationError({name: "주문 후에는 수량과 금액을 변경할 수 없습니다." for name in changed})
        if not self.order_number:
            self.order_number = next_order_number()
        super().save(*args, **kwargs)
        self._loaded_snapshot = {name: getattr(self, name) for name in SNAPSHOT_FIELDS}

    @property
    def is_deleted(self):
        return self.deleted_at is not None

    @property
    def box_quantity(self):
        return self.small_box_quantity + self.large_box_quantity

    @property
    def has_recipient(self):
        return bool(self.recipient_address1)

    @property
    def delivery_name(self):
        return self.recipient_name if self.has_recipient and self.recipient_name else self.customer_name

    @property
    def delivery_phone(self):
        return self.recipient_phone if self.has_recipient and self.recipient_phone else self.customer_phone

    @property
    def delivery_address(self):
        if self.has_recipient:
            parts = (self.recipient_address1, self.recipient_address2)
        else:
            parts = (self.address1, self.address2)
        return " ".join(part for part in parts if part)

    def __str__(self):
        return f"{self.order_number} - {self.customer_name}"


class SmsNotification(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="sms_notifications")
    phone_number = models.CharField(max_length=30)
    message = models.TextField()
    sent_by = models.ForeignKey("accounts.User", on_delete=models.SET_NULL, null=True, blank=True)
    sent_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-sent_at", "-id"]

    def __str__(self):
        return f"{self.order_id} -> {self.phone_number}"
