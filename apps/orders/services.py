import logging
import re
from dataclasses import dataclass, field
from urllib.parse import quote

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import DomainError
from apps.orders.lifecycle import apply_transition
from apps.orders.models import Order, OrderStatus, PaymentStatus, SmsNotification, next_order_number
from apps.orders.payments import ShortfallReason, reconcile_payment
from apps.pricing.totals import quote_order
from apps.reports.revenue import order_figures
from apps.storeconfig.services import load_pricing_config

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5
SMS_SIGNATURE = "[에덴한과]"
SMS_MAX_LENGTH = 200


def normalize_phone(value):
    raw = str(value or "").strip()
    return re.sub(r"\D+", "", raw) or raw


def delivery_address_of(data):
    if data.get("recipient_address1"):
        parts = (data.get("recipient_address1"), data.get("recipient_address2"))
    else:
        parts = (data.get("address1"), data.get("address2"))
    return " ".join(part for part in parts if part)


def quote_for(data, config=None):
    return quote_order(
        config or load_pricing_config(),
        small_box_quantity=data.get("small_box_quantity", 0),
        large_box_quantity=data.get("large_box_quantity", 0),
        wrapping_quantity=data.get("wrapping_quantity", 0),
        address=delivery_address_of(data),
    )


def create_order(data, *, actor=None, config=None):
    """Price ``data`` against the current settings and persist the snapshot."""
    quote = quote_for(data, config)
    priced = {
        **data,
        "small_box_price": quote.unit_prices["smallBox"],
        "large_box_price": quote.unit_prices["largeBox"],
        "wrapping_price": quote.unit_prices["wrapping"],
        "small_box_cost": quote.unit_costs["smallBox"],
        "large_box_cost": quote.unit_costs["largeBox"],
        "wrapping_cost": quote.unit_costs["wrapping"],
        "shipping_fee": quote.shipping_fee,
        "total_amount": quote.total_amount,
        "is_remote_area": quote.is_remote_area,
    }

    for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
        try:
            with transaction.atomic():
                order = Order.objects.create(order_number=next_order_number(), **priced)
                break
        except IntegrityError:
            if attempt == ORDER_NUMBER_ATTEMPTS:
                raise
            logger.warning("Order number collision, retrying (attempt %s)", attempt)

    record_audit(
        actor=actor,
        action="order.create",
        entity_type="order",
        entity_id=order.id,
        payload={
            "order_number": order.order_number,
            "total_amount": order.total_amount,
            "shipping_fee": order.shipping_fee,
            "is_remote_area": order.is_remote_area,
        },
    )
    if order.is_remote_area:
        logger.info("Order %s ships to a remote area: %s", order.order_number, order.delivery_address)
    return order


@transaction.atomic
def change_status(order, target, *, actor, role, scheduled_date=None, seller_shipped_date=None, delivered_date=None):
    previous = order.status
    changed = apply_transition(
        order,
        target,
        role=role,
        scheduled_date=scheduled_date,
        seller_shipped_date=seller_shipped_date,
        delivered_date=delivered_date,
    )
    if not changed:
        return order
    order.save(update_fields=[*changed, "updated_at"])
    record_audit(
        actor=actor,
        action="order.status",
        entity_type="order",
        entity_id=order.id,
        payload={
            "from": previous,
            "to": order.status,
            "scheduled_date": order.scheduled_date.isoformat() if order.scheduled_date else None,
        },
    )
    return order


@transaction.atomic
def apply_payment(order, *, payment_status, actor, actual_paid_amount=None, shortfall_reason=None, now=None):
    """Record a payment decision on ``order`` without touching its total."""
    now = now or timezone.now()
    previous = {
        "payment_status": order.payment_status,
        "actual_paid_amount": order.actual_paid_amount,
        "discount_amount": order.discount_amount,
    }

    if payment_status == PaymentStatus.PENDING:
        order.payment_status = PaymentStatus.PENDING
        order.payment_confirmed_at = None
        order.actual_paid_amount = None
        order.discount_amount = None
        order.discount_reason = ""
        order.net_profit = None
    elif payment_status == PaymentStatus.REFUNDED:
        order.payment_status = PaymentStatus.REFUNDED
    else:
        if actual_paid_amount is None:
            if payment_status == PaymentStatus.PARTIAL:
                raise DomainError(
                    "부분결제는 실입금액이 필요합니다.",
                    code="invalid_payment",
                    fields={"actual_paid_amount": ["실입금액을 입력해주세요."]},
                )
            actual_paid_amount = order.total_amount
        try:
            result = reconcile_payment(order.total_amount, actual_paid_amount, shortfall_reason or ShortfallReason.PARTIAL)
        except ValueError as exc:
            raise DomainError(str(exc), code="invalid_payment", fields={"actual_paid_amount": [str(exc)]}) from exc

        # An explicit "partial" request keeps its label; reconciliation alone records "confirmed".
        order.payment_status = PaymentStatus.PARTIAL if payment_status == PaymentStatus.PARTIAL else result.payment_status
        order.payment_confirmed_at = now
        order.actual_paid_amount = actual_paid_amount
        order.discount_amount = result.discount_amount or None
        order.discount_reason = result.discount_reason
        order.net_profit = order_figures(order).net_profit

    order.save(
        update_fields=[
            "payment_status",
            "payment_confirmed_at",
            "actual_paid_amount",
            "discount_amount",
            "discount_reason",
            "net_profit",
            "updated_at",
        ]
    )
    record_audit(
        actor=actor,
        action="order.payment",
        entity_type="order",
        entity_id=order.id,
        payload={
            "before": previous,
            "after": {
                "payment_status": order.payment_status,
                "actual_paid_amount": order.actual_paid_amount,
                "discount_amount": order.discount_amount,
                "discount_reason": order.discount_reason,
            },
        },
    )
    return order


def soft_delete(order, *, actor):
    if order.is_deleted:
        raise DomainError("이미 휴지통에 있는 주문입니다.", code="already_deleted")
    order.deleted_at = timezone.now()
    order.save(update_fields=["deleted_at", "updated_at"])
    record_audit(
        actor=actor,
        action="order.delete",
        entity_type="order",
        entity_id=order.id,
        payload={"order_number": order.order_number},
    )
    return order


def restore(order, *, actor):
    if not order.is_deleted:
        raise DomainError("휴지통에 없는 주문입니다.", code="not_in_trash")
    order.deleted_at = None
    order.save(update_fields=["deleted_at", "updated_at"])
    record_audit(
        actor=actor,
        action="order.restore",
        entity_type="order",
        entity_id=order.id,
        payload={"order_number": order.order_number},
    )
    return order


def purge(order, *, actor, confirm=False):
    if not confirm:
        raise DomainError(
            "영구 삭제는 확인이 필요합니다.",
            code="confirmation_required",
            fields={"confirm": ["confirm=true 를 함께 보내주세요."]},
        )
    if not order.is_deleted:
        raise DomainError("휴지통에 있는 주문만 영구 삭제할 수 있습니다.", code="not_in_trash")
    record_audit(
        actor=actor,
        action="order.purge",
        entity_type="order",
        entity_id=order.id,
        payload={"order_number": order.order_number, "total_amount": order.total_amount},
    )
    order.delete()


@dataclass
class BatchResult:
    succeeded: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    def fail(self, order_id, code, detail):
        self.failed.append({"id": order_id, "code": code, "detail": detail})

    def as_dict(self):
        return {
            "succeeded": self.succeeded,
            "failed": self.failed,
            "succeeded_count": len(self.succeeded),
            "failed_count": len(self.failed),
        }


def run_batch(order_ids, operation):
    """Apply ``operation`` to each order in its own transaction.

    One failure never rolls back the others; each is reported in the result.
    """
    result = BatchResult()
    unique_ids = list(dict.fromkeys(order_ids))
    orders = Order.objects.in_bulk(unique_ids)
    for order_id in unique_ids:
        order = orders.get(order_id)
        if order is None:
            result.fail(order_id, "not_found", "주문을 찾을 수 없습니다.")
            continue
        try:
            with transaction.atomic():
                operation(order)
        except DomainError as exc:
            result.fail(order_id, exc.default_code, str(exc.detail))
        except (ValidationError, DatabaseError) as exc:
            logger.exception("Batch operation failed for order %s", order_id)
            result.fail(order_id, "error", "; ".join(getattr(exc, "messages", None) or [str(exc)]))
        else:
            result.succeeded.append(order_id)
    if result.failed:
        logger.warning("Batch finished with %s failures: %s", len(result.failed), result.failed)
    return result


def mark_seller_shipped(order_ids, *, actor, role, seller_shipped_date=None):
    def operation(order):
        if order.is_deleted:
            raise DomainError("휴지통에 있는 주문입니다.", code="already_deleted")
        change_status(order, OrderStatus.SELLER_SHIPPED, actor=actor, role=role, seller_shipped_date=seller_shipped_date)

    return run_batch(order_ids, operation)


def bulk_soft_delete(order_ids, *, actor):
    return run_batch(order_ids, lambda order: soft_delete(order, actor=actor))


def bulk_purge(order_ids, *, actor, confirm=False):
    if not confirm:
        raise DomainError(
            "영구 삭제는 확인이 필요합니다.",
            code="confirmation_required",
            fields={"confirm": ["confirm: true 를 함께 보내주세요."]},
        )
    return run_batch(order_ids, lambda order: purge(order, actor=actor, confirm=True))


def _sms_time(now=None):
    return timezone.localtime(now or timezone.now()).strftime("%m/%d %H:%M")


STATUS_SMS_TEXT = {
    OrderStatus.PENDING: "주문이 접수되었습니다. (주문시간: {time})",
    OrderStatus.SCHEDULED: "발송이 예약되었습니다. (예약시간: {time})",
    OrderStatus.SELLER_SHIPPED: "상품이 발송되었습니다. (발송시간: {time})",
    OrderStatus.DELIVERED: "상품이 배송완료되었습니다. (배송완료시간: {time})",
}


def default_sms_message(order, kind="status", now=None):
    time = _sms_time(now)
    name = order.customer_name
    if kind == "payment":
        if order.payment_status == PaymentStatus.CONFIRMED:
            text = f"입금이 확인되었습니다. (확인시간: {time})"
        else:
            text = STATUS_SMS_TEXT.get(order.status, "상태가 업데이트되었습니다. (업데이트시간: {time})").format(time=time)
        return f"{SMS_SIGNATURE} {name}님, {text} 감사합니다."
    if kind == "shipping":
        return f"{SMS_SIGNATURE} {name}님, 상품이 발송되었습니다. 3일이내 미 도착 시 반드시 연락주세요. 감사합니다. ^^"
    if kind == "custom":
        return f"{SMS_SIGNATURE} {name}님께 개별 안내드립니다."
    return f"{SMS_SIGNATURE} {name}님, 주문이 접수되었습니다. (주문시간: {time}) 감사합니다."


def build_shortcut_url(phone, message, shortcut_name=None):
    name = shortcut_name or settings.SMS_SHORTCUT_NAME
    payload = quote(f"{phone}/{message}", safe="!~*'()")
    return f"shortcuts://run-shortcut?name={quote(name, safe='')}&input={payload}"


def record_sms(order, *, message, actor, phone_number=None):
    if len(message) > SMS_MAX_LENGTH:
        raise DomainError(
            f"SMS는 {SMS_MAX_LENGTH}자 이내로 입력해주세요.",
            code="invalid_message",
            fields={"message": [f"{SMS_MAX_LENGTH}자 이내로 입력해주세요."]},
        )
    phone_number = phone_number or order.customer_phone
    notification = SmsNotification.objects.create(
        order=order,
        phone_number=phone_number,
        message=message,
        sent_by=actor if getattr(actor, "is_authenticated", False) else None,
    )
    record_audit(
        actor=actor,
        action="order.sms",
        entity_type="order",
        entity_id=order.id,
        payload={"phone_number": phone_number, "notification_id": notification.id},
    )
    return notification, build_shortcut_url(phone_number, message)


def lookup_orders(phone, name):
    digits = normalize_phone(phone)
    if not digits or not name:
        raise DomainError(
            "전화번호와 이름을 모두 입력해주세요.",
            code="invalid_lookup",
            fields={"phone": ["필수 항목입니다."], "name": ["필수 항목입니다."]},
        )
    candidates = Order.objects.active().filter(customer_name=name.strip())
    return [order for order in candidates if normalize_phone(order.customer_phone) == digits]
