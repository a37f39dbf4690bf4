from django.utils import timezone
from rest_framework import status

from apps.common.exceptions import DomainError
from apps.common.permissions import ROLE_CAPABILITIES
from apps.orders.models import OrderStatus

TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.SCHEDULED, OrderStatus.SELLER_SHIPPED},
    OrderStatus.SCHEDULED: {OrderStatus.PENDING, OrderStatus.SELLER_SHIPPED},
    OrderStatus.SELLER_SHIPPED: {OrderStatus.PENDING, OrderStatus.SCHEDULED, OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
}

# Delivery is confirmed by the person who hands the parcel over.
TRANSITION_CAPABILITIES = {
    OrderStatus.DELIVERED: "orders.deliver",
}


class OrderTransitionError(DomainError):
    default_code = "invalid_transition"
    default_detail = "허용되지 않는 주문 상태 변경입니다."


def role_may_enter(target, role):
    capability = TRANSITION_CAPABILITIES.get(target)
    return capability is None or capability in ROLE_CAPABILITIES.get(role, set())


def allowed_transitions(current, role):
    return {
        target
        for target in TRANSITIONS.get(current, set())
        if role_may_enter(target, role)
    }


def check_transition(current, target, role, scheduled_date=None):
    if target not in OrderStatus.values:
        raise OrderTransitionError(
            "알 수 없는 주문 상태입니다.", fields={"status": [f"'{target}'은(는) 올바른 상태가 아닙니다."]}
        )
    if target == current and target != OrderStatus.SCHEDULED:
        return
    if target != current and target not in TRANSITIONS.get(current, set()):
        raise OrderTransitionError(
            f"'{OrderStatus(current).label}' 상태에서 '{OrderStatus(target).label}' 상태로 변경할 수 없습니다."
        )
    if not role_may_enter(target, role):
        raise OrderTransitionError(
            "배송완료 처리는 매니저만 할 수 있습니다.",
            code="forbidden_transition",
            status_code=status.HTTP_403_FORBIDDEN,
        )
    if target == OrderStatus.SCHEDULED and not scheduled_date:
        raise OrderTransitionError(
            "발송예약일을 입력해주세요.", fields={"scheduled_date": ["발송예약 시 예약일이 필요합니다."]}
        )


def apply_transition(order, target, *, role, scheduled_date=None, seller_shipped_date=None, delivered_date=None, now=None):
    """Move ``order`` to ``target`` in memory and return the changed field names.

    Re-applying the current status is a no-op, except that re-scheduling
    replaces the scheduled date. The requested ship date survives a return
    to pending and is reused when the order is scheduled again.
    """
    current = order.status
    scheduled_date = scheduled_date or order.scheduled_date
    check_transition(current, target, role, scheduled_date=scheduled_date)
    if target == current and target != OrderStatus.SCHEDULED:
        return []

    now = now or timezone.now()
    order.status = target
    if target == OrderStatus.PENDING:
        order.seller_shipped_date = None
    elif target == OrderStatus.SCHEDULED:
        order.scheduled_date = scheduled_date
        order.seller_shipped_date = None
    elif target == OrderStatus.SELLER_SHIPPED:
        order.seller_shipped_date = seller_shipped_date or now
    elif target == OrderStatus.DELIVERED:
        order.delivered_date = delivered_date or now
    return ["status", "scheduled_date", "seller_shipped_date", "delivered_date"]
