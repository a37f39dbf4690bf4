from dataclasses import dataclass

from django.db import models

from apps.orders.models import PaymentStatus


class ShortfallReason(models.TextChoices):
    PARTIAL = "partial", "부분미입금"
    DISCOUNT = "discount", "할인"


class PaymentOutcome(models.TextChoices):
    PAID_IN_FULL = "paid_in_full", "입금완료"
    PARTIAL = "partial", "부분미입금"
    DISCOUNT = "discount", "할인"
    OVERPAID = "overpaid", "과납입"


@dataclass(frozen=True)
class Reconciliation:
    outcome: str
    difference: int
    payment_status: str
    discount_amount: int
    unpaid_amount: int
    discount_reason: str


def format_won(amount):
    return f"{amount:,}원"


def reconcile_payment(total_amount, actual_paid_amount, shortfall_reason=ShortfallReason.PARTIAL):
    """Classify an actual deposit against the order total.

    ``total_amount`` is never adjusted: a shortfall is recorded either as a
    discount the seller granted or as money still owed, and an overpayment
    is only noted.
    """
    if actual_paid_amount < 0:
        raise ValueError("실입금액은 0원 이상이어야 합니다.")

    difference = total_amount - actual_paid_amount
    if difference > 0:
        if (shortfall_reason or ShortfallReason.PARTIAL) == ShortfallReason.DISCOUNT:
            return Reconciliation(
                outcome=PaymentOutcome.DISCOUNT,
                difference=difference,
                payment_status=PaymentStatus.CONFIRMED,
                discount_amount=difference,
                unpaid_amount=0,
                discount_reason=f"할인 (할인금액: {format_won(difference)})",
            )
        return Reconciliation(
            outcome=PaymentOutcome.PARTIAL,
            difference=difference,
            payment_status=PaymentStatus.CONFIRMED,
            discount_amount=0,
            unpaid_amount=difference,
            discount_reason=f"부분미입금 (미입금: {format_won(difference)})",
        )
    if difference < 0:
        return Reconciliation(
            outcome=PaymentOutcome.OVERPAID,
            difference=difference,
            payment_status=PaymentStatus.CONFIRMED,
            discount_amount=0,
            unpaid_amount=0,
            discount_reason=f"과납입 ({format_won(-difference)} 추가 입금)",
        )
    return Reconciliation(
        outcome=PaymentOutcome.PAID_IN_FULL,
        difference=0,
        payment_status=PaymentStatus.CONFIRMED,
        discount_amount=0,
        unpaid_amount=0,
        discount_reason="",
    )
