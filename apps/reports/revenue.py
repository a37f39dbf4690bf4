from dataclasses import asdict, dataclass, fields

PRODUCT_LINES = (
    ("small_box", "small_box_quantity", "small_box_price", "small_box_cost"),
    ("large_box", "large_box_quantity", "large_box_price", "large_box_cost"),
    ("wrapping", "wrapping_quantity", "wrapping_price", "wrapping_cost"),
)


@dataclass(frozen=True)
class RevenueSummary:
    """Additive revenue figures; ``a + b`` equals the summary of both order sets."""

    count: int = 0
    small_box_quantity: int = 0
    large_box_quantity: int = 0
    wrapping_quantity: int = 0
    small_box_amount: int = 0
    large_box_amount: int = 0
    wrapping_amount: int = 0
    shipping_orders: int = 0
    shipping_amount: int = 0
    total_amount: int = 0
    actual_revenue: int = 0
    total_discounts: int = 0
    total_unpaid: int = 0
    product_cost: int = 0
    total_cost: int = 0
    net_profit: int = 0

    def __add__(self, other):
        if not isinstance(other, RevenueSummary):
            return NotImplemented
        return RevenueSummary(**{f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)})

    def as_dict(self):
        return asdict(self)


def unpaid_amount(order):
    actual = order.actual_paid_amount
    if actual is not None and actual < order.total_amount and not order.discount_amount:
        return order.total_amount - actual
    return 0


def order_figures(order):
    """Figures for a single order, priced from the order's own snapshot."""
    quantities = {}
    amounts = {}
    product_cost = 0
    for name, quantity_field, price_field, cost_field in PRODUCT_LINES:
        quantity = getattr(order, quantity_field)
        quantities[f"{name}_quantity"] = quantity
        amounts[f"{name}_amount"] = quantity * getattr(order, price_field)
        product_cost += quantity * getattr(order, cost_field)

    total = order.total_amount
    shipping = order.shipping_fee
    discount = order.discount_amount or 0
    unpaid = unpaid_amount(order)
    actual = order.actual_paid_amount if order.actual_paid_amount is not None else total

    return RevenueSummary(
        count=1,
        **quantities,
        **amounts,
        shipping_orders=1 if shipping > 0 else 0,
        shipping_amount=shipping,
        total_amount=total,
        actual_revenue=actual,
        total_discounts=discount,
        total_unpaid=unpaid,
        product_cost=product_cost,
        total_cost=product_cost + shipping,
        net_profit=total - product_cost - shipping - discount - unpaid,
    )


def summarize_orders(orders):
    summary = RevenueSummary()
    for order in orders:
        summary = summary + order_figures(order)
    return summary
