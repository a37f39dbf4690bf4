from dataclasses import asdict, dataclass

from apps.pricing.price_table import PRODUCTS, PRODUCTS_BY_KEY
from apps.pricing.remote_area import is_remote_area
from apps.pricing.shipping import compute_shipping_fee, shipping_quantity


def compute_total(items, unit_prices, shipping_fee):
    """Sum of quantity * unit price over ``items`` plus the shipping fee."""
    subtotal = sum(int(quantity or 0) * int(unit_prices.get(key, 0)) for key, quantity in items.items())
    return subtotal + int(shipping_fee)


def item_rule_errors(small_box_quantity, large_box_quantity, wrapping_quantity):
    """Return field errors for a set of quantities, empty when the order is acceptable.

    At least one box is required and each wrapping cloth needs a box to wrap.
    """
    errors = {}
    quantities = {
        "small_box_quantity": small_box_quantity,
        "large_box_quantity": large_box_quantity,
        "wrapping_quantity": wrapping_quantity,
    }
    for name, value in quantities.items():
        if value < 0:
            errors[name] = ["수량은 0 이상이어야 합니다."]
    if errors:
        return errors

    boxes = small_box_quantity + large_box_quantity
    if boxes < 1:
        errors["small_box_quantity"] = ["한과 상자를 1개 이상 주문해야 합니다."]
    elif wrapping_quantity > boxes:
        errors["wrapping_quantity"] = ["보자기 수량은 상자 수량보다 많을 수 없습니다."]
    return errors


@dataclass(frozen=True)
class OrderQuote:
    quantities: dict
    unit_prices: dict
    unit_costs: dict
    line_totals: dict
    subtotal: int
    shipping_quantity: int
    shipping_fee: int
    total_amount: int
    is_remote_area: bool

    def as_dict(self):
        data = asdict(self)
        data["lines"] = [
            {
                "product": product.key,
                "label": product.label,
                "quantity": self.quantities[product.key],
                "unit_price": self.unit_prices[product.key],
                "line_total": self.line_totals[product.key],
            }
            for product in PRODUCTS
        ]
        return data


def quote_order(config, *, small_box_quantity=0, large_box_quantity=0, wrapping_quantity=0, address=""):
    quantities = {
        "smallBox": int(small_box_quantity or 0),
        "largeBox": int(large_box_quantity or 0),
        "wrapping": int(wrapping_quantity or 0),
    }
    unit_prices = {key: config.unit_price(key) for key in PRODUCTS_BY_KEY}
    unit_costs = {key: config.unit_cost(key) for key in PRODUCTS_BY_KEY}
    line_totals = {key: quantities[key] * unit_prices[key] for key in PRODUCTS_BY_KEY}
    subtotal = sum(line_totals.values())

    boxes = quantities["smallBox"] + quantities["largeBox"]
    counted = shipping_quantity(quantities, config)
    fee = compute_shipping_fee(boxes, subtotal, config, counted_quantity=counted)

    return OrderQuote(
        quantities=quantities,
        unit_prices=unit_prices,
        unit_costs=unit_costs,
        line_totals=line_totals,
        subtotal=subtotal,
        shipping_quantity=counted,
        shipping_fee=fee,
        total_amount=compute_total(quantities, unit_prices, fee),
        is_remote_area=is_remote_area(address),
    )
