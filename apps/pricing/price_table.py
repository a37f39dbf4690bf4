import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import models

logger = logging.getLogger(__name__)

SMALL_BOX = 0
LARGE_BOX = 1
WRAPPING = 2

DEFAULT_SHIPPING_FEE = 4000
DEFAULT_FREE_SHIPPING_THRESHOLD = 6
TRUTHY_VALUES = {"1", "true", "yes", "on", "y"}


class ShippingMode(models.TextChoices):
    QUANTITY = "quantity", "Quantity"
    AMOUNT = "amount", "Amount"


@dataclass(frozen=True)
class Product:
    index: int
    key: str
    label: str
    default_price: int
    default_cost: int

    @property
    def price_key(self):
        return f"{self.key}Price"

    @property
    def cost_key(self):
        return f"{self.key}Cost"

    @property
    def exclude_key(self):
        return f"{self.key}ExcludeFromShipping"


PRODUCTS = (
    Product(SMALL_BOX, "smallBox", "한과1호", 19000, 15000),
    Product(LARGE_BOX, "largeBox", "한과2호", 21000, 17000),
    Product(WRAPPING, "wrapping", "보자기", 1000, 500),
)
PRODUCTS_BY_INDEX = {product.index: product for product in PRODUCTS}
PRODUCTS_BY_KEY = {product.key: product for product in PRODUCTS}
BOX_KEYS = (PRODUCTS_BY_INDEX[SMALL_BOX].key, PRODUCTS_BY_INDEX[LARGE_BOX].key)


def parse_amount(value, fallback):
    """Parse a stored setting into a non-negative integer amount.

    Missing, blank, negative or unparsable values return ``fallback``.
    """
    if value is None:
        return fallback
    text = str(value).strip().replace(",", "").replace("원", "")
    if not text:
        return fallback
    try:
        amount = int(Decimal(text))
    except (InvalidOperation, ValueError):
        logger.warning("Unparsable amount setting %r, falling back to %s", value, fallback)
        return fallback
    if amount < 0:
        logger.warning("Negative amount setting %r, falling back to %s", value, fallback)
        return fallback
    return amount


def parse_flag(value):
    return str(value or "").strip().lower() in TRUTHY_VALUES


def get_unit_price(settings, index, fallback=None):
    product = PRODUCTS_BY_INDEX.get(index)
    if product is None:
        return fallback or 0
    return parse_amount(settings.get(product.price_key), product.default_price if fallback is None else fallback)


def get_unit_cost(settings, index, fallback=None):
    product = PRODUCTS_BY_INDEX.get(index)
    if product is None:
        return fallback or 0
    return parse_amount(settings.get(product.cost_key), product.default_cost if fallback is None else fallback)


@dataclass(frozen=True)
class PricingConfig:
    """Immutable snapshot of the price/cost/shipping settings used by the calculators."""

    prices: dict = field(default_factory=lambda: {p.key: p.default_price for p in PRODUCTS})
    costs: dict = field(default_factory=lambda: {p.key: p.default_cost for p in PRODUCTS})
    shipping_fee: int = DEFAULT_SHIPPING_FEE
    free_shipping_threshold: int = DEFAULT_FREE_SHIPPING_THRESHOLD
    free_shipping_mode: str = ShippingMode.QUANTITY
    free_shipping_min_amount: int = 0
    excluded_from_shipping: frozenset = frozenset()

    @classmethod
    def from_settings(cls, settings):
        mode = str(settings.get("freeShippingType") or ShippingMode.QUANTITY).strip().lower()
        if mode not in ShippingMode.values:
            logger.warning("Unknown freeShippingType %r, using quantity mode", mode)
            mode = ShippingMode.QUANTITY
        return cls(
            prices={p.key: get_unit_price(settings, p.index) for p in PRODUCTS},
            costs={p.key: get_unit_cost(settings, p.index) for p in PRODUCTS},
            shipping_fee=parse_amount(settings.get("shippingFee"), DEFAULT_SHIPPING_FEE),
            free_shipping_threshold=parse_amount(settings.get("freeShippingThreshold"), DEFAULT_FREE_SHIPPING_THRESHOLD),
            free_shipping_mode=ShippingMode(mode),
            free_shipping_min_amount=parse_amount(settings.get("freeShippingMinAmount"), 0),
            excluded_from_shipping=frozenset(p.key for p in PRODUCTS if parse_flag(settings.get(p.exclude_key))),
        )

    def unit_price(self, key):
        return self.prices.get(key, 0)

    def unit_cost(self, key):
        return self.costs.get(key, 0)
