from apps.pricing.price_table import BOX_KEYS, ShippingMode


def shipping_quantity(quantities, config):
    """Boxes counted towards the free-shipping threshold.

    Wrapping never counts, and neither does any box flagged with
    ``<key>ExcludeFromShipping``.
    """
    return sum(int(quantities.get(key) or 0) for key in BOX_KEYS if key not in config.excluded_from_shipping)


def compute_shipping_fee(quantity, subtotal, config, *, counted_quantity=None):
    if quantity <= 0:
        return 0
    if counted_quantity is None:
        counted_quantity = quantity

    if config.free_shipping_mode == ShippingMode.AMOUNT:
        return 0 if subtotal >= config.free_shipping_min_amount else config.shipping_fee
    return 0 if counted_quantity >= config.free_shipping_threshold else config.shipping_fee
