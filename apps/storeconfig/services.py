from django.db import transaction

from apps.pricing.price_table import PRODUCTS, DEFAULT_FREE_SHIPPING_THRESHOLD, DEFAULT_SHIPPING_FEE, PricingConfig
from apps.storeconfig.models import DashboardContent, Setting

DEFAULT_SETTINGS = [
    *[(p.price_key, str(p.default_price), f"{p.label} 판매가") for p in PRODUCTS],
    *[(p.cost_key, str(p.default_cost), f"{p.label} 원가") for p in PRODUCTS],
    ("shippingFee", str(DEFAULT_SHIPPING_FEE), "기본 배송비"),
    ("freeShippingThreshold", str(DEFAULT_FREE_SHIPPING_THRESHOLD), "무료배송 기준 상자 수"),
    ("freeShippingType", "quantity", "무료배송 기준 (quantity 또는 amount)"),
    ("freeShippingMinAmount", "0", "금액 기준 무료배송 최소 주문금액"),
]

DEFAULT_DASHBOARD_CONTENT = [
    ("smallBoxName", "한과1호(약 1.1kg)"),
    ("largeBoxName", "한과2호(약 1.3kg)"),
    ("smallBoxDimensions", "약 35.5×21×11.2cm"),
    ("largeBoxDimensions", "약 37×23×11.5cm"),
    ("wrappingName", "보자기"),
    ("wrappingPrice", "개당 +1,000원"),
    ("mainTitle", "진안에서 온 정성 가득 유과"),
    ("mainDescription", "부모님이 100% 국내산 찹쌀로 직접 만드는 찹쌀유과"),
    ("heroImageUrl", ""),
    ("aboutText", "이든 한과는 전통 방식으로 만든 건강한 한과입니다."),
]


def settings_snapshot():
    return dict(Setting.objects.values_list("key", "value"))


def load_pricing_config():
    return PricingConfig.from_settings(settings_snapshot())


def upsert_setting(key, value, description=None):
    defaults = {"value": value}
    if description is not None:
        defaults["description"] = description
    return Setting.objects.update_or_create(key=key, defaults=defaults)


@transaction.atomic
def seed_defaults(overwrite=False):
    """Create the known settings and storefront copy, keeping existing values unless ``overwrite``."""
    created_settings = 0
    for key, value, description in DEFAULT_SETTINGS:
        if overwrite:
            _, created = upsert_setting(key, value, description)
        else:
            _, created = Setting.objects.get_or_create(key=key, defaults={"value": value, "description": description})
        created_settings += int(created)

    created_content = 0
    for key, value in DEFAULT_DASHBOARD_CONTENT:
        _, created = DashboardContent.objects.get_or_create(key=key, defaults={"value": value})
        created_content += int(created)
    return created_settings, created_content
