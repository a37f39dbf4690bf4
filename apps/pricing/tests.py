from django.test import SimpleTestCase

from apps.pricing.price_table import (
    LARGE_BOX,
    SMALL_BOX,
    WRAPPING,
    PricingConfig,
    ShippingMode,
    get_unit_cost,
    get_unit_price,
    parse_amount,
)
from apps.pricing.remote_area import is_remote_area
from apps.pricing.shipping import compute_shipping_fee, shipping_quantity
from apps.pricing.totals import compute_total, item_rule_errors, quote_order


class PriceTableTests(SimpleTestCase):
    def test_defaults_when_settings_missing(self):
        self.assertEqual(get_unit_price({}, SMALL_BOX), 19000)
        self.assertEqual(get_unit_price({}, LARGE_BOX), 21000)
        self.assertEqual(get_unit_price({}, WRAPPING), 1000)
        self.assertEqual(get_unit_cost({}, SMALL_BOX), 15000)
        self.assertEqual(get_unit_cost({}, LARGE_BOX), 17000)
        self.assertEqual(get_unit_cost({}, WRAPPING), 500)

    def test_configured_values_win(self):
        settings = {"smallBoxPrice": "20000", "largeBoxCost": "18,000"}
        self.assertEqual(get_unit_price(settings, SMALL_BOX), 20000)
        self.assertEqual(get_unit_cost(settings, LARGE_BOX), 18000)

    def test_malformed_values_fall_back(self):
        with self.assertLogs("apps.pricing.price_table", level="WARNING"):
            self.assertEqual(get_unit_price({"smallBoxPrice": "abc"}, SMALL_BOX), 19000)
        self.assertEqual(get_unit_price({"smallBoxPrice": ""}, SMALL_BOX), 19000)
        self.assertEqual(get_unit_price({}, 9, fallback=777), 777)
        self.assertEqual(parse_amount("-5", 10), 10)

    def test_config_from_settings(self):
        config = PricingConfig.from_settings(
            {
                "shippingFee": "3500",
                "freeShippingThreshold": "10",
                "freeShippingType": "amount",
                "freeShippingMinAmount": "100000",
                "largeBoxExcludeFromShipping": "true",
            }
        )
        self.assertEqual(config.shipping_fee, 3500)
        self.assertEqual(config.free_shipping_threshold, 10)
        self.assertEqual(config.free_shipping_mode, ShippingMode.AMOUNT)
        self.assertEqual(config.free_shipping_min_amount, 100000)
        self.assertEqual(config.excluded_from_shipping, frozenset({"largeBox"}))

    def test_unknown_shipping_type_uses_quantity_mode(self):
        with self.assertLogs("apps.pricing.price_table", level="WARNING"):
            config = PricingConfig.from_settings({"freeShippingType": "weight"})
        self.assertEqual(config.free_shipping_mode, ShippingMode.QUANTITY)


class RemoteAreaTests(SimpleTestCase):
    def test_remote_addresses(self):
        self.assertTrue(is_remote_area("제주특별자치도 제주시 첨단로 242"))
        self.assertTrue(is_remote_area("경상북도 울릉군 울릉읍 도동리"))
        self.assertTrue(is_remote_area("인천광역시 옹진군 백령면 백령도"))
        self.assertTrue(is_remote_area("부산광역시 영도구 태종로"))

    def test_every_keyword_is_remote(self):
        addresses = [
            "제주특별자치도 애월읍",
            "제주도 한림읍",
            "제주시 연동",
            "서귀포 중문동",
            "서귀포시 대정읍",
            "경상북도 울릉군 독도리",
            "독도 이사부길",
            "인천광역시 강화군 강화읍",
            "강화도 마니산로",
            "강화 길상면",
            "인천광역시 옹진군 백령면",
            "백령도 진촌리",
            "옹진군 연평면",
            "연평도 남부리",
            "신안군 흑산면",
            "흑산도 예리",
            "전라남도 진도군 진도읍",
            "진도 임회면",
            "대정읍 가파리",
            "가파도 상동",
            "울릉도 저동리",
            "부산광역시 영도구 동삼동",
            "영도 남항동",
        ]
        for address in addresses:
            with self.subTest(address=address):
                self.assertTrue(is_remote_area(address))

    def test_near_miss_addresses_are_mainland(self):
        addresses = [
            "충청북도 제천시 의림대로",
            "서울특별시 강서구 화곡로",
            "서울특별시 은평구 연희로",
            "경기도 고양시 일산동구 백석동",
            "서울특별시 동작구 흑석로",
            "경상남도 진주시 진양호로",
            "경기도 가평군 가평읍",
            "서울특별시 금천구 독산로",
            "울산광역시 남구 삼산로",
            "서울특별시 영등포구 여의대로",
            "서울특별시 마포구 서교동",
        ]
        for address in addresses:
            with self.subTest(address=address):
                self.assertFalse(is_remote_area(address))

    def test_mainland_and_empty_addresses(self):
        self.assertFalse(is_remote_area("서울특별시 강남구 테헤란로 152"))
        self.assertFalse(is_remote_area(""))
        self.assertFalse(is_remote_area(None))


class ShippingFeeTests(SimpleTestCase):
    def test_quantity_mode_fee_curve(self):
        config = PricingConfig()
        self.assertEqual(compute_shipping_fee(0, 0, config), 0)
        for quantity in range(1, 6):
            self.assertEqual(compute_shipping_fee(quantity, 0, config), 4000)
        for quantity in range(6, 12):
            self.assertEqual(compute_shipping_fee(quantity, 0, config), 0)

    def test_amount_mode(self):
        config = PricingConfig(free_shipping_mode=ShippingMode.AMOUNT, free_shipping_min_amount=100000)
        self.assertEqual(compute_shipping_fee(2, 40000, config), 4000)
        self.assertEqual(compute_shipping_fee(2, 100000, config), 0)
        self.assertEqual(compute_shipping_fee(0, 0, config), 0)

    def test_shipping_quantity_counts_boxes_only(self):
        config = PricingConfig(excluded_from_shipping=frozenset({"largeBox"}))
        quantities = {"smallBox": 3, "largeBox": 4, "wrapping": 5}
        self.assertEqual(shipping_quantity(quantities, PricingConfig()), 7)
        self.assertEqual(shipping_quantity(quantities, config), 3)


class OrderTotalTests(SimpleTestCase):
    def test_worked_example(self):
        quote = quote_order(PricingConfig(), small_box_quantity=4, wrapping_quantity=2, address="서울특별시 강남구")
        self.assertEqual(quote.subtotal, 78000)
        self.assertEqual(quote.shipping_fee, 4000)
        self.assertEqual(quote.total_amount, 82000)
        self.assertFalse(quote.is_remote_area)

    def test_free_shipping_at_threshold(self):
        quote = quote_order(PricingConfig(), small_box_quantity=3, large_box_quantity=3)
        self.assertEqual(quote.shipping_fee, 0)
        self.assertEqual(quote.total_amount, 3 * 19000 + 3 * 21000)

    def test_excluded_product_still_pays_shipping(self):
        config = PricingConfig(excluded_from_shipping=frozenset({"largeBox"}))
        quote = quote_order(config, small_box_quantity=1, large_box_quantity=6, address="제주시 연동")
        self.assertEqual(quote.shipping_quantity, 1)
        self.assertEqual(quote.shipping_fee, 4000)
        self.assertTrue(quote.is_remote_area)

    def test_compute_total_formula(self):
        prices = {"smallBox": 19000, "largeBox": 21000, "wrapping": 1000}
        for small, large, wrapping, fee in [(1, 0, 0, 4000), (2, 3, 1, 0), (0, 1, 1, 2500)]:
            expected = small * 19000 + large * 21000 + wrapping * 1000 + fee
            total = compute_total({"smallBox": small, "largeBox": large, "wrapping": wrapping}, prices, fee)
            self.assertEqual(total, expected)

    def test_item_rule(self):
        self.assertEqual(item_rule_errors(1, 0, 1), {})
        self.assertIn("small_box_quantity", item_rule_errors(0, 0, 1))
        self.assertIn("wrapping_quantity", item_rule_errors(1, 1, 3))
        self.assertIn("large_box_quantity", item_rule_errors(1, -1, 0))
