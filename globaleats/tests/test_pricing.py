"""
定价测试
"""

from decimal import Decimal

import pytest

from globaleats.core.exceptions import BelowMinimumOrderError
from globaleats.models.base import money
from globaleats.models.cart import CartLine
from globaleats.models.catalog import OutletCandidate, ResolvedAssignment
from globaleats.services.pricing_service import PricingCalculator

from .factories import HOME


def make_outlet(**overrides) -> OutletCandidate:
    values = dict(
        outlet_id="o-1",
        brand_id="burger",
        coordinate=HOME,
        delivery_radius_km=5,
        base_delivery_fee=Decimal("25.00"),
        minimum_order_amount=Decimal("0"),
        preparation_time_minutes=20,
    )
    values.update(overrides)
    return OutletCandidate(**values)


def line(item_id: str, qty: int, price: str) -> CartLine:
    return CartLine(menu_item_id=item_id, quantity=qty, unit_price_at_add_time=Decimal(price))


class TestPricingCalculator:
    """门店级定价"""

    def test_basic_breakdown(self):
        calc = PricingCalculator(tax_rate=Decimal("0.05"))
        intent = calc.price(make_outlet(), [line("m-1", 3, "50.00")])

        assert intent.subtotal == Decimal("150.00")
        assert intent.delivery_fee == Decimal("25.00")
        assert intent.tax_amount == Decimal("7.50")
        assert intent.total_amount == Decimal("182.50")
        assert intent.lines[0].unit_price == Decimal("50.00")
        assert intent.lines[0].line_total == Decimal("150.00")
        assert intent.preparation_time_minutes == 20
        assert intent.warnings == []

    def test_line_total_is_quantity_times_captured_price(self):
        calc = PricingCalculator(tax_rate=Decimal("0"))
        intent = calc.price(make_outlet(base_delivery_fee=Decimal("0")),
                            [line("m-1", 4, "0.13"), line("m-2", 3, "19.99")])
        assert [pl.line_total for pl in intent.lines] == [Decimal("0.52"), Decimal("59.97")]
        assert intent.subtotal == Decimal("60.49")

    def test_sub_cent_price_is_rejected(self):
        with pytest.raises(ValueError):
            line("m-1", 4, "0.125")

    def test_uses_captured_price(self):
        calc = PricingCalculator(tax_rate=Decimal("0"))
        intent = calc.price(make_outlet(), [line("m-1", 2, "9.99"), line("m-2", 1, "0.01")])
        assert intent.subtotal == Decimal("19.99")
        assert intent.total_amount == Decimal("44.99")

    def test_tax_rounds_half_up(self):
        calc = PricingCalculator(tax_rate=Decimal("0.05"))
        # 0.05 * 10.10 = 0.505
        intent = calc.price(make_outlet(base_delivery_fee=Decimal("0")),
                            [line("m-1", 1, "10.10")])
        assert intent.tax_amount == Decimal("0.51")
        assert intent.total_amount == Decimal("10.61")

    def test_total_is_sum_of_parts(self):
        calc = PricingCalculator(tax_rate=Decimal("0.18"))
        intent = calc.price(make_outlet(base_delivery_fee=Decimal("12.35")),
                            [line("m-1", 7, "13.37")])
        assert intent.total_amount == intent.subtotal + intent.delivery_fee + intent.tax_amount

    def test_free_delivery_at_threshold(self):
        calc = PricingCalculator(tax_rate=Decimal("0.05"))
        outlet = make_outlet(free_delivery_threshold=Decimal("150.00"))

        at_threshold = calc.price(outlet, [line("m-1", 3, "50.00")])
        below = calc.price(outlet, [line("m-1", 2, "50.00")])

        assert at_threshold.delivery_fee == Decimal("0.00")
        assert below.delivery_fee == Decimal("25.00")

    def test_below_minimum_rejected(self):
        calc = PricingCalculator(minimum_order_policy="reject")
        with pytest.raises(BelowMinimumOrderError) as exc_info:
            calc.price(make_outlet(minimum_order_amount=Decimal("200")),
                       [line("m-1", 1, "50.00")])
        assert exc_info.value.brand_id == "burger"
        assert exc_info.value.details["minimum_order_amount"] == "200.00"

    def test_below_minimum_warned(self):
        calc = PricingCalculator(minimum_order_policy="warn")
        intent = calc.price(make_outlet(minimum_order_amount=Decimal("200")),
                            [line("m-1", 1, "50.00")])
        assert intent.subtotal == Decimal("50.00")
        assert intent.warnings == ["BELOW_MINIMUM_ORDER"]

    def test_exact_minimum_is_accepted(self):
        calc = PricingCalculator(minimum_order_policy="reject")
        intent = calc.price(make_outlet(minimum_order_amount=Decimal("150")),
                            [line("m-1", 3, "50.00")])
        assert intent.subtotal == Decimal("150.00")

    def test_carries_distance(self):
        calc = PricingCalculator()
        assignment = ResolvedAssignment(brand_id="burger", outlet_id="o-1", distance_km=2.5)
        intent = calc.price(make_outlet(), [line("m-1", 1, "50.00")], assignment)
        assert intent.distance_km == 2.5

    def test_unknown_policy(self):
        with pytest.raises(ValueError):
            PricingCalculator(minimum_order_policy="ignore")


def test_money_rounds_half_up():
    assert money("2.675") == Decimal("2.68")
    assert money(Decimal("0.005")) == Decimal("0.01")
    assert money(3) == Decimal("3.00")
