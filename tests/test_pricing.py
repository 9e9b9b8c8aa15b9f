from decimal import Decimal
from itertools import product

import pytest

from counterpos.errors import InvalidConfiguration, InvalidLineItem, InvalidQuantity
from counterpos.models import (
    ADD,
    REMOVE,
    DiscountSpec,
    DraftLineItem,
    Modifier,
    ModifierSelection,
    TaxConfiguration,
)
from counterpos.pricing import (
    compute_change_cents,
    compute_discount_cents,
    compute_line_total,
    compute_line_total_cents,
    compute_order_totals,
    modifier_delta,
)


def _item(price, qty=1, selections=()):
    return DraftLineItem(product_id="p", name="Item", base_price=Decimal(price), quantity=qty, modifiers=selections)


# --- modificatori -------------------------------------------------------------

def test_modifier_delta_by_mode(cheese, onion):
    assert modifier_delta(ModifierSelection(cheese, "default")) == 0
    assert modifier_delta(ModifierSelection(cheese, "added")) == Decimal("1.50")
    assert modifier_delta(ModifierSelection(cheese, "light")) == Decimal("0.75")
    assert modifier_delta(ModifierSelection(onion, "removed")) == Decimal("-0.50")
    assert modifier_delta(ModifierSelection(onion, "light")) == Decimal("-0.25")


def test_selection_rejects_mode_against_polarity(cheese, onion):
    with pytest.raises(InvalidLineItem):
        ModifierSelection(cheese, "removed")
    with pytest.raises(InvalidLineItem):
        ModifierSelection(onion, "added")
    with pytest.raises(InvalidLineItem):
        ModifierSelection(cheese, "extra")


def test_modifier_price_must_be_non_negative_magnitude():
    with pytest.raises(InvalidLineItem):
        Modifier(id="x", name="Broken", price=Decimal("-1"), polarity=ADD)


# --- righe --------------------------------------------------------------------

def test_line_total_applies_modifiers_times_quantity(burger):
    assert compute_line_total(burger) == Decimal("23.00")


def test_light_half_cent_rounds_half_up():
    sauce = Modifier(id="s", name="Sauce", price=Decimal("0.25"), polarity=ADD)
    item = _item("1.00", 1, (ModifierSelection(sauce, "light"),))
    # 1.125 -> 1.13
    assert compute_line_total_cents(item) == 113


def test_remove_larger_than_base_clamps_line_at_zero():
    patty = Modifier(id="r", name="No patty", price=Decimal("5.00"), polarity=REMOVE)
    item = _item("3.00", 2, (ModifierSelection(patty, "removed"),))
    assert compute_line_total(item) == Decimal("0.00")


@pytest.mark.parametrize("qty", [0, -1, 1.5, True, "2"])
def test_invalid_quantity_is_rejected(qty):
    with pytest.raises(InvalidQuantity):
        compute_line_total(_item("5.00", qty))


def test_invalid_quantity_is_a_line_item_error():
    assert issubclass(InvalidQuantity, InvalidLineItem)


def test_inactive_modifier_is_rejected():
    old = Modifier(id="o", name="Old", price=Decimal("1"), polarity=ADD, active=False)
    with pytest.raises(InvalidLineItem):
        compute_line_total(_item("5.00", 1, (ModifierSelection(old, "added"),)))


# --- totali -------------------------------------------------------------------

def test_scenario_exclusive_gst(burger, exclusive_gst):
    totals = compute_order_totals([burger], exclusive_gst)
    assert totals.subtotal == Decimal("23.00")
    assert totals.tax == Decimal("3.45")
    assert totals.total == Decimal("26.45")


def test_scenario_percent_discount_rounds_tax_half_up(burger, exclusive_gst):
    totals = compute_order_totals([burger], exclusive_gst, DiscountSpec.percent(10))
    assert totals.discount_cents == 230
    assert totals.subtotal_cents == 2070
    assert totals.tax_cents == 311
    assert totals.total == Decimal("23.81")


def test_scenario_inclusive_gst_decomposes_total():
    tax = TaxConfiguration(prices_include_tax=True, gst_rate_percent=Decimal("15"))
    totals = compute_order_totals([_item("100.00"), _item("15.00")], tax)
    assert totals.subtotal == Decimal("100.00")
    assert totals.tax == Decimal("15.00")
    assert totals.total == Decimal("115.00")


def test_zero_items_all_zero(exclusive_gst):
    totals = compute_order_totals([], exclusive_gst, DiscountSpec.flat(5))
    assert (totals.subtotal_cents, totals.tax_cents, totals.total_cents, totals.discount_cents) == (0, 0, 0, 0)


def test_tax_free_bypasses_gst(burger):
    tax = TaxConfiguration(tax_free=True, gst_rate_percent=Decimal("15"))
    totals = compute_order_totals([burger], tax, DiscountSpec.flat("3.00"))
    assert totals.tax_cents == 0
    assert totals.total_cents == 2000


def test_zero_rate_means_no_tax(burger):
    totals = compute_order_totals([burger], TaxConfiguration(gst_rate_percent=0))
    assert totals.tax_cents == 0
    assert totals.total_cents == 2300


def test_negative_rate_is_a_configuration_error(burger):
    with pytest.raises(InvalidConfiguration):
        compute_order_totals([burger], TaxConfiguration(gst_rate_percent=Decimal("-1")))


def test_bad_line_rejects_whole_order(burger, exclusive_gst):
    with pytest.raises(InvalidQuantity):
        compute_order_totals([burger, _item("2.00", 0)], exclusive_gst)


def test_discount_is_clamped_to_subtotal():
    assert compute_discount_cents(1000, DiscountSpec.flat("25.00")) == 1000
    assert compute_discount_cents(1000, DiscountSpec.percent(150)) == 1000
    assert compute_discount_cents(1000, DiscountSpec.percent(-10)) == 0
    assert compute_discount_cents(1000, DiscountSpec.flat("-2")) == 0
    assert compute_discount_cents(1000, None) == 0
    assert compute_discount_cents(1000, DiscountSpec.none()) == 0


def test_totals_close_exactly_for_every_configuration(cheese, onion):
    items = [
        _item("4.35", 3, (ModifierSelection(cheese, "light"),)),
        _item("7.99", 1, (ModifierSelection(onion, "removed"),)),
        _item("0.333", 7),
    ]
    rates = [Decimal("0"), Decimal("15"), Decimal("12.5"), Decimal("9")]
    discounts = [None, DiscountSpec.percent(10), DiscountSpec.percent("33.3"), DiscountSpec.flat("1.99"), DiscountSpec.flat(1000)]
    raw = sum(compute_line_total_cents(i) for i in items)

    for tax_free, inclusive, rate, discount in product([False, True], [False, True], rates, discounts):
        tax = TaxConfiguration(tax_free=tax_free, prices_include_tax=inclusive, gst_rate_percent=rate)
        t = compute_order_totals(items, tax, discount)
        assert t.subtotal_cents + t.tax_cents == t.total_cents
        assert 0 <= t.discount_cents <= raw
        if tax_free:
            assert t.tax_cents == 0
            assert t.total_cents == raw - t.discount_cents


def test_totals_are_deterministic(burger, exclusive_gst):
    first = compute_order_totals([burger], exclusive_gst, DiscountSpec.percent(10))
    assert compute_order_totals([burger], exclusive_gst, DiscountSpec.percent(10)) == first


def test_change_never_negative():
    assert compute_change_cents(3000, 2645) == 355
    assert compute_change_cents(2000, 2645) == 0
