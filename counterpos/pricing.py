# counterpos/pricing.py
"""
Totali d'ordine e GST.

Tutta l'aritmetica monetaria è in centesimi interi; ogni riga viene
arrotondata al centesimo (ROUND_HALF_UP) prima della somma, così
subtotal + tax == total vale sempre esattamente.
"""
from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional

from .errors import InvalidConfiguration, InvalidLineItem, InvalidQuantity
from .models import (
    ADD,
    DISCOUNT_FLAT,
    DISCOUNT_PERCENT,
    MODE_DEFAULT,
    MODE_LIGHT,
    DiscountSpec,
    DraftLineItem,
    ModifierSelection,
    OrderTotals,
    TaxConfiguration,
    as_money,
    cents_to_money,
)

log = logging.getLogger(__name__)


def round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def to_cents(amount) -> int:
    return round_half_up(as_money(amount) * 100)


# --- righe --------------------------------------------------------------------

def modifier_delta(selection: ModifierSelection) -> Decimal:
    """Delta con segno: 0 se default, metà magnitudine se light."""
    if selection.mode == MODE_DEFAULT:
        return Decimal(0)
    magnitude = selection.modifier.price
    if selection.mode == MODE_LIGHT:
        magnitude = magnitude / 2
    return magnitude if selection.modifier.polarity == ADD else -magnitude


def _check_quantity(item: DraftLineItem) -> None:
    qty = item.quantity
    if isinstance(qty, bool) or not isinstance(qty, int) or qty < 1:
        raise InvalidQuantity(f"quantity for {item.name!r} must be a positive integer, got {qty!r}")


def unit_price(item: DraftLineItem) -> Decimal:
    price = item.base_price
    for sel in item.modifiers:
        if not sel.modifier.active:
            raise InvalidLineItem(f"modifier {sel.modifier.name!r} is not active")
        price += modifier_delta(sel)
    return price


def compute_line_total_cents(item: DraftLineItem) -> int:
    _check_quantity(item)
    cents = round_half_up(unit_price(item) * item.quantity * 100)
    # un "remove" più grande del prezzo base non porta la riga sotto zero
    return max(cents, 0)


def compute_line_total(item: DraftLineItem) -> Decimal:
    return cents_to_money(compute_line_total_cents(item))


# --- ordine -------------------------------------------------------------------

def compute_discount_cents(raw_subtotal_cents: int, discount: Optional[DiscountSpec]) -> int:
    if discount is None:
        return 0
    if discount.kind == DISCOUNT_PERCENT:
        cents = round_half_up(Decimal(raw_subtotal_cents) * discount.value / 100)
    elif discount.kind == DISCOUNT_FLAT:
        cents = round_half_up(discount.value * 100)
    else:
        cents = 0
    return min(max(cents, 0), raw_subtotal_cents)


def validate_tax(tax: TaxConfiguration) -> None:
    if tax.gst_rate_percent < 0:
        raise InvalidConfiguration(f"gst rate must not be negative, got {tax.gst_rate_percent}")


def compute_order_totals(
    items: Iterable[DraftLineItem],
    tax: TaxConfiguration,
    discount: Optional[DiscountSpec] = None,
) -> OrderTotals:
    validate_tax(tax)
    # fallisce prima di produrre qualsiasi totale parziale
    line_cents: List[int] = [compute_line_total_cents(it) for it in items]
    raw = sum(line_cents)

    discount_cents = compute_discount_cents(raw, discount)
    discounted = raw - discount_cents

    if tax.tax_free or tax.gst_rate_percent <= 0:
        subtotal, tax_cents, total = discounted, 0, discounted
    elif not tax.prices_include_tax:
        tax_cents = round_half_up(Decimal(discounted) * tax.rate)
        subtotal, total = discounted, discounted + tax_cents
    else:
        # prezzi lordi: si scorpora la GST dal totale
        total = discounted
        subtotal = round_half_up(Decimal(total) / (1 + tax.rate))
        tax_cents = total - subtotal

    totals = OrderTotals(
        subtotal_cents=subtotal,
        tax_cents=tax_cents,
        total_cents=total,
        discount_cents=discount_cents,
    )
    log.debug("totals lines=%s discount=%s -> %s", line_cents, discount_cents, totals)
    return totals


def compute_change_cents(given_cents: int, total_cents: int) -> int:
    """Resto contanti, mai negativo."""
    return max(int(given_cents) - int(total_cents), 0)
