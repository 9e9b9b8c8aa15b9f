# counterpos/orders.py
"""
Costruzione dell'ordine registrato a partire dalla bozza del POS.

Totali e scadenza cucina vengono calcolati UNA volta qui e poi viaggiano
congelati nel record: cambi successivi alle impostazioni non li toccano.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .errors import InvalidConfiguration, InvalidLineItem, InvalidQuantity
from .kitchen_timing import freeze_timing
from .models import (
    KITCHEN_OPEN,
    MODE_DEFAULT,
    PAYMENT_TYPES,
    STATUS_PAID,
    STATUS_REFUNDED,
    DiscountSpec,
    DraftLineItem,
    KitchenSettings,
    Modifier,
    ModifierSelection,
    Order,
    OrderItem,
    OrderItemModifier,
    OrderTotals,
    Payment,
    RefundInfo,
    TaxConfiguration,
    as_money,
    as_utc,
)
from .pricing import compute_change_cents, compute_line_total, compute_order_totals, modifier_delta, to_cents
from .settings import SAFE_KITCHEN, SAFE_TAX

log = logging.getLogger(__name__)


def format_order_number(day: date, sequence: int) -> str:
    """Numero ordine globale: YYYY-MM-DD-0001 (il contatore è esterno)."""
    return f"{day.isoformat()}-{int(sequence):04d}"


# --- bozza dal payload POS ----------------------------------------------------

def _quantity(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidQuantity(f"invalid quantity {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise InvalidQuantity(f"invalid quantity {value!r}")


def resolve_draft_items(
    payload: Iterable[Mapping[str, Any]],
    modifiers: Iterable[Modifier],
) -> List[DraftLineItem]:
    """
    Risolve i riferimenti {modifierId, mode} contro il catalogo attivo.
    Id sconosciuti o modificatori disattivati -> InvalidLineItem.
    """
    catalog: Dict[str, Modifier] = {m.id: m for m in modifiers}
    items: List[DraftLineItem] = []
    for raw in payload:
        if not isinstance(raw, Mapping):
            raise InvalidLineItem(f"malformed order line {raw!r}")
        selections: List[ModifierSelection] = []
        refs = raw.get("modifiers") or []
        if not isinstance(refs, list):
            raise InvalidLineItem(f"malformed modifiers for product {raw.get('productId')!r}")
        for ref in refs:
            if not isinstance(ref, Mapping):
                raise InvalidLineItem(f"malformed modifier reference {ref!r}")
            mode = ref.get("mode", MODE_DEFAULT)
            if mode == MODE_DEFAULT:
                continue
            mod = catalog.get(str(ref.get("modifierId")))
            if mod is None:
                raise InvalidLineItem(f"unknown modifier {ref.get('modifierId')!r}")
            if not mod.active:
                raise InvalidLineItem(f"modifier {mod.name!r} is not active")
            selections.append(ModifierSelection(mod, mode))

        base_price = raw.get("basePrice")
        if base_price is None:
            raise InvalidLineItem(f"missing base price for product {raw.get('productId')!r}")
        items.append(DraftLineItem(
            product_id=str(raw.get("productId")),
            name=str(raw.get("name") or raw.get("productName") or ""),
            base_price=base_price,
            quantity=_quantity(raw.get("quantity", 1)),
            category_id=raw.get("categoryId"),
            modifiers=tuple(selections),
        ))
    return items


# --- congelamento -------------------------------------------------------------

def freeze_item(item: DraftLineItem) -> OrderItem:
    return OrderItem(
        product_id=item.product_id,
        name=item.name,
        base_price=item.base_price,
        quantity=item.quantity,
        category_id=item.category_id,
        # le selezioni "default" equivalgono ad assenza
        modifiers=tuple(
            OrderItemModifier(
                modifier_id=sel.modifier.id,
                name=sel.modifier.name,
                mode=sel.mode,
                delta=modifier_delta(sel),
            )
            for sel in item.modifiers
            if sel.mode != MODE_DEFAULT
        ),
        line_total=compute_line_total(item),
    )


def payment_type(value: Any) -> str:
    kind = value.upper() if isinstance(value, str) else ""
    return kind if kind in PAYMENT_TYPES else "OTHER"


def normalize_payment(raw: Mapping[str, Any]) -> Payment:
    kind = payment_type(raw.get("type"))
    if raw.get("amountCents") is not None:
        amount = int(raw["amountCents"])
    else:
        amount = to_cents(raw.get("amount") or 0)
    return Payment(type=kind, amount_cents=amount)


def _totals(items: Sequence[DraftLineItem], tax: TaxConfiguration, discount: Optional[DiscountSpec]) -> OrderTotals:
    try:
        return compute_order_totals(items, tax, discount)
    except InvalidConfiguration as e:
        log.warning("tax configuration rejected (%s), using safe defaults", e)
        return compute_order_totals(items, replace(SAFE_TAX, tax_free=tax.tax_free), discount)


def create_order_from_draft(
    items: Sequence[DraftLineItem],
    *,
    order_number: str,
    tax: TaxConfiguration,
    kitchen: KitchenSettings,
    created_at: Optional[datetime] = None,
    discount: Optional[DiscountSpec] = None,
    tax_free: bool = False,
    ticket_number: Optional[int] = None,
    note: Optional[str] = None,
    payments: Iterable[Mapping[str, Any]] = (),
) -> Order:
    created_at = as_utc(created_at) if created_at is not None else datetime.now(timezone.utc)
    if tax_free:
        tax = replace(tax, tax_free=True)

    totals = _totals(items, tax, discount)

    try:
        timing = freeze_timing(items, created_at, kitchen)
    except InvalidConfiguration as e:
        log.warning("kitchen settings rejected (%s), using %s minutes", e, SAFE_KITCHEN.default_minutes)
        timing = freeze_timing(items, created_at, SAFE_KITCHEN)

    paid = [normalize_payment(p) for p in payments]
    change = 0
    if any(p.type == "CASH" for p in paid):
        change = compute_change_cents(sum(p.amount_cents for p in paid), totals.total_cents)

    order = Order(
        order_number=order_number,
        created_at=created_at,
        items=[freeze_item(it) for it in items],
        totals=totals,
        tax_free=tax.tax_free,
        ticket_number=ticket_number,
        note=note,
        status=STATUS_PAID,
        kitchen_status=KITCHEN_OPEN,
        estimated_prep_minutes=timing.estimated_prep_minutes,
        kitchen_due_at=timing.due_at,
        payments=paid,
        change_cents=change,
    )
    log.info(
        "order %s total=%s due=%s (%s min)",
        order_number, totals.total, timing.due_at.isoformat(), timing.due_minutes,
    )
    return order


# --- record JSON --------------------------------------------------------------

def _iso(dt: Optional[datetime]) -> Optional[str]:
    return as_utc(dt).isoformat() if dt is not None else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


def order_to_record(order: Order) -> Dict[str, Any]:
    t = order.totals
    return {
        "orderNumber": order.order_number,
        "ticketNumber": order.ticket_number,
        "createdAt": _iso(order.created_at),
        "items": [
            {
                "productId": it.product_id,
                "name": it.name,
                "basePrice": float(it.base_price),
                "quantity": it.quantity,
                "categoryId": it.category_id,
                "modifiers": [
                    {"modifierId": m.modifier_id, "name": m.name, "mode": m.mode, "delta": float(m.delta)}
                    for m in it.modifiers
                ],
                "lineTotal": float(it.line_total),
            }
            for it in order.items
        ],
        "totals": {"subtotal": float(t.subtotal), "tax": float(t.tax), "total": float(t.total)},
        "discountCents": t.discount_cents,
        "taxFree": order.tax_free,
        "note": order.note,
        "status": order.status,
        "kitchenStatus": order.kitchen_status,
        "estimatedPrepMinutes": order.estimated_prep_minutes,
        "kitchenDueAt": _iso(order.kitchen_due_at),
        "kitchenCompletedAt": _iso(order.kitchen_completed_at),
        "payments": [{"type": p.type, "amountCents": p.amount_cents} for p in order.payments],
        "changeCents": order.change_cents,
        "refund": _refund_record(order.refund),
    }


def _refund_record(refund: Optional[RefundInfo]) -> Optional[Dict[str, Any]]:
    if refund is None:
        return None
    return {
        "refundedAt": _iso(refund.refunded_at),
        "method": refund.method,
        "reason": refund.reason,
        "refundedBy": refund.refunded_by,
    }


def _refund_from_record(raw: Any) -> Optional[RefundInfo]:
    if not raw:
        return None
    return RefundInfo(
        refunded_at=_parse_dt(raw.get("refundedAt")) or datetime.now(timezone.utc),
        method=payment_type(raw.get("method")),
        reason=raw.get("reason"),
        refunded_by=raw.get("refundedBy"),
    )


def _decode(record: Mapping[str, Any]) -> Order:
    totals = record.get("totals") or {}
    items = []
    for raw in record.get("items") or []:
        items.append(OrderItem(
            product_id=str(raw.get("productId")),
            name=str(raw.get("name") or ""),
            base_price=as_money(raw.get("basePrice", 0)),
            quantity=int(raw.get("quantity", 1)),
            category_id=str(raw["categoryId"]) if raw.get("categoryId") is not None else None,
            modifiers=tuple(
                OrderItemModifier(
                    modifier_id=str(m.get("modifierId", m.get("id"))),
                    name=str(m.get("name") or ""),
                    mode=str(m.get("mode") or ""),
                    delta=as_money(m.get("delta", 0)),
                )
                for m in raw.get("modifiers") or []
            ),
            line_total=as_money(raw.get("lineTotal", 0)),
        ))

    subtotal_c = to_cents(totals.get("subtotal", 0))
    tax_c = to_cents(totals.get("tax", 0))
    total_raw = totals.get("total")
    return Order(
        order_number=str(record.get("orderNumber")),
        ticket_number=record.get("ticketNumber"),
        created_at=_parse_dt(record.get("createdAt")) or datetime.now(timezone.utc),
        items=items,
        totals=OrderTotals(
            subtotal_cents=subtotal_c,
            tax_cents=tax_c,
            total_cents=to_cents(total_raw) if total_raw is not None else subtotal_c + tax_c,
            discount_cents=int(record.get("discountCents") or 0),
        ),
        tax_free=bool(record.get("taxFree", False)),
        note=record.get("note"),
        status=str(record.get("status") or STATUS_PAID),
        kitchen_status=str(record.get("kitchenStatus") or KITCHEN_OPEN),
        estimated_prep_minutes=record.get("estimatedPrepMinutes"),
        kitchen_due_at=_parse_dt(record.get("kitchenDueAt") or record.get("targetReadyAt")),
        kitchen_completed_at=_parse_dt(record.get("kitchenCompletedAt")),
        payments=[normalize_payment(p) for p in record.get("payments") or []],
        change_cents=int(record.get("changeCents") or 0),
        refund=_refund_from_record(record.get("refund")),
    )


def order_from_record(record: Mapping[str, Any]) -> Order:
    """Inverso di order_to_record; accetta anche il vecchio campo targetReadyAt."""
    try:
        return _decode(record)
    except (InvalidLineItem, TypeError, AttributeError) as e:
        # un record salvato rotto non è un errore di calcolo del carrello
        raise ValueError(f"malformed order record: {e}") from None


# --- rimborso -----------------------------------------------------------------

def mark_refunded(
    order: Order,
    now: datetime,
    method: Any = None,
    reason: Optional[str] = None,
    refunded_by: Optional[str] = None,
) -> Order:
    """
    REFUNDED toglie l'ordine dalla coda cucina; totali e tempi restano
    quelli congelati. Un secondo rimborso lascia intatto il primo.
    """
    if order.status == STATUS_REFUNDED and order.refund is not None:
        return order
    info = RefundInfo(
        refunded_at=as_utc(now),
        method=payment_type(method),
        reason=reason if isinstance(reason, str) else None,
        refunded_by=refunded_by,
    )
    log.info("order %s refunded (%s)", order.order_number, info.method)
    return replace(order, status=STATUS_REFUNDED, refund=info)
