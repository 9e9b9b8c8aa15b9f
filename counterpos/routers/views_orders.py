# counterpos/routers/views_orders.py
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse, PlainTextResponse

from ..orders import create_order_from_draft, mark_refunded, order_from_record, order_to_record, resolve_draft_items
from ..pricing import compute_line_total, compute_order_totals
from ..receipts.rendering import render_kitchen_ticket, render_receipt
from ..schemas import CreateOrderRequest, OrderRecordIn, QuoteLineOut, QuoteOut, QuoteRequest, RefundRequest, TotalsOut
from ..settings import kitchen_settings_or_default, load_tax_configuration, tax_configuration_or_default

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("/quote", response_model=QuoteOut)
def orders_quote(payload: QuoteRequest):
    """Totali per il carrello corrente; impostazioni fiscali invalide -> 422."""
    items = resolve_draft_items(payload.items, [m.to_modifier() for m in payload.modifiers])
    tax = load_tax_configuration(payload.settings)
    if payload.taxFree:
        tax = replace(tax, tax_free=True)
    discount = payload.discount.to_spec() if payload.discount else None

    totals = compute_order_totals(items, tax, discount)
    return QuoteOut(
        lines=[
            QuoteLineOut(productId=it.product_id, name=it.name, quantity=it.quantity, lineTotal=float(compute_line_total(it)))
            for it in items
        ],
        totals=TotalsOut.from_totals(totals),
    )


@router.post("", status_code=201)
def orders_create(payload: CreateOrderRequest):
    """Congela il record ordine: la persistenza resta a carico del chiamante."""
    if not payload.items:
        return JSONResponse({"ok": False, "error": "Order must include at least one item."}, status_code=400)

    items = resolve_draft_items(payload.items, [m.to_modifier() for m in payload.modifiers])
    order = create_order_from_draft(
        items,
        order_number=payload.orderNumber,
        ticket_number=payload.ticketNumber,
        created_at=payload.createdAt or datetime.now(timezone.utc),
        # lo store impostazioni non deve mai bloccare l'incasso
        tax=tax_configuration_or_default(payload.settings),
        kitchen=kitchen_settings_or_default(payload.settings),
        discount=payload.discount.to_spec() if payload.discount else None,
        tax_free=payload.taxFree,
        note=payload.note,
        payments=payload.payments,
    )
    return order_to_record(order)


@router.post("/receipt", response_class=PlainTextResponse)
def orders_receipt(payload: OrderRecordIn):
    return render_receipt(order_from_record(payload.order))


@router.post("/kitchen-ticket", response_class=PlainTextResponse)
def orders_kitchen_ticket(payload: OrderRecordIn):
    return render_kitchen_ticket(order_from_record(payload.order))


@router.post("/refund")
def orders_refund(payload: RefundRequest):
    """Segna il record come REFUNDED; il salvataggio resta al chiamante."""
    order = mark_refunded(
        order_from_record(payload.order),
        payload.now or datetime.now(timezone.utc),
        method=payload.method,
        reason=payload.reason,
        refunded_by=payload.refundedBy,
    )
    return {"ok": True, "order": order_to_record(order)}
