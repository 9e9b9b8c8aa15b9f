# counterpos/receipts/rendering.py
from __future__ import annotations

from typing import Any, Dict, List

from jinja2 import BaseLoader, Environment

from ..config import CONFIG, ReceiptConfig
from ..models import MODE_ADDED, MODE_LIGHT, MODE_REMOVED, Order, OrderItemModifier, as_utc, cents_to_money

# Template base (stesso motore jinja delle regole di stampa)
RECEIPT_TEMPLATE = (
    "{{ shop_name }}\n"
    "Ticket {{ ticket }}\n"
    "{{ created_at.strftime('%d/%m/%Y %H:%M') }}\n"
    "{{ sep }}\n"
    "{% for l in lines %}\n"
    "{{ l.qty }} x {{ l.name }}  ${{ l.line_total }}\n"
    "{% for m in l.modifiers %}\n"
    "   {{ m }}\n"
    "{% endfor %}\n"
    "{% endfor %}\n"
    "{{ sep }}\n"
    "Subtotal: ${{ subtotal }}\n"
    "{% if discount %}\n"
    "Discount: -${{ discount }}\n"
    "{% endif %}\n"
    "GST: ${{ tax }}\n"
    "TOTAL: ${{ total }}\n"
    "{% if change %}\n"
    "Change: ${{ change }}\n"
    "{% endif %}\n"
)

KITCHEN_TICKET_TEMPLATE = (
    "KITCHEN\n"
    "Ticket {{ ticket }}\n"
    "{{ created_at.strftime('%H:%M') }}{{ due_label }}\n"
    "{{ sep }}\n"
    "{% for l in lines %}\n"
    "{{ '%2dx ' % l.qty }}{{ l.name }}\n"
    "{% for m in l.modifiers %}\n"
    "   {{ m }}\n"
    "{% endfor %}\n"
    "{% endfor %}\n"
    "{% if note %}\n"
    "{{ sep }}\n"
    "NOTE: {{ note }}\n"
    "{% endif %}\n"
)


def render_jinja(body: str, ctx: Dict[str, Any]) -> str:
    env = Environment(loader=BaseLoader(), autoescape=False, trim_blocks=True, lstrip_blocks=True)
    return env.from_string(body).render(**ctx)


def modifier_label(m: OrderItemModifier) -> str:
    if m.mode == MODE_ADDED:
        return f"+ {m.name}"
    if m.mode == MODE_REMOVED:
        return f"no {m.name}"
    if m.mode == MODE_LIGHT:
        return f"light {m.name}"
    return m.name


def _money(cents: int) -> str:
    return f"{cents_to_money(cents):.2f}"


def _lines(order: Order) -> List[dict]:
    return [
        {
            "qty": it.quantity,
            "name": it.name,
            "line_total": f"{it.line_total:.2f}",
            "modifiers": [modifier_label(m) for m in it.modifiers],
        }
        for it in order.items
    ]


def build_context(order: Order, cfg: ReceiptConfig = CONFIG.receipt) -> Dict[str, Any]:
    t = order.totals
    return {
        "shop_name": cfg.shop_name,
        "ticket": order.ticket_number if order.ticket_number is not None else order.order_number,
        "created_at": as_utc(order.created_at),
        "due_label": f" -> due {as_utc(order.kitchen_due_at):%H:%M}" if order.kitchen_due_at else "",
        "sep": "-" * cfg.width_chars,
        "lines": _lines(order),
        "subtotal": _money(t.subtotal_cents),
        "discount": _money(t.discount_cents) if t.discount_cents > 0 else None,
        "tax": _money(t.tax_cents),
        "total": _money(t.total_cents),
        "change": _money(order.change_cents) if order.change_cents > 0 else None,
        "note": order.note,
    }


def render_receipt(order: Order, cfg: ReceiptConfig = CONFIG.receipt) -> str:
    return render_jinja(RECEIPT_TEMPLATE, build_context(order, cfg))


def render_kitchen_ticket(order: Order, cfg: ReceiptConfig = CONFIG.receipt) -> str:
    return render_jinja(KITCHEN_TICKET_TEMPLATE, build_context(order, cfg))
