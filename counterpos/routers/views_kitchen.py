# counterpos/routers/views_kitchen.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from ..config import CONFIG
from ..kitchen_queue import QueueEntry, auto_complete, build_queue, mark_complete
from ..orders import order_from_record, order_to_record
from ..schemas import KitchenQueueRequest, OrderRecordIn

router = APIRouter(prefix="/api/kitchen", tags=["kitchen"])


def _now(value: datetime | None) -> datetime:
    return value or datetime.now(timezone.utc)


def _entry_view(e: QueueEntry) -> Dict[str, Any]:
    rec = order_to_record(e.order)
    return {
        "id": rec["orderNumber"],
        "orderNumber": rec["orderNumber"],
        "ticketNumber": rec["ticketNumber"],
        "createdAt": rec["createdAt"],
        "items": rec["items"],
        "estimatedPrepMinutes": rec["estimatedPrepMinutes"],
        "kitchenDueAt": rec["kitchenDueAt"],
        "secondsRemaining": e.status.seconds_remaining,
        "isOverdue": e.status.is_overdue,
        "label": e.label,
        "note": rec["note"],
    }


@router.post("/queue")
def kitchen_queue(payload: KitchenQueueRequest):
    """
    Coda KDS (polling ogni pochi secondi):
    - filtra chiusi / vecchi / scaduti da troppo
    - ordina per ticket e orario
    - restituisce a parte i ticket da chiudere in automatico (da salvare a cura del chiamante)
    """
    now = _now(payload.now)
    orders = [order_from_record(r) for r in payload.orders]
    active, closed = auto_complete(build_queue(orders, now), now)
    return {
        "ok": True,
        "now": now.isoformat(),
        "pollSeconds": CONFIG.queue.poll_seconds,
        "orders": [_entry_view(e) for e in active],
        "autoCompleted": [order_to_record(o) for o in closed],
    }


@router.post("/complete")
def kitchen_complete(payload: OrderRecordIn):
    order = mark_complete(order_from_record(payload.order), _now(payload.now))
    return {"ok": True, "order": order_to_record(order)}
