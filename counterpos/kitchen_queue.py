# counterpos/kitchen_queue.py
from __future__ import annotations

import logging
import math
import sys
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from .config import CONFIG, QueueConfig
from .kitchen_timing import evaluate_status
from .models import CLOSED_STATUSES, KITCHEN_DONE, KitchenStatus, Order, as_utc

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueEntry:
    order: Order
    status: KitchenStatus
    label: str


# --- util -------------------------------------------------------------------

def is_open(order: Order) -> bool:
    if order.kitchen_status == KITCHEN_DONE or order.kitchen_completed_at is not None:
        return False
    return order.status not in CLOSED_STATUSES


def is_visible(order: Order, now: datetime, cfg: QueueConfig = CONFIG.queue) -> bool:
    """Ordini troppo vecchi o scaduti da troppo non compaiono più in coda."""
    now = as_utc(now)
    if now - as_utc(order.created_at) > timedelta(hours=cfg.stale_hours):
        return False
    if order.kitchen_due_at is not None and now - as_utc(order.kitchen_due_at) > timedelta(hours=cfg.overdue_cutoff_hours):
        return False
    return True


def _sort_key(order: Order) -> Tuple[int, datetime]:
    ticket = order.ticket_number if isinstance(order.ticket_number, int) else sys.maxsize
    return ticket, as_utc(order.created_at)


def countdown_label(due_at: Optional[datetime], now: datetime) -> str:
    if due_at is None:
        diff = -1
    else:
        diff = int(math.floor((as_utc(due_at) - as_utc(now)).total_seconds() + 0.5))

    if diff < 0:
        minutes = max(1, math.ceil(-diff / 60))
        return f"Overdue {minutes} min"
    if diff >= 3600:
        h, rest = divmod(diff, 3600)
        return f"{h}h {rest // 60:02d}m"
    if diff >= 60:
        return f"{math.ceil(diff / 60)} min"
    return f"{diff}s"


# --- coda -------------------------------------------------------------------

def build_queue(orders: Iterable[Order], now: datetime, cfg: QueueConfig = CONFIG.queue) -> List[QueueEntry]:
    """Coda aperta ordinata per ticket e poi per orario, con stato fresco per ogni ordine."""
    entries = []
    for order in sorted((o for o in orders if is_open(o) and is_visible(o, now, cfg)), key=_sort_key):
        status = evaluate_status(order.created_at, order.kitchen_due_at, now, order.kitchen_completed_at)
        entries.append(QueueEntry(order=order, status=status, label=countdown_label(order.kitchen_due_at, now)))
    return entries


def mark_complete(order: Order, now: datetime) -> Order:
    # DONE è terminale: una seconda chiamata non sposta il timestamp
    if order.kitchen_status == KITCHEN_DONE and order.kitchen_completed_at is not None:
        return order
    return replace(order, kitchen_status=KITCHEN_DONE, kitchen_completed_at=as_utc(now))


def auto_complete(entries: Iterable[QueueEntry], now: datetime) -> Tuple[List[QueueEntry], List[Order]]:
    """Separa i ticket ancora attivi da quelli da chiudere automaticamente."""
    active: List[QueueEntry] = []
    closed: List[Order] = []
    for e in entries:
        if e.status.should_auto_complete:
            log.info("auto-completing kitchen ticket %s", e.order.order_number)
            closed.append(mark_complete(e.order, now))
        else:
            active.append(e)
    return active, closed
