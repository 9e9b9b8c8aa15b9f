# counterpos/kitchen_timing.py
"""
Tempi cucina: stima in minuti, scadenza congelata alla creazione
dell'ordine e stato (overdue / auto-complete) valutato ad ogni polling.
"""
from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from .errors import InvalidConfiguration
from .models import (
    RESOLUTION_POLICIES,
    RESOLVE_MAX,
    KitchenSettings,
    KitchenStatus,
    KitchenTiming,
    as_utc,
)

GRACE_SECONDS = 30
FORCE_CLEAR_SECONDS = 2 * 60 * 60

MIN_PREP_MINUTES = 1
MAX_PREP_MINUTES = 60


def _category_of(item: Any) -> Any:
    if isinstance(item, dict):
        return item.get("category_id", item.get("categoryId"))
    return getattr(item, "category_id", None)


def validate_kitchen_settings(settings: KitchenSettings) -> None:
    if settings.default_minutes is None or settings.default_minutes <= 0:
        raise InvalidConfiguration(f"default prep minutes must be positive, got {settings.default_minutes!r}")
    if settings.resolution not in RESOLUTION_POLICIES:
        raise InvalidConfiguration(f"unknown category resolution {settings.resolution!r}")


def minutes_for_category(category_id: Any, settings: KitchenSettings) -> int:
    minutes = settings.override_for(category_id)
    if minutes is not None and minutes > 0:
        return int(minutes)
    return int(settings.default_minutes)


def estimate_minutes(items: Iterable[Any], settings: KitchenSettings) -> int:
    """
    Stima dai minuti per categoria.

    Policy "first": conta solo la categoria della prima riga (ordini misti
    sottostimati). Policy "max": massimo tra tutte le righe.
    """
    validate_kitchen_settings(settings)
    items = list(items)
    if not items:
        return int(settings.default_minutes)
    if settings.resolution == RESOLVE_MAX:
        return max(minutes_for_category(_category_of(it), settings) for it in items)
    return minutes_for_category(_category_of(items[0]), settings)


def clamp_prep_minutes(value: Any) -> int:
    try:
        minutes = int(math.floor(float(value) + 0.5))
    except (TypeError, ValueError, OverflowError):
        minutes = MIN_PREP_MINUTES
    return min(max(minutes or MIN_PREP_MINUTES, MIN_PREP_MINUTES), MAX_PREP_MINUTES)


def resolve_due_minutes(estimated: int, settings: KitchenSettings) -> int:
    # la manopola globale, se presente, comanda il countdown
    if settings.prep_minutes is not None:
        return clamp_prep_minutes(settings.prep_minutes)
    return int(estimated)


def compute_due_at(created_at: datetime, minutes: int) -> datetime:
    return created_at + timedelta(minutes=minutes)


def freeze_timing(items: Iterable[Any], created_at: datetime, settings: KitchenSettings) -> KitchenTiming:
    """Da chiamare una sola volta alla creazione: il risultato non si ricalcola."""
    estimated = estimate_minutes(items, settings)
    due_minutes = resolve_due_minutes(estimated, settings)
    return KitchenTiming(
        estimated_prep_minutes=estimated,
        due_minutes=due_minutes,
        due_at=compute_due_at(created_at, due_minutes),
    )


def _round_seconds(seconds: float) -> int:
    # mezzo secondo arrotondato verso +inf
    return int(math.floor(seconds + 0.5))


def evaluate_status(
    created_at: datetime,
    due_at: Optional[datetime],
    now: datetime,
    completed_at: Optional[datetime] = None,
) -> KitchenStatus:
    if completed_at is not None:
        return KitchenStatus(seconds_remaining=0, is_overdue=False, should_auto_complete=False, is_complete=True)

    created_at = as_utc(created_at)
    now = as_utc(now)
    elapsed = (now - created_at).total_seconds()

    if due_at is None:
        # ordini senza scadenza: mai overdue, li chiude solo il force-clear
        return KitchenStatus(
            seconds_remaining=0,
            is_overdue=False,
            should_auto_complete=elapsed >= FORCE_CLEAR_SECONDS,
        )

    due_at = as_utc(due_at)
    diff = _round_seconds((due_at - now).total_seconds())
    estimate = (due_at - created_at).total_seconds()

    return KitchenStatus(
        seconds_remaining=max(diff, 0),
        is_overdue=diff < 0,
        should_auto_complete=elapsed >= estimate + GRACE_SECONDS or elapsed >= FORCE_CLEAR_SECONDS,
    )
