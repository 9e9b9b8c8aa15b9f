# counterpos/settings.py
"""
Dal payload impostazioni (chiavi camelCase come le scrive lo store) ai
valori che usano i motori. Nessuna lettura "globale": chi chiama passa
sempre il dict esplicitamente.
"""
from __future__ import annotations

import logging
import math
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional

from .config import CONFIG, AppConfig
from .errors import InvalidConfiguration
from .kitchen_timing import clamp_prep_minutes, validate_kitchen_settings
from .models import CategoryPrepTime, KitchenSettings, TaxConfiguration

log = logging.getLogger(__name__)

# Valori "sicuri" se lo store impostazioni è corrotto: mai bloccare un incasso
SAFE_TAX = TaxConfiguration(tax_free=False, prices_include_tax=False, gst_rate_percent=Decimal("15"))
SAFE_KITCHEN = KitchenSettings(default_minutes=7)


def default_tax_configuration(cfg: AppConfig = CONFIG) -> TaxConfiguration:
    return TaxConfiguration(
        prices_include_tax=cfg.tax.prices_include_tax,
        gst_rate_percent=Decimal(str(cfg.tax.gst_rate_percent)),
    )


def default_kitchen_settings(cfg: AppConfig = CONFIG) -> KitchenSettings:
    return KitchenSettings(
        default_minutes=cfg.kitchen.default_minutes,
        categories=tuple(CategoryPrepTime(cid, m) for cid, m in cfg.kitchen.categories.items()),
        prep_minutes=clamp_prep_minutes(cfg.kitchen.prep_minutes) if cfg.kitchen.prep_minutes is not None else None,
        resolution=cfg.kitchen.resolution,
    )


def _rate(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidConfiguration(f"invalid gst rate {value!r}")
    try:
        rate = Decimal(str(value))
    except InvalidOperation:
        raise InvalidConfiguration(f"invalid gst rate {value!r}") from None
    if not rate.is_finite():
        raise InvalidConfiguration(f"invalid gst rate {value!r}")
    if rate < 0:
        raise InvalidConfiguration(f"gst rate must not be negative, got {value!r}")
    return rate


def load_tax_configuration(raw: Optional[Mapping[str, Any]], cfg: AppConfig = CONFIG) -> TaxConfiguration:
    base = default_tax_configuration(cfg)
    if not raw:
        return base

    rate_value = raw.get("gstRatePercent")
    if rate_value is None:
        # chiave deprecata, ancora presente nei payload vecchi
        rate_value = raw.get("taxRatePercent")
    rate = _rate(rate_value) if rate_value is not None else base.gst_rate_percent

    include = raw.get("pricesIncludeTax")
    if include is None:
        include = base.prices_include_tax
    elif not isinstance(include, bool):
        # solo booleani veri: la stringa "false" sarebbe truthy
        raise InvalidConfiguration(f"pricesIncludeTax must be true or false, got {include!r}")
    return TaxConfiguration(
        prices_include_tax=include,
        gst_rate_percent=rate,
    )


def _categories(raw_categories: Any, default_minutes: int) -> List[CategoryPrepTime]:
    out: List[CategoryPrepTime] = []
    if not isinstance(raw_categories, list):
        return out
    for entry in raw_categories:
        if not isinstance(entry, Mapping):
            continue
        try:
            cid = int(entry.get("categoryId"))
        except (TypeError, ValueError, OverflowError):
            continue
        minutes = entry.get("minutes")
        if isinstance(minutes, bool) or not isinstance(minutes, (int, float)) or not math.isfinite(minutes):
            minutes = default_minutes
        if minutes < 0:
            continue
        out.append(CategoryPrepTime(str(cid), int(minutes)))
    return out


def load_kitchen_settings(raw: Optional[Mapping[str, Any]], cfg: AppConfig = CONFIG) -> KitchenSettings:
    base = default_kitchen_settings(cfg)
    if not raw:
        return base

    kitchen = raw.get("kitchen") or {}
    if not isinstance(kitchen, Mapping):
        raise InvalidConfiguration("kitchen settings must be an object")
    default_minutes = kitchen.get("defaultMinutes", base.default_minutes)
    if (
        isinstance(default_minutes, bool)
        or not isinstance(default_minutes, (int, float))
        or not math.isfinite(default_minutes)
    ):
        raise InvalidConfiguration(f"invalid default prep minutes {default_minutes!r}")

    if "categories" in kitchen:
        categories = tuple(_categories(kitchen.get("categories"), int(default_minutes)))
    else:
        categories = base.categories

    prep = raw.get("kitchenPrepMinutes", base.prep_minutes)
    settings = KitchenSettings(
        default_minutes=int(default_minutes),
        categories=categories,
        prep_minutes=clamp_prep_minutes(prep) if prep is not None else None,
        resolution=str(kitchen.get("resolution", base.resolution)),
    )
    validate_kitchen_settings(settings)
    return settings


def tax_configuration_or_default(raw: Optional[Mapping[str, Any]], cfg: AppConfig = CONFIG) -> TaxConfiguration:
    try:
        return load_tax_configuration(raw, cfg)
    except InvalidConfiguration as e:
        log.warning("tax settings unusable (%s), falling back to 15%% exclusive GST", e)
        return SAFE_TAX


def kitchen_settings_or_default(raw: Optional[Mapping[str, Any]], cfg: AppConfig = CONFIG) -> KitchenSettings:
    try:
        return load_kitchen_settings(raw, cfg)
    except InvalidConfiguration as e:
        log.warning("kitchen settings unusable (%s), falling back to %s minutes", e, SAFE_KITCHEN.default_minutes)
        return SAFE_KITCHEN
