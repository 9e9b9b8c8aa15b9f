# counterpos/config.py
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

log = logging.getLogger(__name__)

CONFIG_FILE = Path(os.getenv("COUNTERPOS_CONFIG", Path(__file__).resolve().parent / "config.json"))


@dataclass
class TaxConfig:
    currency: str = "USD"
    prices_include_tax: bool = False
    gst_rate_percent: float = 15.0


@dataclass
class KitchenConfig:
    default_minutes: int = 7
    # category_id -> minuti
    categories: Dict[str, int] = field(default_factory=dict)
    prep_minutes: int | None = None
    resolution: str = "first"


@dataclass
class QueueConfig:
    stale_hours: int = 12
    overdue_cutoff_hours: int = 2
    poll_seconds: int = 5


@dataclass
class ReceiptConfig:
    shop_name: str = "Counter POS"
    width_chars: int = 32


@dataclass
class AppConfig:
    # default_factory per gli oggetti mutabili
    tax: TaxConfig = field(default_factory=TaxConfig)
    kitchen: KitchenConfig = field(default_factory=KitchenConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    receipt: ReceiptConfig = field(default_factory=ReceiptConfig)
    log_level: str = "INFO"


def _merge(dst: dict, src: dict) -> dict:
    for k, v in src.items():
        if isinstance(v, dict) and isinstance(dst.get(k), dict):
            dst[k] = _merge(dst[k], v)
        else:
            dst[k] = v
    return dst


def _defaults() -> dict:
    return {
        "tax": {"currency": "USD", "prices_include_tax": False, "gst_rate_percent": 15.0},
        "kitchen": {
            "default_minutes": 7,
            "categories": {"1": 10, "2": 8, "3": 7, "4": 5},
            "prep_minutes": None,
            "resolution": "first",
        },
        "queue": {"stale_hours": 12, "overdue_cutoff_hours": 2, "poll_seconds": 5},
        "receipt": {"shop_name": "Counter POS", "width_chars": 32},
        "log_level": "INFO",
    }


def load_config(path: Path | None = None) -> AppConfig:
    data = _defaults()
    cfg_file = Path(path) if path is not None else CONFIG_FILE
    if cfg_file.exists():
        try:
            file_data = json.loads(cfg_file.read_text(encoding="utf-8"))
            data = _merge(data, file_data or {})
        except (OSError, ValueError) as e:
            # file malformato -> mantieni default
            log.warning("config file %s ignored: %s", cfg_file, e)
            data = _defaults()

    t, k, q, r = data["tax"], data["kitchen"], data["queue"], data["receipt"]
    prep = k.get("prep_minutes")
    return AppConfig(
        tax=TaxConfig(
            currency=str(t.get("currency", "USD")),
            prices_include_tax=bool(t.get("prices_include_tax", False)),
            gst_rate_percent=float(t.get("gst_rate_percent", 15.0)),
        ),
        kitchen=KitchenConfig(
            default_minutes=int(k.get("default_minutes", 7)),
            categories={str(cid): int(m) for cid, m in (k.get("categories") or {}).items()},
            prep_minutes=int(prep) if prep is not None else None,
            resolution=str(k.get("resolution", "first")),
        ),
        queue=QueueConfig(
            stale_hours=int(q.get("stale_hours", 12)),
            overdue_cutoff_hours=int(q.get("overdue_cutoff_hours", 2)),
            poll_seconds=int(q.get("poll_seconds", 5)),
        ),
        receipt=ReceiptConfig(
            shop_name=str(r.get("shop_name", "Counter POS")),
            width_chars=int(r.get("width_chars", 32)),
        ),
        log_level=str(os.getenv("COUNTERPOS_LOG_LEVEL", data.get("log_level", "INFO"))).upper(),
    )


# istanza singleton caricata a import
CONFIG = load_config()
