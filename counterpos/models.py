# counterpos/models.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Tuple

from .errors import InvalidLineItem

# Polarità del modificatore: il prezzo è sempre una magnitudine >= 0
ADD = "add"
REMOVE = "remove"
POLARITIES = (ADD, REMOVE)

# Modalità di selezione sulla riga
MODE_DEFAULT = "default"
MODE_ADDED = "added"
MODE_REMOVED = "removed"
MODE_LIGHT = "light"
MODIFIER_MODES = (MODE_DEFAULT, MODE_ADDED, MODE_REMOVED, MODE_LIGHT)

# Sconti
DISCOUNT_NONE = "none"
DISCOUNT_PERCENT = "percent"
DISCOUNT_FLAT = "flat"
DISCOUNT_KINDS = (DISCOUNT_NONE, DISCOUNT_PERCENT, DISCOUNT_FLAT)

# Risoluzione della categoria per la stima cucina
RESOLVE_FIRST = "first"
RESOLVE_MAX = "max"
RESOLUTION_POLICIES = (RESOLVE_FIRST, RESOLVE_MAX)

# Stati ordine / ticket cucina
STATUS_PAID = "PAID"
STATUS_REFUNDED = "REFUNDED"
KITCHEN_OPEN = "OPEN"
KITCHEN_DONE = "DONE"
CLOSED_STATUSES = frozenset({"COMPLETED", "CANCELLED", STATUS_REFUNDED})

PAYMENT_TYPES = ("CASH", "CARD", "OTHER")


def as_money(value: Any) -> Decimal:
    """Converte un importo (str/int/float/Decimal) in Decimal senza drift da float."""
    if isinstance(value, bool) or value is None:
        raise InvalidLineItem(f"invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidLineItem(f"invalid amount: {value!r}") from None
    if not result.is_finite():
        raise InvalidLineItem(f"invalid amount: {value!r}")
    return result


def as_utc(dt: datetime) -> datetime:
    # naive -> UTC, come fanno le viste KDS
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def cents_to_money(cents: int) -> Decimal:
    return (Decimal(cents) / 100).quantize(Decimal("0.01"))


# --- catalogo / bozza ---------------------------------------------------------

@dataclass(frozen=True)
class Modifier:
    id: str
    name: str
    price: Decimal
    polarity: str = ADD
    active: bool = True

    def __post_init__(self):
        object.__setattr__(self, "id", str(self.id))
        price = as_money(self.price)
        if price < 0:
            raise InvalidLineItem(f"modifier {self.name!r} has a negative price")
        object.__setattr__(self, "price", price)
        if self.polarity not in POLARITIES:
            raise InvalidLineItem(f"modifier {self.name!r} has unknown polarity {self.polarity!r}")


@dataclass(frozen=True)
class ModifierSelection:
    modifier: Modifier
    mode: str = MODE_DEFAULT

    def __post_init__(self):
        if self.mode not in MODIFIER_MODES:
            raise InvalidLineItem(f"unknown modifier mode {self.mode!r}")
        # "added" solo per polarità add, "removed" solo per remove
        if self.mode == MODE_ADDED and self.modifier.polarity != ADD:
            raise InvalidLineItem(f"modifier {self.modifier.name!r} cannot be added")
        if self.mode == MODE_REMOVED and self.modifier.polarity != REMOVE:
            raise InvalidLineItem(f"modifier {self.modifier.name!r} cannot be removed")


@dataclass(frozen=True)
class DraftLineItem:
    product_id: str
    name: str
    base_price: Decimal
    quantity: int = 1
    category_id: Optional[str] = None
    modifiers: Tuple[ModifierSelection, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "product_id", str(self.product_id))
        if self.category_id is not None:
            object.__setattr__(self, "category_id", str(self.category_id))
        base = as_money(self.base_price)
        if base < 0:
            raise InvalidLineItem(f"product {self.name!r} has a negative base price")
        object.__setattr__(self, "base_price", base)
        object.__setattr__(self, "modifiers", tuple(self.modifiers))


# --- configurazione -----------------------------------------------------------

@dataclass(frozen=True)
class TaxConfiguration:
    tax_free: bool = False
    prices_include_tax: bool = False
    gst_rate_percent: Decimal = Decimal("15")

    def __post_init__(self):
        object.__setattr__(self, "gst_rate_percent", as_money(self.gst_rate_percent))

    @property
    def rate(self) -> Decimal:
        return self.gst_rate_percent / 100


@dataclass(frozen=True)
class DiscountSpec:
    kind: str = DISCOUNT_NONE
    value: Decimal = Decimal("0")

    def __post_init__(self):
        if self.kind not in DISCOUNT_KINDS:
            raise InvalidLineItem(f"unknown discount kind {self.kind!r}")
        object.__setattr__(self, "value", as_money(self.value))

    @classmethod
    def none(cls) -> "DiscountSpec":
        return cls()

    @classmethod
    def percent(cls, pct) -> "DiscountSpec":
        return cls(DISCOUNT_PERCENT, pct)

    @classmethod
    def flat(cls, amount) -> "DiscountSpec":
        return cls(DISCOUNT_FLAT, amount)


@dataclass(frozen=True)
class CategoryPrepTime:
    category_id: str
    minutes: int

    def __post_init__(self):
        object.__setattr__(self, "category_id", str(self.category_id))


@dataclass(frozen=True)
class KitchenSettings:
    default_minutes: int = 7
    categories: Tuple[CategoryPrepTime, ...] = ()
    # manopola globale (già limitata a 1-60 dal livello impostazioni)
    prep_minutes: Optional[int] = None
    resolution: str = RESOLVE_FIRST

    def __post_init__(self):
        object.__setattr__(self, "categories", tuple(self.categories))

    def override_for(self, category_id: Any) -> Optional[int]:
        if category_id is None:
            return None
        key = str(category_id)
        for c in self.categories:
            if c.category_id == key:
                return c.minutes
        return None


# --- risultati congelati ------------------------------------------------------

@dataclass(frozen=True)
class OrderTotals:
    subtotal_cents: int = 0
    tax_cents: int = 0
    total_cents: int = 0
    discount_cents: int = 0

    @property
    def subtotal(self) -> Decimal:
        return cents_to_money(self.subtotal_cents)

    @property
    def tax(self) -> Decimal:
        return cents_to_money(self.tax_cents)

    @property
    def total(self) -> Decimal:
        return cents_to_money(self.total_cents)

    @property
    def discount(self) -> Decimal:
        return cents_to_money(self.discount_cents)


@dataclass(frozen=True)
class KitchenTiming:
    estimated_prep_minutes: int
    due_minutes: int
    due_at: datetime


@dataclass(frozen=True)
class KitchenStatus:
    seconds_remaining: int
    is_overdue: bool
    should_auto_complete: bool
    is_complete: bool = False


# --- ordine registrato --------------------------------------------------------

@dataclass(frozen=True)
class OrderItemModifier:
    modifier_id: str
    name: str
    mode: str
    delta: Decimal


@dataclass(frozen=True)
class OrderItem:
    product_id: str
    name: str
    base_price: Decimal
    quantity: int
    category_id: Optional[str]
    modifiers: Tuple[OrderItemModifier, ...]
    line_total: Decimal


@dataclass(frozen=True)
class Payment:
    type: str
    amount_cents: int


@dataclass(frozen=True)
class RefundInfo:
    refunded_at: datetime
    method: str
    reason: Optional[str] = None
    refunded_by: Optional[str] = None


@dataclass
class Order:
    order_number: str
    created_at: datetime
    items: List[OrderItem]
    totals: OrderTotals
    tax_free: bool = False
    ticket_number: Optional[int] = None
    note: Optional[str] = None
    status: str = STATUS_PAID
    kitchen_status: str = KITCHEN_OPEN
    estimated_prep_minutes: Optional[int] = None
    kitchen_due_at: Optional[datetime] = None
    kitchen_completed_at: Optional[datetime] = None
    payments: List[Payment] = field(default_factory=list)
    change_cents: int = 0
    refund: Optional[RefundInfo] = None
