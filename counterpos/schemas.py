# counterpos/schemas.py
"""Payload HTTP: modelli SQLModel senza tabella (nessuna persistenza qui)."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlmodel import Field, SQLModel

from .models import (
    DISCOUNT_FLAT,
    DISCOUNT_NONE,
    DISCOUNT_PERCENT,
    DiscountSpec,
    Modifier,
    OrderTotals,
)


class ModifierIn(SQLModel):
    id: str
    name: str
    price: Decimal = Decimal("0")
    polarity: str = "add"
    active: bool = True

    def to_modifier(self) -> Modifier:
        return Modifier(id=self.id, name=self.name, price=self.price, polarity=self.polarity, active=self.active)


class DiscountIn(SQLModel):
    mode: str = Field(default="NONE", description="NONE | PERCENT | FLAT")
    value: Decimal = Decimal("0")

    def to_spec(self) -> DiscountSpec:
        kind = {"NONE": DISCOUNT_NONE, "PERCENT": DISCOUNT_PERCENT, "FLAT": DISCOUNT_FLAT}.get(
            self.mode.upper(), self.mode.lower()
        )
        return DiscountSpec(kind, self.value)


class QuoteRequest(SQLModel):
    # righe camelCase come le manda il POS: {productId, name, basePrice, quantity, categoryId, modifiers}
    items: List[Dict[str, Any]] = Field(default_factory=list)
    modifiers: List[ModifierIn] = Field(default_factory=list, description="catalogo modificatori attivi")
    settings: Optional[Dict[str, Any]] = None
    discount: Optional[DiscountIn] = None
    taxFree: bool = False


class CreateOrderRequest(QuoteRequest):
    orderNumber: str
    ticketNumber: Optional[int] = None
    createdAt: Optional[datetime] = None
    note: Optional[str] = None
    payments: List[Dict[str, Any]] = Field(default_factory=list)


class TotalsOut(SQLModel):
    subtotal: float
    tax: float
    total: float
    discountCents: int = 0

    @classmethod
    def from_totals(cls, t: OrderTotals) -> "TotalsOut":
        return cls(subtotal=float(t.subtotal), tax=float(t.tax), total=float(t.total), discountCents=t.discount_cents)


class QuoteLineOut(SQLModel):
    productId: str
    name: str
    quantity: int
    lineTotal: float


class QuoteOut(SQLModel):
    ok: bool = True
    lines: List[QuoteLineOut] = Field(default_factory=list)
    totals: TotalsOut


class OrderRecordIn(SQLModel):
    order: Dict[str, Any]
    now: Optional[datetime] = None


class KitchenQueueRequest(SQLModel):
    orders: List[Dict[str, Any]] = Field(default_factory=list)
    now: Optional[datetime] = None


class RefundRequest(OrderRecordIn):
    method: Any = Field(default=None, description="CASH | CARD | OTHER (altro -> OTHER)")
    reason: Optional[str] = None
    refundedBy: Optional[str] = None
