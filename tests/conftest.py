from datetime import datetime, timezone
from decimal import Decimal

import pytest

from counterpos.config import load_config
from counterpos.models import (
    ADD,
    REMOVE,
    CategoryPrepTime,
    DraftLineItem,
    KitchenSettings,
    Modifier,
    ModifierSelection,
    TaxConfiguration,
)

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def cheese():
    return Modifier(id="1", name="Cheese", price=Decimal("1.50"), polarity=ADD)


@pytest.fixture
def onion():
    return Modifier(id="2", name="Onion", price=Decimal("0.50"), polarity=REMOVE)


@pytest.fixture
def burger(cheese):
    return DraftLineItem(
        product_id="10",
        name="Burger",
        base_price=Decimal("10.00"),
        quantity=2,
        category_id="1",
        modifiers=(ModifierSelection(cheese, "added"),),
    )


@pytest.fixture
def exclusive_gst():
    return TaxConfiguration(tax_free=False, prices_include_tax=False, gst_rate_percent=Decimal("15"))


@pytest.fixture
def kitchen_settings():
    return KitchenSettings(
        default_minutes=7,
        categories=(CategoryPrepTime("1", 10), CategoryPrepTime("2", 8), CategoryPrepTime("4", 0)),
    )


@pytest.fixture
def cfg(tmp_path):
    # nessun file -> solo i default
    return load_config(tmp_path / "missing.json")
