# counterpos/errors.py
from __future__ import annotations


class CounterPosError(Exception):
    """Errore base: il chiamante decide se rifiutare o degradare."""


class InvalidLineItem(CounterPosError, ValueError):
    """Riga d'ordine non calcolabile (modificatore irrisolvibile, prezzo negativo...)."""


class InvalidQuantity(InvalidLineItem):
    """Quantità non intera o < 1."""


class InvalidConfiguration(CounterPosError, ValueError):
    """Impostazioni incoerenti (aliquota negativa, minuti di default <= 0)."""
