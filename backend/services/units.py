"""
Unit conversion.

Quantities are compared in base units: grams, millilitres and pieces.
Unknown units are treated as already being in their own base unit.
"""

from __future__ import annotations

import logging
from decimal import Decimal

logger = logging.getLogger(__name__)

UNIT_CONVERSIONS: dict[str, tuple[Decimal, str]] = {
    # weight -> g
    "mg": (Decimal("0.001"), "g"),
    "g": (Decimal("1"), "g"),
    "kg": (Decimal("1000"), "g"),
    "ton": (Decimal("1000000"), "g"),
    # volume -> ml
    "ml": (Decimal("1"), "ml"),
    "l": (Decimal("1000"), "ml"),
    "kl": (Decimal("1000000"), "ml"),
    # count -> piece
    "piece": (Decimal("1"), "piece"),
    "pieces": (Decimal("1"), "piece"),
    "dozen": (Decimal("12"), "piece"),
    "box": (Decimal("1"), "piece"),
    "packet": (Decimal("1"), "piece"),
    "bottle": (Decimal("1"), "piece"),
    "can": (Decimal("1"), "piece"),
}


def _normalize(unit: str) -> str:
    return unit.strip().lower()


def get_base_unit(unit: str) -> str:
    conversion = UNIT_CONVERSIONS.get(_normalize(unit))
    return conversion[1] if conversion else unit


def to_base_unit(quantity, unit: str) -> Decimal:
    quantity = Decimal(quantity)
    conversion = UNIT_CONVERSIONS.get(_normalize(unit))
    if conversion is None:
        logger.warning("Unknown unit %r, treating as base unit", unit)
        return quantity
    return quantity * conversion[0]


def from_base_unit(quantity, target_unit: str) -> Decimal:
    quantity = Decimal(quantity)
    conversion = UNIT_CONVERSIONS.get(_normalize(target_unit))
    if conversion is None:
        logger.warning("Unknown unit %r, returning quantity unchanged", target_unit)
        return quantity
    return quantity / conversion[0]


def are_units_compatible(unit_a: str, unit_b: str) -> bool:
    return get_base_unit(unit_a) == get_base_unit(unit_b)


def convert(quantity, from_unit: str, to_unit: str) -> Decimal:
    if _normalize(from_unit) == _normalize(to_unit):
        return Decimal(quantity)
    return from_base_unit(to_base_unit(quantity, from_unit), to_unit)
