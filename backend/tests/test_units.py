from decimal import Decimal

import pytest

from backend.services import units


@pytest.mark.parametrize(
    "qty,unit,expected",
    [
        ("2.5", "kg", Decimal("2500")),
        ("500", "mg", Decimal("0.5")),
        ("1.2", "L", Decimal("1200")),
        ("2", "dozen", Decimal("24")),
        ("3", "bottle", Decimal("3")),
    ],
)
def test_to_base_unit(qty, unit, expected):
    assert units.to_base_unit(Decimal(qty), unit) == expected


def test_unknown_unit_passes_through():
    assert units.to_base_unit(Decimal("4"), "bunch") == Decimal("4")
    assert units.get_base_unit("bunch") == "bunch"


def test_compatibility():
    assert units.are_units_compatible("kg", "g")
    assert units.are_units_compatible("l", "ML")
    assert units.are_units_compatible("dozen", "piece")
    assert not units.are_units_compatible("kg", "l")
    assert not units.are_units_compatible("bunch", "piece")


def test_convert():
    assert units.convert(Decimal("250"), "g", "kg") == Decimal("0.25")
    assert units.convert(Decimal("1.5"), "l", "ml") == Decimal("1500")
    assert units.convert(Decimal("7"), "kg", "KG") == Decimal("7")
