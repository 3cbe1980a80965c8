from __future__ import annotations

import pytest

from wholesale_ledger.database.repositories import Product
from wholesale_ledger.modules.ledger.units import cost_per_unit, format_stock, to_stocking_units


def _soap(**kw) -> Product:
    base = dict(product_id=1, name="Soap", stocking_unit="Box", sub_unit="Piece",
                conversion_factor=12, purchase_price=12.0, quantity=10)
    base.update(kw)
    return Product(**base)


def test_cost_per_unit_stocking_and_sub_unit():
    p = _soap()
    assert cost_per_unit(p, "Box") == pytest.approx(12.0)
    assert cost_per_unit(p, "Piece") == pytest.approx(1.0)


def test_cost_per_unit_degrades_to_zero():
    assert cost_per_unit(None, "Box") == 0.0
    assert cost_per_unit(_soap(conversion_factor=0), "Piece") == 0.0


def test_unknown_unit_is_treated_as_stocking_unit():
    p = _soap()
    assert cost_per_unit(p, "Carton") == pytest.approx(12.0)
    assert to_stocking_units(3, "Carton", p) == pytest.approx(3.0)


def test_to_stocking_units():
    p = _soap()
    assert to_stocking_units(2, "Box", p) == pytest.approx(2.0)
    assert to_stocking_units(6, "Piece", p) == pytest.approx(0.5)
    assert to_stocking_units(6, "Piece", None) == 0.0


def test_format_stock_splits_whole_and_pieces():
    p = _soap()
    assert format_stock(7.5, p) == "7 Box, 6 Piece"
    assert format_stock(2, p) == "2 Box"
    assert format_stock(0.25, p) == "3 Piece"
    assert format_stock(0, p) == "0 Box"


def test_format_stock_without_sub_unit():
    rice = Product(product_id=2, name="Rice", stocking_unit="Bag")
    assert format_stock(7.5, rice) == "7.50 Bag"
